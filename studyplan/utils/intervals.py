"""
Minute-of-day interval helpers.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TimeInterval:
    start_minutes: int
    end_minutes: int

    @property
    def duration(self) -> int:
        return self.end_minutes - self.start_minutes


def intervals_overlap(a: TimeInterval, b: TimeInterval) -> bool:
    """Half-open overlap check: touching intervals do not overlap."""
    return a.start_minutes < b.end_minutes and b.start_minutes < a.end_minutes


def ranges_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return not (a_end <= b_start or a_start >= b_end)


def merge_intervals(intervals: list[TimeInterval]) -> list[TimeInterval]:
    """Sort by start and merge overlapping or touching intervals."""
    ordered = sorted(
        (interval for interval in intervals if interval.end_minutes > interval.start_minutes),
        key=lambda interval: (interval.start_minutes, interval.end_minutes),
    )
    merged: list[TimeInterval] = []
    for interval in ordered:
        if merged and interval.start_minutes <= merged[-1].end_minutes:
            merged[-1].end_minutes = max(merged[-1].end_minutes, interval.end_minutes)
            continue
        merged.append(TimeInterval(interval.start_minutes, interval.end_minutes))
    return merged


def subtract_intervals(base: list[TimeInterval], remove: list[TimeInterval]) -> list[TimeInterval]:
    if not remove:
        return base
    intervals = base
    for block in remove:
        next_intervals: list[TimeInterval] = []
        for interval in intervals:
            if block.end_minutes <= interval.start_minutes or block.start_minutes >= interval.end_minutes:
                next_intervals.append(interval)
                continue
            if block.start_minutes > interval.start_minutes:
                next_intervals.append(
                    TimeInterval(interval.start_minutes, min(block.start_minutes, interval.end_minutes))
                )
            if block.end_minutes < interval.end_minutes:
                next_intervals.append(
                    TimeInterval(max(block.end_minutes, interval.start_minutes), interval.end_minutes)
                )
        intervals = next_intervals
    return [interval for interval in intervals if interval.end_minutes > interval.start_minutes]


def total_minutes(intervals: list[TimeInterval]) -> int:
    return sum(interval.duration for interval in intervals)
