"""
Study plan engine - Main Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyplan.core.config import get_settings
from studyplan.core.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    logger.info(f"Starting study plan engine in {settings.ENVIRONMENT} mode (timezone {settings.TIMEZONE})")
    yield
    logger.info("Shutting down study plan engine")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Study Plan Engine",
        description="Deadline-driven study plan generation and redistribution",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from studyplan.api import commitments, plans, sessions, suggestions

    app.include_router(plans.router, prefix="/api/plans", tags=["plans"])
    app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])
    app.include_router(commitments.router, prefix="/api/commitments", tags=["commitments"])
    app.include_router(suggestions.router, prefix="/api/suggestions", tags=["suggestions"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "environment": settings.ENVIRONMENT}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "studyplan.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
