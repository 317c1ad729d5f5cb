"""Main FastAPI application for Return&Reward."""
import logging
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from return_reward import __version__
from return_reward.backend import build_backend
from return_reward.config import Settings, load_settings
from return_reward.errors import ConfigurationMissing
from return_reward.middleware.cors import add_cors_middleware
from return_reward.routers import items_router, session_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the application.

    A missing or invalid configuration does not stop the app from starting:
    sessions open in a disabled state and show the configuration error once.
    """
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Return&Reward API",
        description="Lost-and-found coordination: register items, resolve scanned codes, chat with owners",
        version=__version__,
    )
    add_cors_middleware(app, settings)

    app.state.settings = settings
    app.state.backend = None
    app.state.configuration_error = None
    try:
        app.state.backend = build_backend(settings, engine)
    except ConfigurationMissing as e:
        app.state.configuration_error = e
        logger.warning(f"[WARNING] Backend disabled, missing settings: {e.missing}")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "configured": app.state.backend is not None,
        }

    @app.get("/")
    async def root():
        """Root endpoint - API welcome message."""
        return {
            "message": "Welcome to Return&Reward",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "session": "/ws/session",
        }

    app.include_router(items_router)
    app.include_router(session_router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "return_reward.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
