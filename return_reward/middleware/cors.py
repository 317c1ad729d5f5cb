"""CORS configuration for the browser client."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from return_reward.config import Settings

logger = logging.getLogger(__name__)

# Base allowed origins for development
DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]


def allowed_origins(settings: Settings) -> list:
    origins = list(DEV_ORIGINS)
    if settings.frontend_url and settings.frontend_url not in origins:
        origins.append(settings.frontend_url)
    return origins


def add_cors_middleware(app: FastAPI, settings: Settings) -> None:
    """Add CORS middleware to the FastAPI application."""
    if settings.environment == "production":
        # Only the configured frontend in production
        logger.info(f"[PROD] Using production CORS for {settings.frontend_url}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[settings.frontend_url],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        origins = allowed_origins(settings)
        logger.info(f"[DEV] Using development CORS with origins: {origins}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
