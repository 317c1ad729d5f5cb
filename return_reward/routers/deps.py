"""Request dependencies shared by the routers."""
from fastapi import HTTPException, Request, status

from return_reward.backend import Backend
from return_reward.config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_backend(request: Request) -> Backend:
    """Dependency for the configured Backend; 503 when configuration is missing."""
    backend = request.app.state.backend
    if backend is None:
        error = request.app.state.configuration_error
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error.message if error else "Backend is not configured",
        )
    return backend
