"""Routers package for Return&Reward."""

from .items import router as items_router
from .session import router as session_router

__all__ = ["items_router", "session_router"]
