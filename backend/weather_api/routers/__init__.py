"""
Routers Package
===============

Routers direct incoming requests to the right service.
"""

from .auth import router as auth_router
from .users import router as users_router
from .readings import router as readings_router

__all__ = [
    "auth_router",
    "users_router",
    "readings_router",
]
