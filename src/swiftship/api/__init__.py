"""API package."""

from swiftship.api.admin import auth_router as admin_auth_router
from swiftship.api.admin import router as admin_router
from swiftship.api.admin_api import router as admin_api_router
from swiftship.api.errors import register_error_handlers
from swiftship.api.routes import router

__all__ = [
    "admin_api_router",
    "admin_auth_router",
    "admin_router",
    "register_error_handlers",
    "router",
]
