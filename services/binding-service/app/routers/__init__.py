from .health_routes import router as health_router
from .authorize_routes import router as authorize_router
from .admin_routes import router as admin_router
from .debug_routes import router as debug_router

__all__ = [
    "health_router",
    "authorize_router",
    "admin_router",
    "debug_router",
]
