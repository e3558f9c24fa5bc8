"""
Router package for the demo application.

- health: Greeting and liveness endpoints
- users: CRUD endpoints on the in-memory user store
"""

from api.routers.health import router as health_router
from api.routers.users import router as users_router

__all__ = [
    "health_router",
    "users_router",
]
