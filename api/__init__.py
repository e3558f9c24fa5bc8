"""
API package for the demo application.

This package contains:
- deps.py: FastAPI dependency providers for DI
- routers/: API route handlers
"""

# Re-export dependency providers for convenient access
from api.deps import (
    get_settings,
    get_user_repo,
)

__all__ = [
    "get_settings",
    "get_user_repo",
]
