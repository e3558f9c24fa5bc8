"""
FastAPI Dependency Providers for the demo application.

Returns interface types (Protocols) rather than concrete implementations so
tests can swap in their own.

Usage in routers:
    from api.deps import get_user_repo
    from application.ports import UserRepository

    @router.get("/users")
    def list_users(repo: UserRepository = Depends(get_user_repo)):
        return repo.list()

Testing:
    app.dependency_overrides[get_user_repo] = lambda: InMemoryUserRepository()
"""

from functools import lru_cache

from application.ports import UserRepository
from infrastructure import InMemoryUserRepository
from recorder.settings import Settings, get_settings as _get_settings


# =============================================================================
# Settings Provider
# =============================================================================


def get_settings() -> Settings:
    """Return the cached Settings instance."""
    return _get_settings()


# =============================================================================
# Repository Providers
# =============================================================================


@lru_cache
def _user_repo_singleton() -> InMemoryUserRepository:
    return InMemoryUserRepository()


def get_user_repo() -> UserRepository:
    """
    Get the user repository.

    The in-memory store is process-wide so that data survives between
    requests.
    """
    return _user_repo_singleton()
