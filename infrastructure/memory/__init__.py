"""In-memory implementations of application ports."""

from infrastructure.memory.user_repository import InMemoryUserRepository

__all__ = ["InMemoryUserRepository"]
