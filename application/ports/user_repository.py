"""
User Repository Interface (Port).

Persistence contract for the demo resource store. Implementations live in
infrastructure/; the in-memory one is the only one shipped.
"""
from typing import List, Optional, Protocol, runtime_checkable

from domain.models import User, UserCreate, UserUpdate


@runtime_checkable
class UserRepository(Protocol):
    """Abstract interface for user persistence."""

    def create(self, data: UserCreate) -> User:
        """
        Store a new user.

        Args:
            data: Validated create payload

        Returns:
            The stored user with its generated ID
        """
        ...

    def list(self) -> List[User]:
        """Return every stored user in insertion order."""
        ...

    def get(self, user_id: str) -> Optional[User]:
        """Return a user by ID, or None if not found."""
        ...

    def update(self, user_id: str, data: UserUpdate) -> Optional[User]:
        """Apply a partial update. Returns None if the user does not exist."""
        ...

    def delete(self, user_id: str) -> bool:
        """Delete a user. Returns True if something was deleted."""
        ...
