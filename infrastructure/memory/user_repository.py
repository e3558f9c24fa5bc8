"""
In-memory User Repository Implementation.

Implements the UserRepository protocol with a dict keyed by user ID. State
lives for the lifetime of the process.
"""
import threading
import uuid
from typing import Dict, List, Optional

from domain.models import User, UserCreate, UserUpdate


class InMemoryUserRepository:
    """
    Dict-backed implementation of UserRepository.

    Usage:
        repo = InMemoryUserRepository()
        user = repo.create(UserCreate(name="A", email="a@x.com"))
        repo.get(user.id)
    """

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored users."""
        with self._lock:
            self._users.clear()

    def create(self, data: UserCreate) -> User:
        user = User(id=str(uuid.uuid4()), **data.model_dump())
        with self._lock:
            self._users[user.id] = user
        return user

    def list(self) -> List[User]:
        with self._lock:
            return list(self._users.values())

    def get(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def update(self, user_id: str, data: UserUpdate) -> Optional[User]:
        with self._lock:
            existing = self._users.get(user_id)
            if existing is None:
                return None
            updated = existing.model_copy(update=data.model_dump(exclude_unset=True))
            self._users[user_id] = updated
            return updated

    def delete(self, user_id: str) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None
