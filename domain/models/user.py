"""
User models for the demo resource store.

The demo store is ordinary application code that produces traffic for the
capture layer to record; nothing in the recorder depends on it.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """Payload for creating a user."""

    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field(..., min_length=3, description="Contact email address")


class UserUpdate(BaseModel):
    """Partial update payload; unset fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=3)


class User(UserCreate):
    """A stored user."""

    id: str
