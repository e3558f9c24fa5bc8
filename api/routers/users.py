"""
Users router.

CRUD endpoints for the demo user store:
- POST /users: Create a user (201)
- GET /users: List users
- GET /users/{user_id}: Get one user
- PUT /users/{user_id}: Partially update a user
- DELETE /users/{user_id}: Delete a user (204)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.deps import get_user_repo
from application.ports import UserRepository
from domain.models import User, UserCreate, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


def _not_found(user_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"User {user_id} not found",
    )


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, repo: UserRepository = Depends(get_user_repo)):
    user = repo.create(payload)
    logger.info("Created user %s", user.id)
    return user


@router.get("", response_model=List[User])
def list_users(repo: UserRepository = Depends(get_user_repo)):
    return repo.list()


@router.get("/{user_id}", response_model=User)
def get_user(user_id: str, repo: UserRepository = Depends(get_user_repo)):
    user = repo.get(user_id)
    if user is None:
        raise _not_found(user_id)
    return user


@router.put("/{user_id}", response_model=User)
def update_user(
    user_id: str,
    payload: UserUpdate,
    repo: UserRepository = Depends(get_user_repo),
):
    user = repo.update(user_id, payload)
    if user is None:
        raise _not_found(user_id)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, repo: UserRepository = Depends(get_user_repo)):
    if not repo.delete(user_id):
        raise _not_found(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
