"""API router for the users feature.

Endpoints:
    POST   /users/            - Register a user
    GET    /users/            - List users in creation order
    GET    /users/{user_id}   - Get a single user

These endpoints write straight to the store; connected WebSocket clients
are not notified.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from chat_service.core.dependencies.database import get_db_session
from chat_service.features.users.schemas import UserCreate, UserRead
from chat_service.features.users.service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "/",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
)
async def create_user(
    payload: UserCreate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> UserRead:
    service = UserService(session)
    user = await service.create_user(payload)
    await session.commit()

    return UserRead.model_validate(user)


@router.get(
    "/",
    response_model=list[UserRead],
    summary="List users",
)
async def list_users(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> list[UserRead]:
    service = UserService(session)
    users = await service.list_users()
    return [UserRead.model_validate(user) for user in users]


@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Get a user",
    responses={404: {"description": "User not found"}},
)
async def get_user(
    user_id: UUID,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> UserRead:
    """Get a single user by ID."""
    service = UserService(session)
    user = await service.get_user(user_id)
    return UserRead.model_validate(user)
