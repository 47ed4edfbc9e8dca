"""User directory routes.

Routes:
    POST   /api/v1/users              Register a user
    GET    /api/v1/users/me           The authenticated caller
    GET    /api/v1/users/me/earnings  The caller's earnings balances
    GET    /api/v1/users/{id}         Look up a user
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from winnipeg_connect.api.deps import get_current_user, get_db_session
from winnipeg_connect.infrastructure.database.orm_models import User
from winnipeg_connect.schemas.common import ERROR_RESPONSES
from winnipeg_connect.schemas.users import CreateUserRequest, EarningsResponse, UserResponse
from winnipeg_connect.services.user_service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["Users"], responses=ERROR_RESPONSES)


@router.post("", response_model=UserResponse, status_code=201, summary="Register a user")
async def create_user(
    request: CreateUserRequest,
    session: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await UserService(session).create_user(
        email=request.email,
        first_name=request.first_name,
        last_name=request.last_name,
        role=request.role,
        is_admin=request.is_admin,
    )
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse, summary="Get the authenticated user")
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.get(
    "/me/earnings",
    response_model=EarningsResponse,
    summary="Get earnings balances",
    description="Total, pending and available earnings, recomputed from the ledger.",
)
async def get_my_earnings(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> EarningsResponse:
    balance = await UserService(session).get_earnings(user)
    return EarningsResponse(**balance.to_dict())


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user")
async def get_user(
    user_id: uuid.UUID,
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await UserService(session).get_user(user_id)
    return UserResponse.model_validate(user)
