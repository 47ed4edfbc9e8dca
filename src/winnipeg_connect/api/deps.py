"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
the caller's identity, the payment gateway and configuration.

Caller identity is asserted by the upstream auth gateway in the
``X-User-Id`` header and resolved against the user directory.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from winnipeg_connect.config import Settings, get_settings
from winnipeg_connect.domain.exceptions import AuthenticationError
from winnipeg_connect.domain.gateway_protocol import PaymentGateway
from winnipeg_connect.gateways import get_gateway
from winnipeg_connect.infrastructure.database.engine import get_async_session
from winnipeg_connect.infrastructure.database.orm_models import User
from winnipeg_connect.infrastructure.database.repositories import UserRepository


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_payment_gateway() -> PaymentGateway:
    """Provide the configured payment gateway."""
    return get_gateway()


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


async def _resolve_user(session: AsyncSession, raw_user_id: str) -> User:
    try:
        user_id = uuid.UUID(raw_user_id)
    except ValueError as err:
        raise AuthenticationError("Invalid X-User-Id header") from err
    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise AuthenticationError("Unknown user")
    return user


async def get_current_user(
    x_user_id: str | None = Header(default=None),
    session: AsyncSession = Depends(get_db_session),
) -> User:
    """Resolve the authenticated caller. Missing or unknown -> 401."""
    if not x_user_id:
        raise AuthenticationError()
    return await _resolve_user(session, x_user_id)


async def get_optional_user(
    x_user_id: str | None = Header(default=None),
    session: AsyncSession = Depends(get_db_session),
) -> User | None:
    """Like get_current_user, but anonymous callers are allowed."""
    if not x_user_id:
        return None
    return await _resolve_user(session, x_user_id)


def get_pagination(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    settings: Settings = Depends(get_app_settings),
) -> tuple[int, int]:
    """(page, limit), with limit defaulted and capped by the settings."""
    effective = min(limit or settings.default_page_size, settings.max_page_size)
    return page, effective
