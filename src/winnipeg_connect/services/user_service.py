"""User directory operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from winnipeg_connect.domain.exceptions import DomainValidationError, UserNotFoundError
from winnipeg_connect.infrastructure.database.orm_models import User
from winnipeg_connect.infrastructure.database.repositories import UserRepository
from winnipeg_connect.logging_config import get_logger
from winnipeg_connect.services.earnings_service import EarningsBalance, EarningsService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from winnipeg_connect.domain.enums import UserRole

logger = get_logger(__name__)


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self._repo = UserRepository(session)
        self._earnings = EarningsService(session)

    async def create_user(
        self,
        email: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        is_admin: bool = False,
    ) -> User:
        email = email.strip().lower()
        if await self._repo.get_by_email(email) is not None:
            raise DomainValidationError(f"Email is already registered: {email}")

        user = await self._repo.create(
            User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=role.value,
                is_admin=is_admin,
            )
        )
        logger.info("user.created", user_id=str(user.id), role=user.role)
        return user

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self._repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def get_earnings(self, user: User) -> EarningsBalance:
        return await self._earnings.get_balance(user.id)
