"""Pydantic schemas for the user directory."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from winnipeg_connect.domain.enums import UserRole


class CreateUserRequest(BaseModel):
    """Request body for registering a user in the directory."""

    email: str = Field(
        ...,
        max_length=255,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        examples=["alex@example.ca"],
    )
    first_name: str = Field(..., min_length=1, max_length=80)
    last_name: str = Field(..., min_length=1, max_length=80)
    role: UserRole
    is_admin: bool = False


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: str
    is_admin: bool
    rating_average: Decimal
    rating_count: int
    created_at: datetime


class EarningsResponse(BaseModel):
    """A provider's balances, recomputed from the earnings ledger."""

    total: Decimal
    pending: Decimal
    available: Decimal
