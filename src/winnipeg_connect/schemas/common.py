"""Schemas shared across resources: pagination, audit events, health, errors and
partial updates."""

from __future__ import annotations

import math
import uuid
from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Pagination(BaseModel):
    current: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        return cls(
            current=page,
            pages=math.ceil(total / limit) if limit else 0,
            total=total,
            has_next=page * limit < total,
            has_prev=page > 1,
        )


class AuditEventResponse(BaseModel):
    """Response schema for an audit event."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    entity_type: str
    entity_id: uuid.UUID
    event_type: str
    old_status: str | None
    new_status: str | None
    actor: str
    metadata: dict | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime


class ErrorResponse(BaseModel):
    """Body of every error response produced by the API middleware."""

    error: str = Field(description="Machine-readable error code, e.g. QUOTE_EXPIRED")
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
    redis: str = "unknown"
    payment_gateway: str = "unknown"


ERROR_RESPONSES: dict[int | str, dict] = {
    status_code: {"model": ErrorResponse} for status_code in (400, 401, 403, 404, 409)
}


class PartialUpdate(BaseModel):
    """Base for partial-update bodies: omitted fields are left unchanged.

    Fields listed in ``not_nullable`` are stored in NOT NULL columns. Sending
    one of them as an explicit null is a validation error (422).
    """

    not_nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> PartialUpdate:
        nulled = sorted(
            name
            for name in self.not_nullable & self.model_fields_set
            if getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
        return self
