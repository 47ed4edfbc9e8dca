"""Provider earnings ledger.

Earnings are never stored as running balances. Each escrow movement
appends one entry, unique per (payment, kind), and balances are recomputed
by aggregation:

    escrow_held      on capture   pending   += net
    escrow_released  on release   total     += net, available += net, pending -= net
    escrow_refunded  on refund    pending   -= net

where net = subtotal - platform_fee.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from winnipeg_connect.domain.enums import LedgerEntryKind
from winnipeg_connect.domain.fees import round_money
from winnipeg_connect.infrastructure.database.repositories import EarningsRepository
from winnipeg_connect.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from winnipeg_connect.infrastructure.database.orm_models import Payment

logger = get_logger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class EarningsBalance:
    total: Decimal
    pending: Decimal
    available: Decimal

    def to_dict(self) -> dict:
        return {
            "total": str(self.total),
            "pending": str(self.pending),
            "available": str(self.available),
        }


class EarningsService:
    """Books escrow movements for the payee and reports balances."""

    def __init__(self, session: AsyncSession) -> None:
        self._repo = EarningsRepository(session)

    async def _book(self, payment: Payment, kind: LedgerEntryKind) -> bool:
        entry = await self._repo.record(payment.payee_id, payment.id, kind, payment.net_amount)
        if entry is None:
            logger.info(
                "earnings.duplicate_entry_ignored", payment_id=str(payment.id), kind=kind.value
            )
            return False
        logger.info(
            "earnings.booked",
            payment_id=str(payment.id),
            user_id=str(payment.payee_id),
            kind=kind.value,
            amount=str(payment.net_amount),
        )
        return True

    async def record_hold(self, payment: Payment) -> bool:
        return await self._book(payment, LedgerEntryKind.ESCROW_HELD)

    async def record_release(self, payment: Payment) -> bool:
        return await self._book(payment, LedgerEntryKind.ESCROW_RELEASED)

    async def record_refund(self, payment: Payment) -> bool:
        return await self._book(payment, LedgerEntryKind.ESCROW_REFUNDED)

    async def get_balance(self, user_id: uuid.UUID) -> EarningsBalance:
        """Recompute a provider's balances from the ledger."""
        totals = await self._repo.totals_by_kind(user_id)
        held = totals.get(LedgerEntryKind.ESCROW_HELD.value, ZERO)
        released = totals.get(LedgerEntryKind.ESCROW_RELEASED.value, ZERO)
        refunded = totals.get(LedgerEntryKind.ESCROW_REFUNDED.value, ZERO)
        return EarningsBalance(
            total=round_money(released),
            pending=round_money(held - released - refunded),
            available=round_money(released),
        )
