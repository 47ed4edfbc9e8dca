"""Payment Service: the escrow orchestrator.

Keeps Payment.status / Payment.escrow_status consistent with the quote and
job it pays for, and is the only caller of the payment gateway.

Lifecycle:
    create_payment_intent  quote accepted -> payment pending, gateway intent created
    confirm_payment        gateway requires_capture -> capture -> captured / held
    approve_release        one approval per party; release fires when the
                           predicate holds (and the payment is not disputed)
    release_payment        manual release by a party (predicate) or an admin
    refund_payment         authorized/captured + held -> refunded (an admin may
                           also refund a disputed payment)
    dispute_payment        held -> disputed, escrow stays held
    resolve_dispute        admin: disputed -> captured, escrow stays held

Every operation makes at most one gateway call and performs it before any
row is written, so a gateway failure leaves the payment in its last safe
state. Intent and refund calls carry deterministic gateway idempotency keys.

Operations that change an existing payment load it with a row lock and a
forced reload, so concurrent approvals from both parties see each other.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError

from winnipeg_connect.config import Settings, get_settings
from winnipeg_connect.domain.enums import (
    ApproverType,
    DisputeStatus,
    EntityType,
    EscrowStatus,
    EventType,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    QuoteStatus,
    ReleaseReason,
    SystemMessageType,
    UserRole,
)
from winnipeg_connect.domain.exceptions import (
    AlreadyApprovedError,
    AlreadyDisputedError,
    CannotRefundError,
    DomainValidationError,
    DuplicateOperationError,
    NotAuthorizedError,
    PaymentAlreadyExistsError,
    PaymentNotDisputedError,
    PaymentNotFoundError,
    PaymentNotHeldError,
    PaymentNotReadyError,
    QuoteNotAcceptedError,
    QuoteNotFoundError,
    ReleaseConditionsNotMetError,
)
from winnipeg_connect.domain.fees import (
    calculate_amounts,
    round_money,
    subtotal_for,
    to_minor_units,
)
from winnipeg_connect.domain.gateway_protocol import (
    INTENT_CANCELED,
    INTENT_REQUIRES_CAPTURE,
    INTENT_SUCCEEDED,
)
from winnipeg_connect.domain.state_machine import PaymentStateMachine
from winnipeg_connect.infrastructure import redis_client
from winnipeg_connect.infrastructure.database.orm_models import Payment
from winnipeg_connect.infrastructure.database.repositories import (
    ApprovalRepository,
    EventRepository,
    PaymentRepository,
    QuoteRepository,
)
from winnipeg_connect.logging_config import get_logger
from winnipeg_connect.services.base import TransitionService
from winnipeg_connect.services.earnings_service import EarningsService
from winnipeg_connect.services.notification_service import NotificationService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from winnipeg_connect.domain.gateway_protocol import PaymentGateway
    from winnipeg_connect.infrastructure.database.orm_models import AuditEvent, User

logger = get_logger(__name__)

IDEMPOTENCY_SCOPE = "payment-intent"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def intent_idempotency_key(quote_id: uuid.UUID, payment_type: PaymentType, attempt: int) -> str:
    return f"intent:{quote_id}:{payment_type.value}:{attempt}"


def refund_idempotency_key(payment_id: uuid.UUID, amount_minor: int) -> str:
    return f"refund:{payment_id}:{amount_minor}"


class PaymentService(TransitionService):
    """Runs the escrow payment lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGateway,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(session)
        self._gateway = gateway
        self._settings = settings or get_settings()
        self._payment_repo = PaymentRepository(session)
        self._quote_repo = QuoteRepository(session)
        self._approval_repo = ApprovalRepository(session)
        self._event_repo = EventRepository(session)
        self._earnings = EarningsService(session)
        self._notifications = NotificationService(session)

    # ------------------------------------------------------------------
    # Intent creation
    # ------------------------------------------------------------------

    async def create_payment_intent(
        self,
        seeker: User,
        quote_id: uuid.UUID,
        payment_type: PaymentType = PaymentType.DEPOSIT,
        payment_method: PaymentMethod = PaymentMethod.CARD,
        milestone: dict | None = None,
        idempotency_key: str | None = None,
    ) -> tuple[Payment, str | None]:
        """Create a pending payment and its gateway intent for an accepted quote.

        Returns:
            (payment, client_secret). The client secret is handed to the payer's
            browser to confirm the card and is not stored.

        Raises:
            NotAuthorizedError: If the caller is not the quote's seeker.
            QuoteNotAcceptedError: If the quote is not accepted.
            PaymentAlreadyExistsError: If an active payment of this type exists.
            DuplicateOperationError: If ``idempotency_key`` was used for a
                different quote or payment type.
            PaymentGatewayError: If the gateway refuses the intent.
        """
        replayed = await self._replay_idempotent(
            seeker, idempotency_key, quote_id, payment_type
        )
        if replayed is not None:
            return replayed

        quote = await self._quote_repo.get_by_id(quote_id)
        if quote is None:
            raise QuoteNotFoundError(str(quote_id))
        if quote.seeker_id != seeker.id:
            raise NotAuthorizedError("pay for this quote")
        if quote.status != QuoteStatus.ACCEPTED:
            raise QuoteNotAcceptedError(str(quote.id))
        if await self._payment_repo.get_active_for_quote(quote.id, payment_type.value):
            raise PaymentAlreadyExistsError(str(quote.id), payment_type.value)

        s = self._settings
        amounts = calculate_amounts(
            subtotal_for(quote.price_amount, payment_type, s.deposit_fraction),
            platform_fee_rate=s.platform_fee_rate,
            processor_fee_rate=s.processor_fee_rate,
            processor_fixed_fee=s.processor_fixed_fee,
        )

        # One key per attempt: a failed or refunded payment for this quote and
        # type moves the counter on, a rolled-back attempt does not.
        attempt = await self._payment_repo.count(
            Payment.quote_id == quote.id, Payment.payment_type == payment_type.value
        )
        intent = await self._gateway.create_intent(
            amount_minor=to_minor_units(amounts.total),
            currency=s.currency,
            metadata={
                "quoteId": str(quote.id),
                "jobId": str(quote.job_id),
                "providerId": str(quote.provider_id),
                "seekerId": str(seeker.id),
                "paymentType": payment_type.value,
            },
            idempotency_key=intent_idempotency_key(quote.id, payment_type, attempt),
        )

        now = _utcnow()
        payment = Payment(
            job_id=quote.job_id,
            quote_id=quote.id,
            payer_id=seeker.id,
            payee_id=quote.provider_id,
            subtotal=amounts.subtotal,
            platform_fee=amounts.platform_fee,
            processor_fee=amounts.processor_fee,
            total=amounts.total,
            payment_type=payment_type.value,
            payment_method=payment_method.value,
            currency=s.currency,
            milestone=milestone,
            status=PaymentStatus.PENDING.value,
            gateway_intent_id=intent.intent_id,
            hold_until=now + timedelta(days=s.escrow_hold_days),
            approvals=[],
        )
        try:
            payment = await self._payment_repo.create(payment)
        except IntegrityError as err:
            logger.warning(
                "payment.duplicate_intent_orphaned",
                quote_id=str(quote.id),
                intent_id=intent.intent_id,
            )
            raise PaymentAlreadyExistsError(str(quote.id), payment_type.value) from err

        await self._event_repo.record(
            entity_type=EntityType.PAYMENT,
            entity_id=payment.id,
            event_type=EventType.PAYMENT_CREATED,
            old_status=None,
            new_status=payment.status,
            actor=str(seeker.id),
            metadata={"intent_id": intent.intent_id, **amounts.to_dict()},
        )
        await self._remember_idempotent(
            seeker, idempotency_key, payment, payment_type, intent.client_secret
        )

        logger.info(
            "payment.intent_created",
            payment_id=str(payment.id),
            quote_id=str(quote.id),
            payment_type=payment_type.value,
            total=str(amounts.total),
        )
        return payment, intent.client_secret

    # ------------------------------------------------------------------
    # Confirmation (authorize + capture into escrow)
    # ------------------------------------------------------------------

    async def confirm_payment(self, user: User, intent_id: str) -> Payment:
        """Capture an authorized intent and hold the funds in escrow.

        Keyed by the gateway intent id and idempotent: a payment that already
        left pending/authorized is returned unchanged. An intent the gateway
        reports as canceled marks the payment failed.

        Raises:
            PaymentNotReadyError: If the gateway has no capturable authorization.
            PaymentGatewayError: If the capture fails (payment stays pending).
        """
        payment = await self._payment_repo.get_by_intent_id(intent_id)
        if payment is None:
            raise PaymentNotFoundError(intent_id)
        if payment.payer_id != user.id:
            raise NotAuthorizedError("confirm this payment")

        if payment.status not in (PaymentStatus.PENDING, PaymentStatus.AUTHORIZED):
            logger.info(
                "payment.confirm_replayed", payment_id=str(payment.id), status=payment.status
            )
            return payment

        intent = await self._gateway.retrieve(intent_id)

        if intent.status == INTENT_CANCELED:
            old_status, new_status = await self._transition(
                self._payment_repo, payment, PaymentStateMachine, "fail", "payment"
            )
            await self._record(payment, EventType.PAYMENT_FAILED, old_status, new_status, user,
                               {"gateway_status": intent.status})
            logger.warning("payment.failed", payment_id=str(payment.id), intent_id=intent_id)
            return payment

        if intent.status == INTENT_REQUIRES_CAPTURE:
            await self._gateway.capture(intent_id)
        elif intent.status != INTENT_SUCCEEDED:
            raise PaymentNotReadyError(intent_id, intent.status)

        if payment.status == PaymentStatus.PENDING:
            old_status, new_status = await self._transition(
                self._payment_repo, payment, PaymentStateMachine, "authorize", "payment"
            )
            await self._record(payment, EventType.PAYMENT_AUTHORIZED, old_status, new_status, user)

        old_status, new_status = await self._transition(
            self._payment_repo,
            payment,
            PaymentStateMachine,
            "capture",
            "payment",
            escrow_status=EscrowStatus.HELD.value,
        )
        await self._record(payment, EventType.PAYMENT_CAPTURED, old_status, new_status, user,
                           {"escrow_status": EscrowStatus.HELD.value})
        await self._earnings.record_hold(payment)

        logger.info(
            "payment.captured",
            payment_id=str(payment.id),
            intent_id=intent_id,
            total=str(payment.total),
        )
        return payment

    # ------------------------------------------------------------------
    # Approvals & release
    # ------------------------------------------------------------------

    async def approve_release(
        self, payment_id: uuid.UUID, user: User, notes: str = ""
    ) -> tuple[Payment, bool]:
        """Record a party's release approval and release if the predicate now holds.

        Returns:
            (payment, released) where ``released`` says whether this approval
            triggered the release.

        Raises:
            PaymentNotHeldError: If no funds are held.
            AlreadyApprovedError: If this user already approved.
        """
        payment = await self._get_payment_for_update(payment_id)
        if not payment.is_party(user.id):
            raise NotAuthorizedError("approve this payment")
        if payment.escrow_status != EscrowStatus.HELD:
            raise PaymentNotHeldError(str(payment.id))

        if payment.has_approval_from(user.id):
            raise AlreadyApprovedError(str(payment.id))

        is_payer = payment.payer_id == user.id
        user_type = ApproverType.SEEKER if is_payer else ApproverType.PROVIDER
        approval = await self._approval_repo.add(payment.id, user.id, user_type.value, notes)
        if approval is None:
            raise AlreadyApprovedError(str(payment.id))

        if is_payer:
            payment.seeker_approval = True
        else:
            payment.provider_confirmation = True
        await self._session.flush()
        await self._session.refresh(payment, attribute_names=["approvals"])

        await self._record(
            payment,
            EventType.RELEASE_APPROVED,
            payment.status,
            payment.status,
            user,
            {"user_type": user_type.value},
        )
        logger.info(
            "payment.release_approved",
            payment_id=str(payment.id),
            user_type=user_type.value,
            can_be_released=payment.can_be_released,
        )

        # A disputed payment is only ever released by an admin.
        if payment.status == PaymentStatus.DISPUTED or not payment.can_be_released:
            return payment, False

        await self._release(payment, user, ReleaseReason.MUTUAL_AGREEMENT)
        return payment, True

    async def release_payment(self, payment_id: uuid.UUID, user: User) -> Payment:
        """Manually release held funds.

        Parties may release only when the release predicate holds and the
        payment is not disputed. An admin may release any held payment, which
        also resolves an open dispute.
        """
        payment = await self._get_payment_for_update(payment_id)
        if not (payment.is_party(user.id) or user.is_admin):
            raise NotAuthorizedError("release this payment")
        if payment.escrow_status != EscrowStatus.HELD:
            raise PaymentNotHeldError(str(payment.id))

        predicate_holds = payment.can_be_released and payment.status != PaymentStatus.DISPUTED
        if predicate_holds:
            reason = ReleaseReason.JOB_COMPLETED
        elif user.is_admin:
            reason = ReleaseReason.ADMIN_RELEASE
        else:
            raise ReleaseConditionsNotMetError(str(payment.id))

        await self._release(payment, user, reason)
        return payment

    async def _release(self, payment: Payment, user: User, reason: ReleaseReason) -> None:
        now = _utcnow()
        values: dict[str, Any] = {
            "escrow_status": EscrowStatus.RELEASED.value,
            "released_at": now,
            "released_by_id": user.id,
            "release_reason": reason.value,
        }
        if payment.is_disputed and payment.dispute_status in (
            DisputeStatus.OPEN, DisputeStatus.UNDER_REVIEW
        ):
            values.update(self._dispute_settlement(user, "Funds released to the provider", now))

        old_status, new_status = await self._transition(
            self._payment_repo, payment, PaymentStateMachine, "release", "payment", **values
        )
        await self._earnings.record_release(payment)
        await self._record(payment, EventType.PAYMENT_RELEASED, old_status, new_status, user,
                           {"reason": reason.value, "net_amount": str(payment.net_amount)})
        await self._notifications.emit_system_message(
            sender_id=payment.payer_id,
            receiver_id=payment.payee_id,
            system_type=SystemMessageType.PAYMENT_RELEASED,
            job_id=payment.job_id,
            data={"payment_id": str(payment.id), "amount": str(payment.net_amount)},
        )
        logger.info(
            "payment.released",
            payment_id=str(payment.id),
            reason=reason.value,
            net=str(payment.net_amount),
        )

    # ------------------------------------------------------------------
    # Refund & dispute
    # ------------------------------------------------------------------

    async def refund_payment(
        self,
        payment_id: uuid.UUID,
        user: User,
        reason: str | None = None,
        amount: Decimal | None = None,
    ) -> Payment:
        """Refund held funds to the payer. Payer or admin only.

        An admin may also refund a disputed payment; the refund settles the
        dispute in the payer's favour.

        Raises:
            CannotRefundError: Unless status is authorized/captured (or disputed,
                for an admin) and escrow held.
            DomainValidationError: If ``amount`` is not in (0, total].
        """
        payment = await self._get_payment_for_update(payment_id)
        if not (payment.payer_id == user.id or user.is_admin):
            raise NotAuthorizedError("refund this payment")
        admin_settles_dispute = (
            user.is_admin
            and payment.status == PaymentStatus.DISPUTED
            and payment.escrow_status == EscrowStatus.HELD
        )
        if not (payment.can_be_refunded() or admin_settles_dispute):
            raise CannotRefundError(str(payment.id), payment.status)

        refund_amount = round_money(amount) if amount is not None else payment.total
        if refund_amount <= 0 or refund_amount > payment.total:
            raise DomainValidationError(
                f"Refund amount must be between 0.01 and {payment.total}, got {refund_amount}"
            )

        amount_minor = to_minor_units(refund_amount)
        refund_id = await self._gateway.refund(
            payment.gateway_intent_id,
            amount_minor,
            idempotency_key=refund_idempotency_key(payment.id, amount_minor),
        )

        now = _utcnow()
        values: dict[str, Any] = {
            "escrow_status": EscrowStatus.REFUNDED.value,
            "refunded_at": now,
            "refund_reason": reason,
            "refund_amount": refund_amount,
            "gateway_refund_id": refund_id,
        }
        if admin_settles_dispute:
            values.update(self._dispute_settlement(user, "Funds refunded to the payer", now))

        old_status, new_status = await self._transition(
            self._payment_repo, payment, PaymentStateMachine, "refund", "payment", **values
        )
        await self._earnings.record_refund(payment)
        await self._record(payment, EventType.PAYMENT_REFUNDED, old_status, new_status, user,
                           {"amount": str(refund_amount), "refund_id": refund_id})

        logger.info(
            "payment.refunded",
            payment_id=str(payment.id),
            amount=str(refund_amount),
            refund_id=refund_id,
        )
        return payment

    async def dispute_payment(self, payment_id: uuid.UUID, user: User, reason: str) -> Payment:
        """Open a dispute on held funds. Escrow stays held until an admin acts."""
        reason = (reason or "").strip()
        if not reason:
            raise DomainValidationError("Dispute reason is required")

        payment = await self._get_payment_for_update(payment_id)
        if not payment.is_party(user.id):
            raise NotAuthorizedError("dispute this payment")
        if payment.is_disputed:
            raise AlreadyDisputedError(str(payment.id))
        if payment.escrow_status != EscrowStatus.HELD:
            raise PaymentNotHeldError(str(payment.id))

        old_status, new_status = await self._transition(
            self._payment_repo,
            payment,
            PaymentStateMachine,
            "dispute",
            "payment",
            is_disputed=True,
            disputed_at=_utcnow(),
            disputed_by_id=user.id,
            dispute_reason=reason,
            dispute_status=DisputeStatus.OPEN.value,
        )
        await self._record(payment, EventType.DISPUTE_RAISED, old_status, new_status, user,
                           {"reason": reason})

        logger.info("payment.disputed", payment_id=str(payment.id), by=str(user.id))
        return payment

    async def resolve_dispute(
        self, payment_id: uuid.UUID, admin: User, resolution: str
    ) -> Payment:
        """Close a dispute without moving money. Admin only.

        The payment goes back to captured with the funds still held, and the
        normal release rules apply again: approvals given before or during the
        dispute still count, so a party may release once both are in.

        Raises:
            PaymentNotDisputedError: If the payment has no open dispute.
        """
        resolution = (resolution or "").strip()
        if not resolution:
            raise DomainValidationError("Dispute resolution is required")
        if not admin.is_admin:
            raise NotAuthorizedError("resolve this dispute")

        payment = await self._get_payment_for_update(payment_id)
        if payment.status != PaymentStatus.DISPUTED or payment.dispute_status not in (
            DisputeStatus.OPEN, DisputeStatus.UNDER_REVIEW
        ):
            raise PaymentNotDisputedError(str(payment.id))

        old_status, new_status = await self._transition(
            self._payment_repo,
            payment,
            PaymentStateMachine,
            "resolve",
            "payment",
            **self._dispute_settlement(admin, resolution, _utcnow()),
        )
        await self._record(payment, EventType.DISPUTE_RESOLVED, old_status, new_status, admin,
                           {"resolution": resolution})

        logger.info("payment.dispute_resolved", payment_id=str(payment.id), by=str(admin.id))
        return payment

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_payment(self, payment_id: uuid.UUID, user: User) -> Payment:
        payment = await self._get_payment_or_raise(payment_id)
        if not (payment.is_party(user.id) or user.is_admin):
            raise NotAuthorizedError("view this payment")
        return payment

    async def get_payment_events(self, payment_id: uuid.UUID, user: User) -> list[AuditEvent]:
        payment = await self.get_payment(payment_id, user)
        return await self._event_repo.get_by_entity(EntityType.PAYMENT, payment.id)

    async def list_my_payments(
        self,
        user: User,
        page: int,
        limit: int,
        status: str | None = None,
        escrow_status: str | None = None,
    ) -> tuple[list[Payment], int]:
        return await self._payment_repo.list_for_user(
            user, page, limit, status=status, escrow_status=escrow_status
        )

    async def get_stats(self, user: User) -> dict[str, Any]:
        """Payment overview for the caller's role."""
        repo = self._payment_repo
        held = Payment.escrow_status == EscrowStatus.HELD.value
        released = Payment.status == PaymentStatus.RELEASED.value

        if user.role == UserRole.PROVIDER:
            mine = Payment.payee_id == user.id
            return {
                "total_earnings": str(round_money(await repo.sum_amount(
                    Payment.subtotal, mine, released
                ))),
                "pending_payments": await repo.count(mine, held),
                "completed_payments": await repo.count(mine, released),
                "disputed_payments": await repo.count(
                    mine, Payment.status == PaymentStatus.DISPUTED.value
                ),
            }

        mine = Payment.payer_id == user.id
        spent = Payment.status.in_(
            [PaymentStatus.CAPTURED.value, PaymentStatus.RELEASED.value]
        )
        return {
            "total_spent": str(round_money(await repo.sum_amount(Payment.total, mine, spent))),
            "active_escrows": await repo.count(mine, held),
            "completed_payments": await repo.count(mine, released),
            "refunded_payments": await repo.count(
                mine, Payment.status == PaymentStatus.REFUNDED.value
            ),
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_payment_or_raise(self, payment_id: uuid.UUID) -> Payment:
        payment = await self._payment_repo.get_by_id(payment_id)
        if payment is None:
            raise PaymentNotFoundError(str(payment_id))
        return payment

    async def _get_payment_for_update(self, payment_id: uuid.UUID) -> Payment:
        payment = await self._payment_repo.get_for_update(payment_id)
        if payment is None:
            raise PaymentNotFoundError(str(payment_id))
        return payment

    @staticmethod
    def _dispute_settlement(user: User, resolution: str, now: datetime) -> dict[str, Any]:
        return {
            "dispute_status": DisputeStatus.RESOLVED.value,
            "dispute_resolution": resolution,
            "dispute_resolved_at": now,
            "dispute_resolved_by": "admin" if user.is_admin else str(user.id),
        }

    async def _record(
        self,
        payment: Payment,
        event_type: EventType,
        old_status: str | None,
        new_status: str | None,
        user: User,
        metadata: dict | None = None,
    ) -> None:
        await self._event_repo.record(
            entity_type=EntityType.PAYMENT,
            entity_id=payment.id,
            event_type=event_type,
            old_status=old_status,
            new_status=new_status,
            actor=str(user.id),
            metadata=metadata,
        )

    async def _replay_idempotent(
        self,
        seeker: User,
        idempotency_key: str | None,
        quote_id: uuid.UUID,
        payment_type: PaymentType,
    ) -> tuple[Payment, str | None] | None:
        """Return the payment an earlier request with this key created, if any.

        Raises:
            DuplicateOperationError: If the key was first used for another
                quote or payment type.
        """
        if not idempotency_key or not redis_client.is_redis_available():
            return None
        try:
            stored = await redis_client.get_idempotent_result(
                IDEMPOTENCY_SCOPE, f"{seeker.id}:{idempotency_key}"
            )
        except RedisError:
            logger.warning("payment.idempotency_lookup_failed", exc_info=True)
            return None
        if stored is None:
            return None

        record = json.loads(stored)
        if (record.get("quote_id"), record.get("payment_type")) != (
            str(quote_id), payment_type.value
        ):
            logger.warning(
                "payment.idempotency_key_mismatch",
                seeker_id=str(seeker.id),
                stored_quote_id=record.get("quote_id"),
                quote_id=str(quote_id),
            )
            raise DuplicateOperationError(idempotency_key)

        payment = await self._payment_repo.get_by_id(uuid.UUID(record["payment_id"]))
        if payment is None:
            # The original request rolled back after remembering the key.
            return None
        logger.info("payment.intent_replayed", payment_id=str(payment.id))
        return payment, record.get("client_secret")

    async def _remember_idempotent(
        self,
        seeker: User,
        idempotency_key: str | None,
        payment: Payment,
        payment_type: PaymentType,
        client_secret: str | None,
    ) -> None:
        if not idempotency_key or not redis_client.is_redis_available():
            return
        record = {
            "payment_id": str(payment.id),
            "quote_id": str(payment.quote_id),
            "payment_type": payment_type.value,
            "client_secret": client_secret,
        }
        try:
            await redis_client.set_idempotent_result(
                IDEMPOTENCY_SCOPE, f"{seeker.id}:{idempotency_key}", json.dumps(record)
            )
        except RedisError:
            logger.warning("payment.idempotency_store_failed", exc_info=True)
