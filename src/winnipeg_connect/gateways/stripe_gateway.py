"""Stripe adapter for manual-capture PaymentIntents.

The Stripe Python SDK is synchronous, so every call runs in a worker
thread. Connection errors are retried with exponential backoff (tenacity);
every other Stripe error surfaces as PaymentGatewayError. Calls that create
something (intents, refunds) carry the caller's idempotency key, so a retry
after a lost response cannot charge or refund twice.
"""

from __future__ import annotations

import asyncio
from typing import Any

import stripe
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from winnipeg_connect.domain.exceptions import PaymentGatewayError
from winnipeg_connect.domain.gateway_protocol import GatewayIntent
from winnipeg_connect.logging_config import get_logger

logger = get_logger(__name__)


def _to_intent(obj: Any) -> GatewayIntent:
    """Normalize a Stripe PaymentIntent onto the gateway-neutral shape."""
    return GatewayIntent(
        intent_id=obj["id"],
        status=obj["status"],
        amount_minor=obj["amount"],
        currency=obj["currency"],
        client_secret=obj.get("client_secret"),
        metadata=dict(obj.get("metadata") or {}),
    )


def _request_options(idempotency_key: str | None) -> dict[str, str]:
    """Stripe request options. The key is sent unchanged on every retry of a call."""
    return {"idempotency_key": idempotency_key} if idempotency_key else {}


class StripeGateway:
    """Wrapper around the Stripe Python SDK to isolate processor concerns."""

    def __init__(
        self, secret_key: str, max_attempts: int = 3, backoff_seconds: float = 0.5
    ) -> None:
        if not secret_key:
            raise RuntimeError("Stripe secret key is missing; configure STRIPE_SECRET_KEY.")
        stripe.api_key = secret_key
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds

    @classmethod
    def from_settings(cls, settings) -> StripeGateway:  # noqa: ANN001
        return cls(settings.stripe_secret_key, max_attempts=settings.stripe_max_attempts)

    async def _call(self, operation: str, fn, /, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN001
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=self._backoff_seconds, max=8),
                retry=retry_if_exception_type(stripe.APIConnectionError),
                reraise=True,
            ):
                with attempt:
                    return await asyncio.to_thread(fn, *args, **kwargs)
        except stripe.StripeError as exc:
            logger.error(
                "gateway.stripe.error",
                operation=operation,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise PaymentGatewayError(
                f"Stripe {operation} failed: {exc.user_message or exc}",
                intent_id=kwargs.get("payment_intent") or (args[0] if args else None),
            ) from exc

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ) -> GatewayIntent:
        intent = await self._call(
            "create_intent",
            stripe.PaymentIntent.create,
            amount=amount_minor,
            currency=currency.lower(),
            payment_method_types=["card"],
            capture_method="manual",
            metadata={k: str(v) for k, v in metadata.items()},
            **_request_options(idempotency_key),
        )
        logger.info("gateway.stripe.intent_created", intent_id=intent["id"], amount=amount_minor)
        return _to_intent(intent)

    async def retrieve(self, intent_id: str) -> GatewayIntent:
        return _to_intent(await self._call("retrieve", stripe.PaymentIntent.retrieve, intent_id))

    async def capture(self, intent_id: str) -> GatewayIntent:
        intent = await self._call("capture", stripe.PaymentIntent.capture, intent_id)
        logger.info("gateway.stripe.captured", intent_id=intent_id)
        return _to_intent(intent)

    async def refund(
        self, intent_id: str, amount_minor: int, idempotency_key: str | None = None
    ) -> str:
        refund = await self._call(
            "refund",
            stripe.Refund.create,
            payment_intent=intent_id,
            amount=amount_minor,
            reason="requested_by_customer",
            **_request_options(idempotency_key),
        )
        logger.info("gateway.stripe.refunded", intent_id=intent_id, refund_id=refund["id"])
        return refund["id"]
