"""Tests for the structlog processors."""

from __future__ import annotations

from decimal import Decimal

from winnipeg_connect.logging_config import REDACTED, redact_secrets, render_decimals


class TestRedactSecrets:
    def test_masks_client_secret(self) -> None:
        event = redact_secrets(None, "info", {"event": "x", "client_secret": "pi_1_secret_abc"})
        assert event["client_secret"] == REDACTED

    def test_leaves_other_fields(self) -> None:
        event = redact_secrets(None, "info", {"event": "x", "payment_id": "p1"})
        assert event == {"event": "x", "payment_id": "p1"}

    def test_empty_secret_stays_empty(self) -> None:
        assert redact_secrets(None, "info", {"client_secret": None})["client_secret"] is None


class TestRenderDecimals:
    def test_two_places(self) -> None:
        event = render_decimals(None, "info", {"total": Decimal("486.5"), "count": 2})
        assert event == {"total": "486.50", "count": 2}
