"""Tests for the GatewayFactory."""

from __future__ import annotations

import pytest

from winnipeg_connect.config import Settings
from winnipeg_connect.gateways import GatewayFactory, SimulatedGateway, StripeGateway


class TestGatewayFactory:
    def test_supported_gateways(self) -> None:
        assert set(GatewayFactory.get_supported_gateways()) == {"simulated", "stripe"}

    def test_creates_simulated(self, settings: Settings) -> None:
        assert isinstance(GatewayFactory.create(settings), SimulatedGateway)

    def test_creates_stripe(self) -> None:
        settings = Settings(
            _env_file=None, payment_gateway="stripe", stripe_secret_key="sk_test_dummy"
        )
        assert isinstance(GatewayFactory.create(settings), StripeGateway)

    def test_stripe_without_key_fails_fast(self) -> None:
        settings = Settings(_env_file=None, payment_gateway="stripe", stripe_secret_key="")
        with pytest.raises(RuntimeError):
            GatewayFactory.create(settings)

    def test_unknown_gateway(self, settings: Settings) -> None:
        bogus = settings.model_copy(update={"payment_gateway": "paypal"})
        with pytest.raises(ValueError, match="Unknown payment gateway"):
            GatewayFactory.create(bogus)
