"""Payment gateway adapters and factory.

Two adapters satisfy the PaymentGateway protocol:
    - StripeGateway:     Stripe manual-capture PaymentIntents
    - SimulatedGateway:  In-memory, instant, for development and tests

The GatewayFactory creates the adapter named by ``settings.payment_gateway``.
"""

from __future__ import annotations

from functools import lru_cache

from winnipeg_connect.config import Settings, get_settings
from winnipeg_connect.domain.gateway_protocol import GatewayIntent, PaymentGateway
from winnipeg_connect.gateways.simulated import SimulatedGateway
from winnipeg_connect.gateways.stripe_gateway import StripeGateway


class GatewayFactory:
    """Factory that creates the payment gateway named in the settings.

    Usage:
        gateway = GatewayFactory.create(get_settings())
        intent = await gateway.create_intent(48650, "cad", {"quoteId": "..."})
    """

    _registry: dict[str, type] = {
        "simulated": SimulatedGateway,
        "stripe": StripeGateway,
    }

    @classmethod
    def create(cls, settings: Settings) -> PaymentGateway:
        """Create a gateway instance.

        Raises:
            ValueError: If ``settings.payment_gateway`` names no known adapter.
        """
        gateway_class = cls._registry.get(settings.payment_gateway)
        if gateway_class is None:
            raise ValueError(
                f"Unknown payment gateway: '{settings.payment_gateway}'. "
                f"Valid gateways: {list(cls._registry.keys())}"
            )
        return gateway_class.from_settings(settings)

    @classmethod
    def get_supported_gateways(cls) -> list[str]:
        return list(cls._registry.keys())


@lru_cache(maxsize=1)
def get_gateway() -> PaymentGateway:
    """Process-wide gateway singleton (the simulated gateway keeps its intents in memory)."""
    return GatewayFactory.create(get_settings())


__all__ = [
    "GatewayFactory",
    "GatewayIntent",
    "PaymentGateway",
    "SimulatedGateway",
    "StripeGateway",
    "get_gateway",
]
