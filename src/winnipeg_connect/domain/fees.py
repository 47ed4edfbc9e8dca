"""Escrow fee computation.

All amounts are Decimals rounded half-up to cents. Each component is
computed once when the payment intent is created and stored on the payment;
nothing downstream re-derives them.

    platform_fee  = round(subtotal * 0.05, 2)
    processor_fee = round((subtotal + platform_fee) * 0.029 + 0.30, 2)
    total         = subtotal + platform_fee + processor_fee
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from winnipeg_connect.domain.enums import PaymentType
from winnipeg_connect.domain.exceptions import DomainValidationError

CENT = Decimal("0.01")

DEFAULT_PLATFORM_FEE_RATE = Decimal("0.05")
DEFAULT_PROCESSOR_FEE_RATE = Decimal("0.029")
DEFAULT_PROCESSOR_FIXED_FEE = Decimal("0.30")
DEFAULT_DEPOSIT_FRACTION = Decimal("0.5")


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to the smallest currency unit (cents)."""
    return int((round_money(amount) * 100).to_integral_value())


def calculate_platform_fee(
    subtotal: Decimal, rate: Decimal = DEFAULT_PLATFORM_FEE_RATE
) -> Decimal:
    return round_money(subtotal * rate)


def calculate_processor_fee(
    amount: Decimal,
    rate: Decimal = DEFAULT_PROCESSOR_FEE_RATE,
    fixed_fee: Decimal = DEFAULT_PROCESSOR_FIXED_FEE,
) -> Decimal:
    return round_money(amount * rate + fixed_fee)


def subtotal_for(
    quote_amount: Decimal,
    payment_type: PaymentType,
    deposit_fraction: Decimal = DEFAULT_DEPOSIT_FRACTION,
) -> Decimal:
    """Return the subtotal charged for a payment phase of a quote.

    Deposits charge ``deposit_fraction`` of the quote; every other phase
    charges the quoted amount unmodified.
    """
    if payment_type == PaymentType.DEPOSIT:
        return round_money(quote_amount * deposit_fraction)
    return Decimal(quote_amount)


@dataclass(frozen=True)
class PaymentAmounts:
    """The stored amount breakdown of one payment.

    Attributes:
        subtotal: What the payee is owed before platform fees.
        platform_fee: The marketplace commission.
        processor_fee: The card processor's cut, charged to the payer.
        total: What the payer is charged.
    """

    subtotal: Decimal
    platform_fee: Decimal
    processor_fee: Decimal
    total: Decimal

    @property
    def net_amount(self) -> Decimal:
        """Amount credited to the payee on release."""
        return self.subtotal - self.platform_fee

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "platform_fee": str(self.platform_fee),
            "processor_fee": str(self.processor_fee),
            "total": str(self.total),
        }


def calculate_amounts(
    subtotal: Decimal,
    platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
    processor_fee_rate: Decimal = DEFAULT_PROCESSOR_FEE_RATE,
    processor_fixed_fee: Decimal = DEFAULT_PROCESSOR_FIXED_FEE,
) -> PaymentAmounts:
    """Compute the full amount breakdown for a subtotal.

    Raises:
        DomainValidationError: If the subtotal is not positive.
    """
    if subtotal <= 0:
        raise DomainValidationError(f"Payment subtotal must be positive, got {subtotal}")

    platform_fee = calculate_platform_fee(subtotal, platform_fee_rate)
    processor_fee = calculate_processor_fee(
        subtotal + platform_fee, processor_fee_rate, processor_fixed_fee
    )
    return PaymentAmounts(
        subtotal=subtotal,
        platform_fee=platform_fee,
        processor_fee=processor_fee,
        total=subtotal + platform_fee + processor_fee,
    )
