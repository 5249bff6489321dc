"""Order totals from line price snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol

CENT = Decimal("0.01")


class PricedLine(Protocol):
    price: Decimal
    final_price: Decimal
    quantity: int


@dataclass(frozen=True)
class TaxConfig:
    """Restaurant tax settings; ``tax_rate`` is a percentage (5 means 5%)."""

    tax_rate: Decimal
    is_tax_included_in_price: bool

    @classmethod
    def of(cls, restaurant) -> "TaxConfig":
        return cls(
            tax_rate=Decimal(restaurant.tax_rate or 0),
            is_tax_included_in_price=bool(restaurant.is_tax_included_in_price),
        )


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def price_lines(lines: Iterable[PricedLine], tax: TaxConfig) -> PriceBreakdown:
    """Compute subtotal, tax, discount and total for ``lines``.

    ``subtotal`` sums the discounted ``final_price`` of every unit and
    ``discount_amount`` the difference to the list ``price``. Tax is added on
    top of the subtotal unless prices already include it. Amounts are rounded
    to cents, with ``total_amount`` always equal to ``subtotal + tax_amount``.
    """

    subtotal = Decimal("0")
    discount = Decimal("0")
    for line in lines:
        qty = Decimal(line.quantity)
        subtotal += Decimal(line.final_price) * qty
        discount += (Decimal(line.price) - Decimal(line.final_price)) * qty

    subtotal = _money(subtotal)
    if tax.is_tax_included_in_price:
        tax_amount = Decimal("0.00")
    else:
        tax_amount = _money(subtotal * Decimal(tax.tax_rate) / Decimal("100"))
    return PriceBreakdown(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=_money(discount),
        total_amount=subtotal + tax_amount,
    )
