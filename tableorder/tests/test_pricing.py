from decimal import Decimal

from tableorder.app.menu import ResolvedLine
from tableorder.app.pricing import TaxConfig, price_lines


def _line(price, final_price, qty):
    return ResolvedLine(
        food_item_id="item",
        variant_name=None,
        quantity=qty,
        price=Decimal(price),
        final_price=Decimal(final_price),
        food_name="Item",
        food_type="veg",
    )


def test_tax_added_on_top_of_subtotal():
    result = price_lines([_line("100", "100", 2)], TaxConfig(Decimal("5"), False))
    assert result.subtotal == Decimal("200.00")
    assert result.tax_amount == Decimal("10.00")
    assert result.discount_amount == Decimal("0.00")
    assert result.total_amount == Decimal("210.00")


def test_tax_included_in_price_adds_nothing():
    result = price_lines([_line("100", "100", 3)], TaxConfig(Decimal("18"), True))
    assert result.tax_amount == Decimal("0")
    assert result.total_amount == result.subtotal == Decimal("300.00")


def test_discount_is_difference_to_list_price():
    lines = [_line("60", "50", 2), _line("200", "180", 1), _line("100", "100", 1)]
    result = price_lines(lines, TaxConfig(Decimal("0"), False))
    assert result.subtotal == Decimal("380.00")
    assert result.discount_amount == Decimal("40.00")
    assert result.total_amount == Decimal("380.00")


def test_tax_rounds_half_up_to_cents():
    result = price_lines([_line("33.30", "33.30", 1)], TaxConfig(Decimal("5"), False))
    # 33.30 * 5% = 1.665
    assert result.tax_amount == Decimal("1.67")
    assert result.total_amount == result.subtotal + result.tax_amount

