"""Line item and billing total calculations.

All figures are Decimal. Each item figure is rounded half-up to cents once,
and billing aggregates are plain sums of the rounded item figures.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from casebook.app.core.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_money(value: Decimal | float | int | str | None) -> Decimal:
    """Quantize a value to cents using the single rounding rule (half-up)."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def as_decimal(value: Any, field: str) -> Decimal:
    # Missing numeric fields count as zero
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", field=field)
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return number


def normalize_vat(raw: Any) -> Decimal:
    """Return the VAT percentage from a ``{"rate": n}`` object or a legacy flat number."""
    if isinstance(raw, Mapping):
        raw = raw.get("rate")
    elif raw is not None and hasattr(raw, "rate"):
        raw = raw.rate
    return as_decimal(raw, "vat")


def _get(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


@dataclass(frozen=True)
class LineAmounts:
    total: Decimal
    discount: Decimal
    vat: Decimal
    amount: Decimal


@dataclass(frozen=True)
class Totals:
    sub_total: Decimal = ZERO
    discount: Decimal = ZERO
    tax: Decimal = ZERO
    grand_total: Decimal = ZERO

    def as_dict(self) -> dict:
        return {
            "sub_total": self.sub_total,
            "discount": self.discount,
            "tax": self.tax,
            "grand_total": self.grand_total,
        }


def compute_line(item: Any) -> LineAmounts:
    """Price a single line item: quantity x price, less discount %, plus VAT % on the remainder."""
    quantity = as_decimal(_get(item, "quantity"), "quantity")
    price = as_decimal(_get(item, "price"), "price")
    discount_rate = as_decimal(_get(item, "discount"), "discount")
    vat_source = _get(item, "vat")
    if vat_source is None:
        vat_source = _get(item, "vat_rate")
    vat_rate = normalize_vat(vat_source)

    for field, value in (("quantity", quantity), ("price", price), ("discount", discount_rate), ("vat", vat_rate)):
        if value < 0:
            raise ValidationError(f"{field} must not be negative", field=field)
    if discount_rate > HUNDRED:
        raise ValidationError("discount must be a percentage between 0 and 100", field="discount")
    if vat_rate > HUNDRED:
        raise ValidationError("vat must be a percentage between 0 and 100", field="vat")

    item_total = to_money(quantity * price)
    item_discount = to_money(item_total * discount_rate / HUNDRED)
    item_vat = to_money((item_total - item_discount) * vat_rate / HUNDRED)
    return LineAmounts(
        total=item_total,
        discount=item_discount,
        vat=item_vat,
        amount=item_total - item_discount + item_vat,
    )


def compute_totals(items: Iterable[Any] | None) -> Totals:
    """Sum subtotal, discount, tax and grand total over ``items``; empty input gives zeros."""
    sub_total = discount = tax = grand_total = ZERO
    for item in items or ():
        line = compute_line(item)
        sub_total += line.total
        discount += line.discount
        tax += line.vat
        grand_total += line.amount
    return Totals(sub_total=sub_total, discount=discount, tax=tax, grand_total=grand_total)
