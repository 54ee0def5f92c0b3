"""Derivation of a billing's payment status from its totals."""

from datetime import date
from decimal import Decimal

from casebook.app.models.billing import PaymentStatus
from casebook.app.services.calculator import ZERO, to_money


def derive_payment_status(grand_total: Decimal | None, total_paid: Decimal | None) -> PaymentStatus:
    total = to_money(grand_total)
    paid = to_money(total_paid)
    # Nothing received yet stays unpaid, even on a zero-total bill
    if paid == ZERO:
        return PaymentStatus.UNPAID
    if paid == total:
        return PaymentStatus.PAID
    if paid > total:
        return PaymentStatus.OVER_PAID
    return PaymentStatus.PARTIALLY_PAID


def apply_overdue(status: PaymentStatus | str, due_date: date | None, today: date) -> PaymentStatus:
    """Report unpaid and partially paid bills past their due date as overdue."""
    status = PaymentStatus(status)
    if due_date is None or due_date >= today:
        return status
    if status in (PaymentStatus.UNPAID, PaymentStatus.PARTIALLY_PAID):
        return PaymentStatus.OVERDUE
    return status
