"""Payment ledger: recording money received against billings."""

import logging
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session, joinedload

from casebook.app.core.errors import NotFoundError, ValidationError
from casebook.app.core.settings import get_settings
from casebook.app.core.time import utc_today
from casebook.app.models.payment import Payment, PaymentMethod
from casebook.app.models.user import User
from casebook.app.schemas.payment import PaymentCreate, PaymentUpdate
from casebook.app.services.billing import get_active_billing, recompute_billing_status
from casebook.app.services.calculator import ZERO, as_decimal, to_money

logger = logging.getLogger(__name__)


def _positive_amount(value) -> Decimal:
    amount = to_money(as_decimal(value, "amount"))
    if amount <= ZERO:
        raise ValidationError("Payment amount must be greater than zero", field="amount")
    return amount


def get_active_payment(db: Session, payment_id: int) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id, Payment.is_active.is_(True)).first()
    if not payment:
        raise NotFoundError("Payment not found", field="payment_id")
    return payment


def create_payment(db: Session, billing_id: int, payload: PaymentCreate, actor: User) -> Payment:
    amount = _positive_amount(payload.amount)
    # Lock the billing so the sum below sees every committed payment
    billing = get_active_billing(db, billing_id, lock=True)

    payment = Payment(
        billing_id=billing.id,
        amount=amount,
        payment_date=payload.payment_date or utc_today(),
        payment_method=PaymentMethod(payload.payment_method).value,
        received_by_id=actor.id,
        transaction_id=payload.transaction_id,
        receipt=payload.receipt,
        note=payload.note,
    )
    db.add(payment)
    recompute_billing_status(db, billing)
    db.commit()
    db.refresh(payment)
    logger.info("Recorded payment %s of %s on billing %s by user %s", payment.id, amount, billing.bill_number, actor.id)
    return payment


def update_payment(db: Session, payment_id: int, payload: PaymentUpdate, actor: User) -> Payment:
    payment = get_active_payment(db, payment_id)
    changes = payload.model_dump(exclude_unset=True)
    if "amount" in changes:
        changes["amount"] = _positive_amount(changes["amount"])
    for field in ("payment_date", "payment_method"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be cleared", field=field)
    if "payment_method" in changes:
        changes["payment_method"] = PaymentMethod(changes["payment_method"]).value

    billing = get_active_billing(db, payment.billing_id, lock=True)
    for field, value in changes.items():
        setattr(payment, field, value)
    recompute_billing_status(db, billing)
    db.commit()
    db.refresh(payment)
    logger.info("Updated payment %s on billing %s by user %s", payment.id, billing.bill_number, actor.id)
    return payment


def delete_payment(db: Session, payment_id: int, actor: User, recompute: bool | None = None) -> None:
    """Soft-delete a payment; the billing status is refreshed unless disabled in settings."""
    payment = get_active_payment(db, payment_id)
    if recompute is None:
        recompute = get_settings().recompute_on_payment_delete
    payment.is_active = False
    if recompute:
        billing = get_active_billing(db, payment.billing_id, lock=True)
        recompute_billing_status(db, billing)
    db.commit()
    logger.info("Removed payment %s from billing %s by user %s", payment.id, payment.billing_id, actor.id)


def list_payments_for_billing(db: Session, billing_id: int) -> List[Payment]:
    return (
        db.query(Payment)
        .options(joinedload(Payment.received_by))
        .filter(Payment.billing_id == billing_id, Payment.is_active.is_(True))
        .order_by(Payment.payment_date.asc(), Payment.id.asc())
        .all()
    )
