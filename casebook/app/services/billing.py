"""Billing record management: creation, updates, soft deletion and listings."""

import logging
import math
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from casebook.app.core.errors import ConflictError, ForbiddenOperationError, NotFoundError, ValidationError
from casebook.app.core.settings import get_settings
from casebook.app.core.time import utc_today
from casebook.app.models.billing import Billing, BillingType, PaymentStatus
from casebook.app.models.billing_item import BillingItem
from casebook.app.models.case import Case
from casebook.app.models.client import Client
from casebook.app.models.payment import Payment
from casebook.app.models.time_entry import TimeEntry
from casebook.app.models.user import User
from casebook.app.schemas.billing import BillingCreate, BillingUpdate
from casebook.app.services.billing_status import apply_overdue, derive_payment_status
from casebook.app.services.calculator import ZERO, as_decimal, compute_line, compute_totals, normalize_vat, to_money
from casebook.app.services.sequences import BILLING_PREFIX, next_billing_number, numeric_part, observe_number

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": Billing.created_at,
    "bill_number": Billing.bill_number,
    "due_date": Billing.due_date,
    "grand_total": Billing.grand_total,
    "title": Billing.title,
}
MAX_PAGE_SIZE = 100


def find_case_by_id(db: Session, case_id: int) -> Case | None:
    return db.query(Case).filter(Case.id == case_id).first()


def get_active_billing(db: Session, billing_id: int, lock: bool = False) -> Billing:
    query = db.query(Billing).filter(Billing.id == billing_id, Billing.is_active.is_(True))
    if lock:
        query = query.with_for_update()
    billing = query.first()
    if not billing:
        raise NotFoundError("Billing not found", field="billing_id")
    return billing


def _as_dicts(items: Iterable[Any] | None) -> List[dict]:
    return [item.model_dump() if hasattr(item, "model_dump") else dict(item) for item in items or ()]


def derive_time_based_items(db: Session, case_id: int, start: date, end: date) -> List[dict]:
    """Turn the case's tracked hours inside ``[start, end]`` into line items."""
    entries = (
        db.query(TimeEntry)
        .filter(
            TimeEntry.case_id == case_id,
            TimeEntry.is_active.is_(True),
            TimeEntry.entry_date >= start,
            TimeEntry.entry_date <= end,
        )
        .order_by(TimeEntry.entry_date.asc(), TimeEntry.id.asc())
        .all()
    )
    return [
        {
            "particulars": entry.task,
            "quantity": entry.hour_count,
            "price": entry.hourly_rate,
            "discount": Decimal("0"),
            "vat": {"rate": Decimal("0")},
        }
        for entry in entries
    ]


def _quantize_items(items: List[dict]) -> List[dict]:
    """Validate ``items`` and round their inputs to the scale the item columns store."""
    quantized = []
    for item in items:
        compute_line(item)
        quantized.append(
            {
                "particulars": item.get("particulars"),
                "quantity": to_money(as_decimal(item.get("quantity"), "quantity")),
                "price": to_money(as_decimal(item.get("price"), "price")),
                "discount": to_money(as_decimal(item.get("discount"), "discount")),
                "vat": {"rate": to_money(normalize_vat(item.get("vat")))},
            }
        )
    return quantized


def _build_items(items: List[dict]) -> List[BillingItem]:
    rows = []
    for position, item in enumerate(items):
        line = compute_line(item)
        rows.append(
            BillingItem(
                position=position,
                particulars=item["particulars"],
                quantity=item["quantity"],
                price=item["price"],
                discount=item["discount"],
                vat_rate=item["vat"]["rate"],
                amount=line.amount,
            )
        )
    return rows


def _apply_totals(billing: Billing, items: List[dict]) -> None:
    totals = compute_totals(items)
    billing.items = _build_items(items)
    billing.sub_total = totals.sub_total
    billing.discount = totals.discount
    billing.tax = totals.tax
    billing.grand_total = totals.grand_total


def _check_window(billing_type: str, start: date | None, end: date | None, due: date | None) -> None:
    if billing_type == BillingType.TIME_BASED.value and end is None:
        raise ValidationError("billing_end is required for time-based billing", field="billing_end")
    if start and end and end < start:
        raise ValidationError("billing_end must not be before billing_start", field="billing_end")
    if start and due and due < start:
        raise ValidationError("due_date must not be before billing_start", field="due_date")


def _bill_number_taken(db: Session, bill_number: str, exclude_id: int | None = None) -> bool:
    query = db.query(Billing.id).filter(Billing.bill_number == bill_number)
    if exclude_id is not None:
        query = query.filter(Billing.id != exclude_id)
    return query.first() is not None


def _total_paid(db: Session, billing_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.billing_id == billing_id, Payment.is_active.is_(True))
        .scalar()
    )
    return to_money(total)


def recompute_billing_status(db: Session, billing: Billing) -> PaymentStatus:
    """Refresh ``paid_amount`` and ``status`` from every active payment on ``billing``."""
    db.flush()
    total_paid = _total_paid(db, billing.id)
    status = derive_payment_status(billing.grand_total, total_paid)
    if billing.status != status.value:
        logger.info("Billing %s status %s -> %s", billing.bill_number, billing.status, status.value)
    billing.paid_amount = total_paid
    billing.status = status.value
    return status


def create_billing(db: Session, payload: BillingCreate, actor: User) -> Billing:
    billing_type = BillingType(payload.billing_type).value
    _check_window(billing_type, payload.billing_start, payload.billing_end, payload.due_date)

    case = find_case_by_id(db, payload.case_id)
    if not case:
        raise NotFoundError("Case not found", field="case_id")
    client_id = payload.client_id
    if client_id is None:
        client_id = case.client_id
    elif not db.query(Client.id).filter(Client.id == client_id).first():
        raise NotFoundError("Client not found", field="client_id")

    if billing_type == BillingType.TIME_BASED.value:
        if payload.items:
            logger.warning("Ignoring %d supplied items on time-based billing for case %s", len(payload.items), case.id)
        items = derive_time_based_items(db, case.id, payload.billing_start, payload.billing_end)
    else:
        items = _as_dicts(payload.items)
    # Validate amounts before touching the sequence
    items = _quantize_items(items)

    supplied_number = payload.bill_number.strip() if payload.bill_number else None
    if supplied_number and _bill_number_taken(db, supplied_number):
        raise ConflictError("Billing number already exists", field="bill_number")

    settings = get_settings()
    attempts = 1 if supplied_number else 2
    for attempt in range(attempts):
        try:
            bill_number = supplied_number or next_billing_number(db, resync=attempt > 0)
        except IntegrityError:
            # Another writer seeded the counter first
            db.rollback()
            bill_number = next_billing_number(db)
        billing = Billing(
            bill_number=bill_number,
            title=payload.title,
            case_id=case.id,
            client_id=client_id,
            billing_type=billing_type,
            currency=payload.currency or case.currency or settings.default_currency,
            note=payload.note,
            billing_start=payload.billing_start,
            billing_end=payload.billing_end,
            due_date=payload.due_date,
            paid_amount=ZERO,
            status=PaymentStatus.UNPAID.value,
            created_by_id=actor.id,
        )
        _apply_totals(billing, items)
        db.add(billing)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            if attempt + 1 >= attempts:
                raise ConflictError("Billing number already exists", field="bill_number")
            logger.warning("Billing number %s already taken, retrying with a fresh number", bill_number)
            continue
        break

    if supplied_number and supplied_number.startswith(BILLING_PREFIX):
        observe_number(db, "billing", Billing.bill_number, numeric_part(supplied_number))
    db.commit()
    db.refresh(billing)
    logger.info(
        "Created billing %s for case %s (%s, grand total %s) by user %s",
        billing.bill_number,
        case.id,
        billing_type,
        billing.grand_total,
        actor.id,
    )
    return billing


def update_billing(db: Session, billing_id: int, payload: BillingUpdate, actor: User) -> Billing:
    billing = get_active_billing(db, billing_id, lock=True)
    changes = payload.model_dump(exclude_unset=True)
    items_present = "items" in changes
    items = changes.pop("items", None)

    if items_present and billing.billing_type == BillingType.TIME_BASED.value:
        raise ForbiddenOperationError("Cannot update items for time-based billing", field="items")

    if changes.get("bill_number") is not None:
        changes["bill_number"] = changes["bill_number"].strip()
        if _bill_number_taken(db, changes["bill_number"], exclude_id=billing.id):
            raise ConflictError("Billing number already exists", field="bill_number")
    for field in ("title", "bill_number", "billing_start", "due_date", "currency"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be cleared", field=field)

    _check_window(
        billing.billing_type,
        changes.get("billing_start", billing.billing_start),
        changes.get("billing_end", billing.billing_end),
        changes.get("due_date", billing.due_date),
    )

    if items is not None:
        items = _quantize_items(_as_dicts(items))
    for field, value in changes.items():
        setattr(billing, field, value)
    if items is not None:
        _apply_totals(billing, items)

    recompute_billing_status(db, billing)
    db.commit()
    db.refresh(billing)
    logger.info("Updated billing %s by user %s", billing.bill_number, actor.id)
    return billing


def delete_billing(db: Session, billing_id: int, actor: User) -> None:
    """Soft-delete a billing together with its payments."""
    billing = get_active_billing(db, billing_id, lock=True)
    billing.is_active = False
    removed = 0
    for payment in billing.payments:
        if payment.is_active:
            payment.is_active = False
            removed += 1
    db.commit()
    logger.info("Deleted billing %s and %d payment(s) by user %s", billing.bill_number, removed, actor.id)


def live_status(billing: Billing, total_paid: Decimal, today: date | None = None) -> PaymentStatus:
    status = derive_payment_status(billing.grand_total, total_paid)
    if get_settings().derive_overdue:
        status = apply_overdue(status, billing.due_date, today or utc_today())
    return status


def _summarize(billing: Billing, total_paid: Decimal, today: date) -> dict:
    total_paid = to_money(total_paid)
    grand_total = to_money(billing.grand_total)
    return {
        "id": billing.id,
        "bill_number": billing.bill_number,
        "title": billing.title,
        "case_id": billing.case_id,
        "case_number": billing.case.case_number if billing.case else None,
        "case_title": billing.case.title if billing.case else None,
        "client_id": billing.client_id,
        "client_number": billing.client.client_number if billing.client else None,
        "company_name": billing.client.company_name if billing.client else None,
        "billing_type": billing.billing_type,
        "currency": billing.currency,
        "billing_start": billing.billing_start,
        "billing_end": billing.billing_end,
        "due_date": billing.due_date,
        "grand_total": grand_total,
        "total_paid": total_paid,
        "due_amount": grand_total - total_paid,
        "status": live_status(billing, total_paid, today).value,
        "created_at": billing.created_at,
    }


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _status_filter(query, status: str, paid_total, today: date):
    """Filter on the status derived from live payment totals, matching what rows report."""
    try:
        wanted = PaymentStatus(status)
    except ValueError:
        raise ValidationError("Invalid status value", field="status")
    paid = func.round(paid_total, 2)
    grand_total = func.round(Billing.grand_total, 2)
    conditions = {
        PaymentStatus.UNPAID: [paid == 0],
        PaymentStatus.PAID: [paid != 0, paid == grand_total],
        PaymentStatus.OVER_PAID: [paid != 0, paid > grand_total],
        PaymentStatus.PARTIALLY_PAID: [paid != 0, paid < grand_total],
    }
    if wanted == PaymentStatus.OVERDUE:
        if not get_settings().derive_overdue:
            return query.filter(Billing.id.is_(None))
        open_balance = or_(paid == 0, paid < grand_total)
        return query.filter(open_balance, Billing.due_date < today)
    query = query.filter(*conditions[wanted])
    if get_settings().derive_overdue and wanted in (PaymentStatus.UNPAID, PaymentStatus.PARTIALLY_PAID):
        query = query.filter(Billing.due_date >= today)
    return query


def list_billings(
    db: Session,
    *,
    case_id: int | None = None,
    client_id: int | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    today: date | None = None,
) -> dict:
    """Page through active billings, each with ``total_paid`` and ``due_amount`` computed live."""
    today = today or utc_today()
    if page < 1:
        raise ValidationError("page must be at least 1", field="page")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
    if sort_by not in SORT_FIELDS:
        raise ValidationError("Invalid sort_by value", field="sort_by")
    sort_order_normalized = (sort_order or "desc").lower()
    if sort_order_normalized not in {"asc", "desc"}:
        raise ValidationError("Invalid sort_order value", field="sort_order")

    paid = (
        db.query(Payment.billing_id.label("billing_id"), func.sum(Payment.amount).label("total_paid"))
        .filter(Payment.is_active.is_(True))
        .group_by(Payment.billing_id)
        .subquery()
    )
    paid_total = func.coalesce(paid.c.total_paid, 0)
    query = (
        db.query(Billing, paid_total)
        .outerjoin(paid, paid.c.billing_id == Billing.id)
        .filter(Billing.is_active.is_(True))
    )
    if case_id is not None:
        query = query.filter(Billing.case_id == case_id)
    if client_id is not None:
        query = query.filter(Billing.client_id == client_id)
    if search:
        pattern = f"%{_escape_like(search.strip())}%"
        query = query.filter(
            or_(Billing.bill_number.ilike(pattern, escape="\\"), Billing.title.ilike(pattern, escape="\\"))
        )
    if status:
        query = _status_filter(query, status, paid_total, today)

    total = query.count()
    sort_column = SORT_FIELDS[sort_by]
    if sort_order_normalized == "asc":
        order_by_clause = [sort_column.asc(), Billing.id.asc()]
    else:
        order_by_clause = [sort_column.desc(), Billing.id.desc()]
    rows = query.order_by(*order_by_clause).offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [_summarize(billing, total_paid, today) for billing, total_paid in rows],
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if total else 0,
    }


def get_billing(db: Session, billing_id: int, today: date | None = None) -> dict:
    billing = get_active_billing(db, billing_id)
    payments = billing.active_payments
    total_paid = sum((payment.amount for payment in payments), ZERO)
    detail = _summarize(billing, total_paid, today or utc_today())
    detail.update(
        {
            "note": billing.note,
            "sub_total": billing.sub_total,
            "discount": billing.discount,
            "tax": billing.tax,
            "created_by_id": billing.created_by_id,
            "created_by_name": billing.created_by.display_name if billing.created_by else None,
            "items": list(billing.items),
            "payments": payments,
        }
    )
    return detail


def get_billing_stats(db: Session) -> dict:
    count, total_amount = (
        db.query(func.count(Billing.id), func.coalesce(func.sum(Billing.grand_total), 0))
        .filter(Billing.is_active.is_(True))
        .one()
    )
    total_paid = (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .join(Billing, Billing.id == Payment.billing_id)
        .filter(Billing.is_active.is_(True), Payment.is_active.is_(True))
        .scalar()
    )
    total_amount = to_money(total_amount)
    total_paid = to_money(total_paid)
    return {
        "total_billings": count,
        "total_amount": total_amount,
        "total_paid": total_paid,
        "total_due": total_amount - total_paid,
    }
