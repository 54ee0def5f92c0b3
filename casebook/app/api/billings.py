"""Billing routes."""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from casebook.app.core.security import get_current_user
from casebook.app.db.session import get_db
from casebook.app.models.user import User
from casebook.app.schemas.billing import (
    BillingCreate,
    BillingDetail,
    BillingPage,
    BillingRead,
    BillingStats,
    BillingUpdate,
)
from casebook.app.schemas.payment import PaymentCreate, PaymentRead
from casebook.app.services.billing import (
    create_billing,
    delete_billing,
    get_active_billing,
    get_billing,
    get_billing_stats,
    list_billings,
    update_billing,
)
from casebook.app.services.payments import create_payment, list_payments_for_billing

router = APIRouter(prefix="/billings", tags=["billings"])


@router.post("/", response_model=BillingRead, status_code=status.HTTP_201_CREATED)
async def create_billing_record(
    payload: BillingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return create_billing(db, payload, current_user)


@router.get("/", response_model=BillingPage)
async def list_billing_records(
    case_id: int | None = None,
    client_id: int | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return list_billings(
        db,
        case_id=case_id,
        client_id=client_id,
        status=status,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/stats", response_model=BillingStats)
async def billing_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_billing_stats(db)


@router.get("/{billing_id}", response_model=BillingDetail)
async def get_billing_record(
    billing_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return get_billing(db, billing_id)


@router.patch("/{billing_id}", response_model=BillingRead)
async def update_billing_record(
    billing_id: int,
    payload: BillingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return update_billing(db, billing_id, payload, current_user)


@router.delete("/{billing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_billing_record(
    billing_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    delete_billing(db, billing_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{billing_id}/payments", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
async def create_payment_for_billing(
    billing_id: int,
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return create_payment(db, billing_id, payload, current_user)


@router.get("/{billing_id}/payments", response_model=List[PaymentRead])
async def list_billing_payments(
    billing_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    get_active_billing(db, billing_id)
    return list_payments_for_billing(db, billing_id)
