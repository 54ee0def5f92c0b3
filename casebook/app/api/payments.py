"""Payment update and removal endpoints."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from casebook.app.core.security import get_current_user
from casebook.app.db.session import get_db
from casebook.app.models.user import User
from casebook.app.schemas.payment import PaymentRead, PaymentUpdate
from casebook.app.services.payments import delete_payment, update_payment

router = APIRouter(prefix="/payments", tags=["payments"])


@router.patch("/{payment_id}", response_model=PaymentRead)
async def update_payment_record(
    payment_id: int,
    payload: PaymentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return update_payment(db, payment_id, payload, current_user)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment_record(
    payment_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    delete_payment(db, payment_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
