"""Payment schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from casebook.app.models.payment import PaymentMethod


class PaymentCreate(BaseModel):
    amount: Decimal
    payment_date: Optional[date] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    transaction_id: Optional[str] = None
    receipt: Optional[str] = None
    note: Optional[str] = None


class PaymentUpdate(BaseModel):
    amount: Optional[Decimal] = None
    payment_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    receipt: Optional[str] = None
    note: Optional[str] = None


class PaymentRead(BaseModel):
    id: int
    billing_id: int
    amount: Decimal
    payment_date: date
    payment_method: str
    received_by_id: int
    received_by_name: Optional[str] = None
    transaction_id: Optional[str] = None
    receipt: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
