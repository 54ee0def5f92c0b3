"""Billing schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from casebook.app.models.billing import BillingType
from casebook.app.schemas.billing_item import BillingItemIn, BillingItemRead
from casebook.app.schemas.payment import PaymentRead

LEGACY_BILLING_TYPES = {
    "milestore": BillingType.MILESTONE.value,
    "progressBased": BillingType.MILESTONE.value,
}


class BillingCreate(BaseModel):
    title: str = Field(min_length=1)
    case_id: int
    client_id: Optional[int] = None
    billing_type: BillingType
    bill_number: Optional[str] = None
    currency: Optional[str] = None
    note: Optional[str] = None
    billing_start: date
    billing_end: Optional[date] = None
    due_date: date
    items: List[BillingItemIn] = Field(default_factory=list)

    @field_validator("billing_type", mode="before")
    @classmethod
    def _normalize_billing_type(cls, value):
        if isinstance(value, str):
            return LEGACY_BILLING_TYPES.get(value, value)
        return value


class BillingUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    bill_number: Optional[str] = None
    currency: Optional[str] = None
    note: Optional[str] = None
    billing_start: Optional[date] = None
    billing_end: Optional[date] = None
    due_date: Optional[date] = None
    items: Optional[List[BillingItemIn]] = None


class BillingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bill_number: str
    title: str
    case_id: int
    client_id: int
    billing_type: str
    currency: str
    note: Optional[str] = None
    billing_start: date
    billing_end: Optional[date] = None
    due_date: date

    sub_total: Decimal
    discount: Decimal
    tax: Decimal
    grand_total: Decimal
    paid_amount: Decimal
    status: str

    created_by_id: int
    created_at: datetime
    updated_at: datetime
    items: List[BillingItemRead] = []


class BillingSummary(BaseModel):
    id: int
    bill_number: str
    title: str
    case_id: int
    case_number: Optional[str] = None
    case_title: Optional[str] = None
    client_id: int
    client_number: Optional[str] = None
    company_name: Optional[str] = None
    billing_type: str
    currency: str
    billing_start: date
    billing_end: Optional[date] = None
    due_date: date
    grand_total: Decimal
    total_paid: Decimal
    due_amount: Decimal
    status: str
    created_at: datetime


class BillingDetail(BillingSummary):
    note: Optional[str] = None
    sub_total: Decimal
    discount: Decimal
    tax: Decimal
    created_by_id: int
    created_by_name: Optional[str] = None
    items: List[BillingItemRead] = []
    payments: List[PaymentRead] = []


class BillingPage(BaseModel):
    items: List[BillingSummary]
    total: int
    page: int
    limit: int
    pages: int


class BillingStats(BaseModel):
    total_billings: int
    total_amount: Decimal
    total_paid: Decimal
    total_due: Decimal
