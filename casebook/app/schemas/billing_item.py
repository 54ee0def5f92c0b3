"""Billing line item schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VatRate(BaseModel):
    rate: Decimal = Decimal("0")


class BillingItemIn(BaseModel):
    particulars: Optional[str] = None
    quantity: Decimal = Decimal("0")
    price: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    vat: VatRate = Field(default_factory=VatRate)

    @field_validator("quantity", "price", "discount", mode="before")
    @classmethod
    def _missing_as_zero(cls, value):
        return Decimal("0") if value is None else value

    @field_validator("vat", mode="before")
    @classmethod
    def _adapt_legacy_vat(cls, value):
        # Older records carry VAT as a flat percentage
        if value is None:
            return {"rate": Decimal("0")}
        if isinstance(value, (int, float, str, Decimal)) and not isinstance(value, bool):
            return {"rate": value}
        return value


class BillingItemRead(BaseModel):
    id: int
    position: int
    particulars: Optional[str] = None
    quantity: Decimal
    price: Decimal
    discount: Decimal
    vat_rate: Decimal
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)
