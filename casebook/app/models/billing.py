"""Billing record model: an invoice raised against a case."""

from enum import Enum

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from casebook.app.core.time import utc_now
from casebook.app.db.base_class import Base


class BillingType(str, Enum):
    ONE_TIME = "oneTime"
    MILESTONE = "milestone"
    TIME_BASED = "timeBased"
    TASK_BASED = "taskBased"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partiallyPaid"
    PAID = "paid"
    OVERDUE = "overdue"
    OVER_PAID = "overPaid"


class Billing(Base):
    __tablename__ = "billings"

    id = Column(Integer, primary_key=True, index=True)
    bill_number = Column(String(32), unique=True, index=True, nullable=False)
    title = Column(String(255), nullable=False)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    billing_type = Column(String(20), nullable=False, default=BillingType.ONE_TIME.value)
    currency = Column(String(8), nullable=False)
    note = Column(Text, nullable=True)
    billing_start = Column(Date, nullable=False)
    billing_end = Column(Date, nullable=True)
    due_date = Column(Date, nullable=False)

    sub_total = Column(Numeric(14, 2), default=0.00, nullable=False)
    discount = Column(Numeric(14, 2), default=0.00, nullable=False)
    tax = Column(Numeric(14, 2), default=0.00, nullable=False)
    grand_total = Column(Numeric(14, 2), default=0.00, nullable=False)
    paid_amount = Column(Numeric(14, 2), default=0.00, nullable=False)

    # Payment-derived only; overdue is applied when reading.
    status = Column(String(20), default=PaymentStatus.UNPAID.value, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    case = relationship("Case", back_populates="billings")
    client = relationship("Client", back_populates="billings")
    created_by = relationship("User", back_populates="billings", foreign_keys=[created_by_id])
    items = relationship(
        "BillingItem",
        back_populates="billing",
        cascade="all, delete-orphan",
        order_by="BillingItem.position",
    )
    payments = relationship("Payment", back_populates="billing", order_by="Payment.id")

    @property
    def active_payments(self):
        return [payment for payment in self.payments if payment.is_active]
