"""Line item model; rows are kept in display order by ``position``."""

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from casebook.app.db.base_class import Base


class BillingItem(Base):
    __tablename__ = "billing_items"

    id = Column(Integer, primary_key=True, index=True)
    billing_id = Column(Integer, ForeignKey("billings.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    particulars = Column(String(255), nullable=True)
    quantity = Column(Numeric(12, 2), nullable=False, default=0)
    price = Column(Numeric(14, 2), nullable=False, default=0)
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)
    amount = Column(Numeric(14, 2), nullable=False, default=0)

    billing = relationship("Billing", back_populates="items")
