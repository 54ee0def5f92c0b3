"""Client directory entry referenced by cases and billings."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from casebook.app.core.time import utc_now
from casebook.app.db.base_class import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    client_number = Column(String(32), unique=True, index=True, nullable=False)
    company_name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    cases = relationship("Case", back_populates="client")
    billings = relationship("Billing", back_populates="client")
