"""Case (matter) model; billings are always raised against a case."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from casebook.app.core.time import utc_now
from casebook.app.db.base_class import Base


class Case(Base):
    __tablename__ = "cases"

    id = Column(Integer, primary_key=True, index=True)
    case_number = Column(String(32), unique=True, index=True, nullable=False)
    title = Column(String(255), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    currency = Column(String(8), nullable=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    client = relationship("Client", back_populates="cases")
    billings = relationship("Billing", back_populates="case")
    time_entries = relationship("TimeEntry", back_populates="case")
