"""Tracked hours against a case; the source of time-based billing items."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from casebook.app.core.time import utc_now
from casebook.app.db.base_class import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    task = Column(String(255), nullable=False)
    entry_date = Column(Date, nullable=False)
    hour_count = Column(Numeric(10, 2), nullable=False, default=0)
    hourly_rate = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    case = relationship("Case", back_populates="time_entries")
    user = relationship("User", back_populates="time_entries", foreign_keys=[user_id])
