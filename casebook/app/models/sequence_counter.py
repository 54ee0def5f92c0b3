"""Counter rows backing atomic sequence number reservation."""

from sqlalchemy import Column, Integer, String

from casebook.app.db.base_class import Base


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(64), unique=True, nullable=False)
    current_value = Column(Integer, nullable=False, default=0)
