"""
Seminar Models
Multi-session CE programs and their dated sessions
"""

from sqlalchemy import (
    Column, String, Integer, Numeric, Date, Time, DateTime, Text, ForeignKey,
    UniqueConstraint, func
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from app.database import Base


class Seminar(Base):
    __tablename__ = "seminars"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    capacity = Column(Integer, nullable=True)
    venue = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)

    # Credit accounting
    total_sessions = Column(Integer, nullable=False, default=10)
    credits_per_session = Column(Numeric(5, 2), nullable=False, default=2)
    total_credits = Column(Numeric(6, 2), nullable=False, default=20)

    # draft, active, completed, archived
    status = Column(String(50), nullable=False, default="draft", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    sessions = relationship("SeminarSession", back_populates="seminar", order_by="SeminarSession.session_number")


class SeminarSession(Base):
    __tablename__ = "seminar_sessions"
    __table_args__ = (
        UniqueConstraint("seminar_id", "session_number", name="uq_seminar_sessions_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seminar_id = Column(UUID(as_uuid=True), ForeignKey("seminars.id", ondelete="CASCADE"), nullable=False, index=True)
    session_number = Column(Integer, nullable=False)
    session_date = Column(Date, nullable=False, index=True)
    session_time_start = Column(Time, nullable=True)
    session_time_end = Column(Time, nullable=True)
    topic = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    seminar = relationship("Seminar", back_populates="sessions")
