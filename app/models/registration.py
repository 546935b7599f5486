"""
Registration Models
Seminar enrollments, per-session attendance and reminder claims
"""

from sqlalchemy import (
    Column, String, Integer, Boolean, Numeric, Date, DateTime, Text, ForeignKey,
    Index, UniqueConstraint, func, text
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from app.database import Base

# A user holds at most one non-cancelled registration per seminar
NOT_CANCELLED = text("status != 'cancelled'")


class SeminarRegistration(Base):
    __tablename__ = "seminar_registrations"
    __table_args__ = (
        Index(
            "uq_seminar_registrations_user_seminar",
            "user_id", "seminar_id",
            unique=True,
            postgresql_where=NOT_CANCELLED,
            sqlite_where=NOT_CANCELLED,
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    seminar_id = Column(UUID(as_uuid=True), ForeignKey("seminars.id", ondelete="RESTRICT"), nullable=False, index=True)
    order_id = Column(String(255), nullable=True)

    registration_date = Column(Date, nullable=True)
    start_session_date = Column(Date, nullable=True)

    # Progress counters
    sessions_completed = Column(Integer, nullable=False, default=0)
    sessions_remaining = Column(Integer, nullable=False, default=10)
    makeup_used = Column(Boolean, nullable=False, default=False)

    # active, completed, cancelled, on_hold
    status = Column(String(50), nullable=False, default="active", index=True)
    qr_code = Column(String(100), unique=True, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", backref="seminar_registrations")
    seminar = relationship("Seminar", backref="registrations")


class SeminarAttendance(Base):
    __tablename__ = "seminar_attendance"
    __table_args__ = (
        UniqueConstraint("registration_id", "session_id", name="uq_seminar_attendance_registration_session"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    registration_id = Column(
        UUID(as_uuid=True), ForeignKey("seminar_registrations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    session_id = Column(UUID(as_uuid=True), ForeignKey("seminar_sessions.id", ondelete="RESTRICT"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    seminar_id = Column(UUID(as_uuid=True), ForeignKey("seminars.id", ondelete="RESTRICT"), nullable=False)

    is_makeup = Column(Boolean, nullable=False, default=False)
    credits_awarded = Column(Numeric(5, 2), nullable=False, default=2)
    check_in_method = Column(String(20), nullable=False, default="manual")  # qr, manual
    checked_in_at = Column(DateTime(timezone=True), nullable=False)
    checked_in_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)

    registration = relationship("SeminarRegistration", backref="attendance")
    session = relationship("SeminarSession", backref="attendance")


class SessionReminder(Base):
    __tablename__ = "session_reminders"
    __table_args__ = (
        UniqueConstraint("session_id", "registration_id", name="uq_session_reminders_session_registration"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(UUID(as_uuid=True), ForeignKey("seminar_sessions.id", ondelete="CASCADE"), nullable=False)
    registration_id = Column(
        UUID(as_uuid=True), ForeignKey("seminar_registrations.id", ondelete="CASCADE"), nullable=False
    )
    sent_at = Column(DateTime(timezone=True), nullable=False)
