"""
Makeup Request Model
One substitution of a missed session per registration
"""

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from app.database import Base

# Only one pending/approved request per registration
OUTSTANDING = text("status IN ('pending', 'approved')")


class MakeupRequest(Base):
    __tablename__ = "seminar_makeup_requests"
    __table_args__ = (
        Index(
            "uq_makeup_requests_outstanding",
            "registration_id",
            unique=True,
            postgresql_where=OUTSTANDING,
            sqlite_where=OUTSTANDING,
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    registration_id = Column(
        UUID(as_uuid=True), ForeignKey("seminar_registrations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    seminar_id = Column(UUID(as_uuid=True), ForeignKey("seminars.id", ondelete="RESTRICT"), nullable=False, index=True)

    missed_session_id = Column(UUID(as_uuid=True), ForeignKey("seminar_sessions.id", ondelete="RESTRICT"), nullable=False)
    requested_session_id = Column(
        UUID(as_uuid=True), ForeignKey("seminar_sessions.id", ondelete="SET NULL"), nullable=True
    )

    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # pending, approved, denied, completed, cancelled, expired
    status = Column(String(50), nullable=False, default="pending", index=True)

    reviewed_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    denial_reason = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    registration = relationship("SeminarRegistration", backref="makeup_requests")
    missed_session = relationship("SeminarSession", foreign_keys=[missed_session_id])
    requested_session = relationship("SeminarSession", foreign_keys=[requested_session_id])
