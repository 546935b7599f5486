"""
CE Credit Ledger Model
Append-only record of credits earned, adjusted and revoked
"""

from sqlalchemy import Column, String, Numeric, DateTime, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
import uuid
from app.database import Base


class CELedgerEntry(Base):
    __tablename__ = "ce_ledger"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    event_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    seminar_id = Column(UUID(as_uuid=True), ForeignKey("seminars.id", ondelete="SET NULL"), nullable=True, index=True)
    session_id = Column(UUID(as_uuid=True), ForeignKey("seminar_sessions.id", ondelete="SET NULL"), nullable=True)

    # Magnitude for earned/revoked, signed for adjustment
    credits = Column(Numeric(6, 2), nullable=False)
    source = Column(String(100), nullable=False)  # course_attendance, seminar_session, manual, adjustment
    transaction_type = Column(String(50), nullable=False, default="earned")  # earned, adjustment, revoked
    notes = Column(Text, nullable=True)

    awarded_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
