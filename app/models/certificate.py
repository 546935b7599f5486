"""
Certificate Model
Bi-annual seminar certificates and single-event course certificates
"""

from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from app.database import Base


class Certificate(Base):
    __tablename__ = "certificates"
    __table_args__ = (
        UniqueConstraint("user_id", "seminar_id", "period", "year", name="uq_certificates_seminar_period"),
        UniqueConstraint("user_id", "event_id", name="uq_certificates_event"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    certificate_code = Column(String(50), unique=True, nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Seminar certificates
    seminar_id = Column(UUID(as_uuid=True), ForeignKey("seminars.id", ondelete="SET NULL"), nullable=True)
    period = Column(String(20), nullable=True)  # first_half, second_half
    year = Column(Integer, nullable=True)
    sessions_attended = Column(Integer, nullable=True)

    # Course certificates
    event_id = Column(UUID(as_uuid=True), nullable=True)

    attendee_name = Column(String(255), nullable=False)
    program_title = Column(String(255), nullable=True)
    ce_credits = Column(Numeric(6, 2), nullable=True)
    pdf_url = Column(String(500), nullable=True)
    generated_at = Column(DateTime(timezone=True), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", backref="certificates")
