"""
Database Models
Import all models here for Alembic migrations
"""

from app.models.user import User
from app.models.seminar import Seminar, SeminarSession
from app.models.registration import SeminarRegistration, SeminarAttendance, SessionReminder
from app.models.makeup import MakeupRequest
from app.models.credit import CELedgerEntry
from app.models.certificate import Certificate
from app.models.activity_log import ActivityLog

__all__ = [
    "User",
    "Seminar",
    "SeminarSession",
    "SeminarRegistration",
    "SeminarAttendance",
    "SessionReminder",
    "MakeupRequest",
    "CELedgerEntry",
    "Certificate",
    "ActivityLog",
]
