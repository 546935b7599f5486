"""
Database Connection and Session Management
Async query client (databases) over PostgreSQL or SQLite
"""

from datetime import date, datetime, timezone
from typing import Optional

import structlog
from databases import Database
from sqlalchemy import create_engine, MetaData
from sqlalchemy.orm import declarative_base
from app.config import settings

logger = structlog.get_logger(__name__)

# Database URL
DATABASE_URL = settings.DATABASE_URL

# For Supabase connection pooler (pgbouncer), disable prepared statements.
# SQLite connections take no pool options.
if DATABASE_URL.startswith("sqlite"):
    db_options = {}
elif "supabase.com" in DATABASE_URL or "pooler.supabase.com" in DATABASE_URL:
    db_options = {"min_size": 1, "max_size": 5, "statement_cache_size": 0}
else:
    db_options = {"min_size": 1, "max_size": 10}

# Create database instance for async queries
database = Database(DATABASE_URL, **db_options)

# Create SQLAlchemy engine for migrations and schema management
engine = create_engine(
    DATABASE_URL.replace("postgresql://", "postgresql+psycopg2://")
    if "postgresql://" in DATABASE_URL else DATABASE_URL
)

# Metadata for models
metadata = MetaData()

# Base class for models
Base = declarative_base(metadata=metadata)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_date(value) -> Optional[date]:
    """Normalize a DATE column value; SQLite hands these back as ISO strings."""
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(str(value)[:10])


def as_datetime(value) -> Optional[datetime]:
    """Normalize a TIMESTAMP column value to an aware UTC datetime"""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


# Dependency to get database session
async def get_database():
    """Get database connection"""
    return database


async def connect_db():
    """Connect to database on startup"""
    await database.connect()
    logger.info("database_connected")


async def disconnect_db():
    """Disconnect from database on shutdown"""
    await database.disconnect()
    logger.info("database_disconnected")
