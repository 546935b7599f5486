"""
Activity Log Schemas
Response models for the staff audit trail
"""

from pydantic import BaseModel, field_validator
from uuid import UUID
from datetime import datetime
from typing import Optional, List
import json


class ActivityLogEntry(BaseModel):
    """Single activity log entry"""
    model_config = {"from_attributes": True}

    id: UUID
    actor_id: Optional[UUID] = None
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Optional[dict] = None
    ip_address: Optional[str] = None
    created_at: datetime

    @field_validator("details", mode="before")
    @classmethod
    def parse_details(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except (json.JSONDecodeError, TypeError):
                return {"raw": v}
        return v


class ActivityLogResponse(BaseModel):
    """Response with paginated activity logs"""
    logs: List[ActivityLogEntry]
    total: int
    limit: int
    offset: int
    has_more: bool
