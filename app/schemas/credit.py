"""
CE Credit Request/Response Models
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID


class CreditAdjustmentRequest(BaseModel):
    """Manual signed credit correction"""
    user_id: UUID
    credits: float = Field(..., description="Positive to add, negative to deduct")
    seminar_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=1000)


class LedgerEntryResponse(BaseModel):
    id: UUID
    user_id: UUID
    event_id: Optional[UUID] = None
    seminar_id: Optional[UUID] = None
    session_id: Optional[UUID] = None
    credits: float
    source: str
    transaction_type: str
    notes: Optional[str] = None
    awarded_at: datetime
    created_by: Optional[UUID] = None
    seminar_title: Optional[str] = None

    class Config:
        from_attributes = True


class CreditSummaryResponse(BaseModel):
    """Net credits and the entries behind them"""
    user_id: UUID
    total_credits: float
    entries: List[LedgerEntryResponse]
