"""
Pydantic schemas for join request validation and responses.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from admission.domain.status import RequestStatus


class JoinRequestCreate(BaseModel):
    party_size: int = Field(..., ge=1)
    note: Optional[str] = Field(None, max_length=500)

    model_config = {"extra": "forbid"}


class JoinRequestInvite(BaseModel):
    requester_id: UUID
    party_size: int = Field(..., ge=1)
    note: Optional[str] = Field(None, max_length=500)

    model_config = {"extra": "forbid"}


class HoldExtension(BaseModel):
    minutes: int = Field(default=30)


class WaitlistReorder(BaseModel):
    waitlist_pos: float = Field(..., allow_inf_nan=False)


class JoinRequestResponse(BaseModel):
    id: UUID
    event_id: UUID
    requester_id: UUID
    party_size: int
    note: Optional[str]
    status: RequestStatus
    hold_expires_at: Optional[datetime]
    waitlist_pos: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class JoinRequestPage(BaseModel):
    data: list[JoinRequestResponse]
    total_count: int
    next_offset: Optional[int]
    limit: int
    offset: int


class FinalizeResponse(BaseModel):
    event_id: UUID
    finalized: int


class PromotionResponse(BaseModel):
    event_id: UUID
    moved: int
    request: Optional[JoinRequestResponse] = None
