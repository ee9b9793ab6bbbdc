"""
Pydantic schemas for event sync and availability.
"""

from uuid import UUID

from pydantic import BaseModel, Field

from admission.domain.models import EventStatus


class EventSync(BaseModel):
    host_id: UUID
    capacity_total: int = Field(..., ge=0, le=100000)
    is_public: bool = True
    status: EventStatus = EventStatus.PUBLISHED


class EventResponse(BaseModel):
    id: UUID
    host_id: UUID
    capacity_total: int
    is_public: bool
    status: EventStatus
    version: int

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    total: int
    confirmed: int
    held: int
    available: int

    model_config = {"from_attributes": True}
