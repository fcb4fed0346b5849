# backend/homeslots/schemas/bookings.py

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .utc import UTCDateTime


class BookingCreate(BaseModel):
    provider_id: str
    start_ts: UTCDateTime
    end_ts: UTCDateTime

    service_type: str = Field(min_length=1)
    description: Optional[str] = None
    homeowner_notes: Optional[str] = None
    image_count: int = Field(0, ge=0, le=5)

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int

    provider_id: str
    homeowner_id: str

    start_ts: UTCDateTime
    end_ts: UTCDateTime

    status: str
    service_type: str
    description: Optional[str] = None
    homeowner_notes: Optional[str] = None
    provider_notes: Optional[str] = None
    cancel_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    image_count: int = 0

    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {"from_attributes": True}


class BookingStatusUpdate(BaseModel):
    status: Literal["confirmed", "completed", "cancelled"]
    reason: Optional[str] = None
    notes: Optional[str] = None


class BookingNotesUpdate(BaseModel):
    notes: Optional[str] = None
