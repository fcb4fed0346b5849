# backend/homeslots/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SlotRead(BaseModel):
    """A bookable interval, provider-local ISO-8601."""
    start: datetime
    end: datetime

    model_config = {"from_attributes": True}


class SlotsByDateResponse(BaseModel):
    """Slots grouped by provider-local date (YYYY-MM-DD)."""
    provider_id: str
    timezone: str
    slot_mins: int
    slots: dict[str, list[SlotRead]]
    total_slots: int


class SlotsListResponse(BaseModel):
    """Flat chronological slot list."""
    provider_id: str
    timezone: str
    slot_mins: int
    slots: list[SlotRead]
    total_slots: int


class SlotsInvalidateResponse(BaseModel):
    provider_id: str
    deleted_keys: int = Field(description="Cached segment days removed")
