# backend/homeslots/schemas/availability.py

from datetime import time
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class AvailabilityWindowWrite(BaseModel):
    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday .. 6 = Saturday")
    start_time: time
    end_time: time
    buffer_minutes: Optional[int] = Field(None, ge=0, le=24 * 60)

    @model_validator(mode="after")
    def check_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    model_config = {"from_attributes": True}


class AvailabilityReplace(BaseModel):
    """Full weekly set; replaces whatever the provider had."""
    availability: list[AvailabilityWindowWrite]


class AvailabilityWindowRead(BaseModel):
    id: int
    provider_id: str
    day_of_week: int
    start_time: time
    end_time: time
    buffer_minutes: int

    model_config = {"from_attributes": True}
