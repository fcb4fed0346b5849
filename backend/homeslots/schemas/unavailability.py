# backend/homeslots/schemas/unavailability.py

from typing import Optional

from pydantic import BaseModel, model_validator

from .utc import UTCDateTime


class UnavailabilityCreate(BaseModel):
    start_ts: UTCDateTime
    end_ts: UTCDateTime
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.end_ts <= self.start_ts:
            raise ValueError("End time must be after start time")
        return self

    model_config = {"from_attributes": True}


class UnavailabilityRead(BaseModel):
    id: int
    provider_id: str
    start_ts: UTCDateTime
    end_ts: UTCDateTime
    reason: Optional[str] = None

    model_config = {"from_attributes": True}
