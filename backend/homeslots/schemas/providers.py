# backend/homeslots/schemas/providers.py

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


def check_timezone(v: Optional[str]) -> Optional[str]:
    """IANA timezone name, e.g. "America/Chicago"."""
    if v is None:
        return v
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {v}")
    return v


class ProviderCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1)
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        return check_timezone(v)

    model_config = {"from_attributes": True}


class ProviderUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1)
    timezone: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        return check_timezone(v)

    model_config = {"from_attributes": True}


class ProviderRead(BaseModel):
    id: str
    display_name: str
    timezone: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
