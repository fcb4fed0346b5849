# backend/homeslots/schemas/holidays.py

from datetime import date

from pydantic import BaseModel, Field


class HolidayCreate(BaseModel):
    date: date
    name: str = Field(min_length=1)

    model_config = {"from_attributes": True}


class HolidayRead(BaseModel):
    id: int
    date: date
    name: str

    model_config = {"from_attributes": True}


class ProviderHolidayRead(HolidayRead):
    blocks_availability: bool = False


class HolidayPreferenceWrite(BaseModel):
    holiday_id: int
    blocks_availability: bool


class HolidayPreferencesReplace(BaseModel):
    holiday_preferences: list[HolidayPreferenceWrite]
