# backend/homeslots/routers/holidays.py
# Shared calendar: admin writes, everyone reads.
# Provider preferences: replaced as a whole set; only blocking rows are stored.

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user, require_admin, require_provider_access
from ..database import get_db
from ..models import Holidays as DBHolidays
from ..models import ProviderHolidayPreferences as DBPreferences
from ..models import Providers as DBProviders
from ..schemas.holidays import (
    HolidayCreate,
    HolidayPreferencesReplace,
    HolidayRead,
    ProviderHolidayRead,
)
from ..services.slots import bump_schedule_version

logger = logging.getLogger(__name__)

router = APIRouter(tags=["holidays"])


def _holidays_between(db: Session, date_start: date, date_end: date) -> list[DBHolidays]:
    return (
        db.query(DBHolidays)
        .filter(DBHolidays.date >= date_start, DBHolidays.date <= date_end)
        .order_by(DBHolidays.date)
        .all()
    )


def _default_range() -> tuple[date, date]:
    """Current year and next year."""
    year = date.today().year
    return date(year, 1, 1), date(year + 1, 12, 31)


@router.get("/holidays", response_model=list[HolidayRead])
def list_holidays(
    date_start: date | None = None,
    date_end: date | None = None,
    db: Session = Depends(get_db),
):
    default_start, default_end = _default_range()
    return _holidays_between(db, date_start or default_start, date_end or default_end)


@router.post("/holidays", response_model=HolidayRead, status_code=status.HTTP_201_CREATED)
def create_holiday(
    data: HolidayCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    require_admin(user)

    obj = DBHolidays(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/holidays/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday(
    id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    require_admin(user)

    obj = db.get(DBHolidays, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    blocked_by = [
        row[0]
        for row in db.query(DBPreferences.provider_id).filter(
            DBPreferences.holiday_id == id,
            DBPreferences.blocks_availability.is_(True),
        )
    ]
    bump_schedule_version(db, blocked_by)
    db.delete(obj)
    db.commit()


@router.get("/providers/{provider_id}/holidays", response_model=list[ProviderHolidayRead])
def list_provider_holidays(
    provider_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Holidays for this year and next, with the provider's blocking flag."""
    require_provider_access(user, provider_id)

    preferences = {
        pref.holiday_id: pref.blocks_availability
        for pref in db.query(DBPreferences).filter(DBPreferences.provider_id == provider_id)
    }

    date_start, date_end = _default_range()
    return [
        ProviderHolidayRead(
            id=holiday.id,
            date=holiday.date,
            name=holiday.name,
            blocks_availability=preferences.get(holiday.id, False),
        )
        for holiday in _holidays_between(db, date_start, date_end)
    ]


@router.put("/providers/{provider_id}/holidays", response_model=list[ProviderHolidayRead])
def replace_provider_holidays(
    provider_id: str,
    data: HolidayPreferencesReplace,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    require_provider_access(user, provider_id)

    if not db.get(DBProviders, provider_id):
        raise HTTPException(status_code=404, detail="Not found")

    blocking_ids = {p.holiday_id for p in data.holiday_preferences if p.blocks_availability}
    if blocking_ids:
        known = {
            row[0] for row in db.query(DBHolidays.id).filter(DBHolidays.id.in_(blocking_ids))
        }
        unknown = blocking_ids - known
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown holiday ids: {sorted(unknown)}")

    db.query(DBPreferences).filter(DBPreferences.provider_id == provider_id).delete(
        synchronize_session=False
    )
    db.add_all(
        DBPreferences(provider_id=provider_id, holiday_id=holiday_id, blocks_availability=True)
        for holiday_id in sorted(blocking_ids)
    )
    bump_schedule_version(db, [provider_id])
    db.commit()

    logger.info(f"Holiday preferences replaced for provider={provider_id}: {len(blocking_ids)} blocking")

    return list_provider_holidays(provider_id, db, user)
