# backend/homeslots/routers/slots.py
"""
Slots API endpoints.

GET  /slots         - Available slots grouped by provider-local date
GET  /slots/flat    - Same slots as one chronological list
POST /slots/invalidate - Drop cached Level 1 segments for a provider
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user, require_provider_access
from ..config import settings
from ..database import get_db
from ..redis_client import get_redis
from ..schemas.slots import (
    SlotRead,
    SlotsByDateResponse,
    SlotsInvalidateResponse,
    SlotsListResponse,
)
from ..services.slots import (
    get_slots_config,
    group_slots_by_date,
    invalidate_provider_cache,
    list_available_slots,
)
from ..services.slots.generator import ProviderSchedule, Slot

router = APIRouter(prefix="/slots", tags=["slots"])


def _query_slots(
    db: Session,
    provider_id: str,
    from_ts: datetime,
    to_ts: datetime,
    slot_mins: int | None,
) -> tuple[ProviderSchedule, int, list[Slot]]:
    config = get_slots_config()
    if slot_mins is None:
        slot_mins = config.default_slot_minutes

    schedule, slots = list_available_slots(
        db=db,
        provider_id=provider_id,
        range_start=from_ts,
        range_end=to_ts,
        slot_duration_minutes=slot_mins,
        config=config,
        redis=get_redis(),
    )
    if schedule is None:
        schedule = ProviderSchedule(provider_id=provider_id, timezone=settings.default_timezone)
    return schedule, slot_mins, slots


@router.get("/", response_model=SlotsByDateResponse)
def get_slots(
    provider_id: str = Query(..., alias="provider"),
    from_ts: datetime = Query(..., alias="from"),
    to_ts: datetime = Query(..., alias="to"),
    slot_mins: int | None = None,
    db: Session = Depends(get_db),
):
    """Available slots for a provider, grouped by date."""
    schedule, slot_mins, slots = _query_slots(db, provider_id, from_ts, to_ts, slot_mins)
    grouped = group_slots_by_date(slots, schedule.tz)

    return SlotsByDateResponse(
        provider_id=provider_id,
        timezone=schedule.timezone,
        slot_mins=slot_mins,
        slots={
            day: [SlotRead(start=s.start, end=s.end) for s in day_slots]
            for day, day_slots in grouped.items()
        },
        total_slots=len(slots),
    )


@router.get("/flat", response_model=SlotsListResponse)
def get_slots_flat(
    provider_id: str = Query(..., alias="provider"),
    from_ts: datetime = Query(..., alias="from"),
    to_ts: datetime = Query(..., alias="to"),
    slot_mins: int | None = None,
    db: Session = Depends(get_db),
):
    """Available slots for a provider in chronological order."""
    schedule, slot_mins, slots = _query_slots(db, provider_id, from_ts, to_ts, slot_mins)
    tz = schedule.tz

    return SlotsListResponse(
        provider_id=provider_id,
        timezone=schedule.timezone,
        slot_mins=slot_mins,
        slots=[SlotRead(start=s.start.astimezone(tz), end=s.end.astimezone(tz)) for s in slots],
        total_slots=len(slots),
    )


@router.post("/invalidate", response_model=SlotsInvalidateResponse)
def invalidate_slots_cache(
    provider_id: str = Query(..., alias="provider"),
    user: CurrentUser = Depends(get_current_user),
):
    """Manually invalidate cached segments for a provider."""
    require_provider_access(user, provider_id)

    deleted = invalidate_provider_cache(get_redis(), provider_id)
    return SlotsInvalidateResponse(provider_id=provider_id, deleted_keys=deleted)
