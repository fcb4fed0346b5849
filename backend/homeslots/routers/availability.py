# backend/homeslots/routers/availability.py
# Weekly windows are replaced as a whole set; no per-row PATCH/DELETE.

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user, require_provider_access
from ..database import get_db
from ..models import ProviderAvailability as DBAvailability
from ..models import Providers as DBProviders
from ..schemas.availability import AvailabilityReplace, AvailabilityWindowRead
from ..services.slots import bump_schedule_version, get_slots_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers/{provider_id}/availability", tags=["availability"])


@router.get("/", response_model=list[AvailabilityWindowRead])
def list_availability(provider_id: str, db: Session = Depends(get_db)):
    return (
        db.query(DBAvailability)
        .filter(DBAvailability.provider_id == provider_id)
        .order_by(DBAvailability.day_of_week, DBAvailability.start_time)
        .all()
    )


@router.put("/", response_model=list[AvailabilityWindowRead])
def replace_availability(
    provider_id: str,
    data: AvailabilityReplace,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Replace the provider's weekly schedule (delete + insert, one transaction)."""
    require_provider_access(user, provider_id)

    if not db.get(DBProviders, provider_id):
        raise HTTPException(status_code=404, detail="Not found")

    default_buffer = get_slots_config().default_buffer_minutes

    db.query(DBAvailability).filter(DBAvailability.provider_id == provider_id).delete(
        synchronize_session=False
    )
    rows = [
        DBAvailability(
            provider_id=provider_id,
            day_of_week=entry.day_of_week,
            start_time=entry.start_time,
            end_time=entry.end_time,
            buffer_minutes=(
                entry.buffer_minutes if entry.buffer_minutes is not None else default_buffer
            ),
        )
        for entry in data.availability
    ]
    db.add_all(rows)
    bump_schedule_version(db, [provider_id])
    db.commit()

    logger.info(f"Availability replaced for provider={provider_id}: {len(rows)} windows")

    return list_availability(provider_id, db)
