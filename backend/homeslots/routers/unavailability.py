# backend/homeslots/routers/unavailability.py
# PATCH = 405, DELETE = ALLOWED (hard)

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user, require_provider_access
from ..database import get_db
from ..models import Providers as DBProviders
from ..models import ProviderUnavailability as DBUnavailability
from ..schemas.unavailability import UnavailabilityCreate, UnavailabilityRead

router = APIRouter(prefix="/providers/{provider_id}/unavailability", tags=["unavailability"])


@router.get("/", response_model=list[UnavailabilityRead])
def list_unavailability(
    provider_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    require_provider_access(user, provider_id)
    return (
        db.query(DBUnavailability)
        .filter(DBUnavailability.provider_id == provider_id)
        .order_by(DBUnavailability.start_ts)
        .all()
    )


@router.post("/", response_model=UnavailabilityRead, status_code=status.HTTP_201_CREATED)
def create_unavailability(
    provider_id: str,
    data: UnavailabilityCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    require_provider_access(user, provider_id)

    if not db.get(DBProviders, provider_id):
        raise HTTPException(status_code=404, detail="Not found")

    obj = DBUnavailability(
        provider_id=provider_id,
        start_ts=data.start_ts.replace(tzinfo=None),
        end_ts=data.end_ts.replace(tzinfo=None),
        reason=data.reason or None,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_unavailability(
    provider_id: str,
    id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    require_provider_access(user, provider_id)

    obj = db.get(DBUnavailability, id)
    if not obj or obj.provider_id != provider_id:
        raise HTTPException(status_code=404, detail="Not found")
    db.delete(obj)
    db.commit()
