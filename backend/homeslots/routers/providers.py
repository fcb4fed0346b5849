# backend/homeslots/routers/providers.py
# DELETE = 405 (deactivate via PATCH is_active=false)

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user, require_provider_access
from ..config import settings
from ..database import get_db
from ..models import Providers as DBProviders
from ..schemas.providers import ProviderCreate, ProviderRead, ProviderUpdate
from ..services.slots import bump_schedule_version

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["providers"])


@router.post("/", response_model=ProviderRead, status_code=status.HTTP_201_CREATED)
def create_provider(
    data: ProviderCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    require_provider_access(user, data.id)

    if db.get(DBProviders, data.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Provider already exists")

    obj = DBProviders(
        id=data.id,
        display_name=data.display_name,
        timezone=data.timezone or settings.default_timezone,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info(f"Provider created: {obj.id} ({obj.timezone})")
    return obj


@router.get("/{provider_id}", response_model=ProviderRead)
def get_provider(provider_id: str, db: Session = Depends(get_db)):
    obj = db.get(DBProviders, provider_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.patch("/{provider_id}", response_model=ProviderRead)
def update_provider(
    provider_id: str,
    data: ProviderUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    require_provider_access(user, provider_id)

    obj = db.get(DBProviders, provider_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    changes = data.model_dump(exclude_unset=True)
    timezone_changed = changes.get("timezone") not in (None, obj.timezone)

    for field, value in changes.items():
        if value is not None:
            setattr(obj, field, value)

    if timezone_changed:
        bump_schedule_version(db, [provider_id])

    db.commit()
    db.refresh(obj)

    return obj


@router.delete("/{provider_id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
