# backend/homeslots/routers/bookings.py
# DELETE = 405 (cancel via PATCH /status, bookings are never removed)

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user
from ..database import get_db
from ..errors import ValidationError
from ..models import ProviderBookings as DBBookings
from ..schemas.bookings import (
    BookingCreate,
    BookingNotesUpdate,
    BookingRead,
    BookingStatusUpdate,
)
from ..services.booking_status import (
    BookingStatus,
    get_booking_for_actor,
    transition_booking,
    update_booking_notes,
)
from ..services.events import emit_event
from ..services.reservations import BookingRequest, ReservationCommitter

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Book a previously offered slot as the calling homeowner.

    409 means the slot was taken or is no longer offered: re-fetch slots.
    """
    if user.role != "homeowner":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only homeowners can book appointments",
        )

    booking = ReservationCommitter(db).commit(
        BookingRequest(
            provider_id=data.provider_id,
            homeowner_id=user.user_id,
            start_ts=data.start_ts,
            end_ts=data.end_ts,
            service_type=data.service_type,
            description=data.description,
            homeowner_notes=data.homeowner_notes,
            image_count=data.image_count,
        )
    )

    emit_event("booking_created", {
        "booking_id": booking.id,
        "provider_id": booking.provider_id,
        "homeowner_id": booking.homeowner_id,
        "start_ts": booking.start_ts.isoformat(),
    })

    return booking


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    provider_id: str | None = None,
    status_filter: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Bookings visible to the caller, newest start first."""
    query = db.query(DBBookings)

    if user.role == "provider":
        query = query.filter(DBBookings.provider_id == user.user_id)
    elif user.role == "homeowner":
        query = query.filter(DBBookings.homeowner_id == user.user_id)
    elif provider_id:
        query = query.filter(DBBookings.provider_id == provider_id)

    if status_filter:
        try:
            BookingStatus(status_filter)
        except ValueError:
            raise ValidationError(f"Unknown booking status: {status_filter}")
        query = query.filter(DBBookings.status == status_filter)

    return query.order_by(DBBookings.start_ts.desc()).all()


@router.get("/{id}", response_model=BookingRead)
def get_booking(
    id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return get_booking_for_actor(db, id, user.as_actor())


@router.patch("/{id}/status", response_model=BookingRead)
def update_booking_status(
    id: int,
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    actor = user.as_actor()
    previous = get_booking_for_actor(db, id, actor).status

    booking = transition_booking(
        db,
        booking_id=id,
        actor=actor,
        target=BookingStatus(data.status),
        reason=data.reason,
        notes=data.notes,
    )

    emit_event("booking_status_changed", {
        "booking_id": booking.id,
        "provider_id": booking.provider_id,
        "homeowner_id": booking.homeowner_id,
        "from_status": previous,
        "to_status": booking.status,
        "initiated_by": {"user_id": user.user_id, "role": user.role},
        "reason": booking.cancel_reason if booking.status == "cancelled" else None,
    })

    return booking


@router.patch("/{id}/notes", response_model=BookingRead)
def update_notes(
    id: int,
    data: BookingNotesUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return update_booking_notes(db, id, user.as_actor(), data.notes)


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
