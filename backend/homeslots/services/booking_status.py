# backend/homeslots/services/booking_status.py
"""
Booking lifecycle.

    pending ──(provider accepts)──▶ confirmed ──(service rendered)──▶ completed
       │                               │
       └──────(either party cancels, reason required)──▶ cancelled

completed and cancelled are terminal. Who may do what:
- provider:  pending → confirmed, cancel
- homeowner: cancel only
- system:    confirmed → completed, cancel

The booking row's status column is the single source of truth; the
Reservation Committer only ever creates rows in pending.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..models import ProviderBookings

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActorRole(str, Enum):
    PROVIDER = "provider"
    HOMEOWNER = "homeowner"
    SYSTEM = "system"


TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

ROLE_TARGETS: dict[ActorRole, set[BookingStatus]] = {
    ActorRole.PROVIDER: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    ActorRole.HOMEOWNER: {BookingStatus.CANCELLED},
    ActorRole.SYSTEM: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
}


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    user_id: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def can_transition(current: BookingStatus, target: BookingStatus, role: ActorRole) -> bool:
    return target in TRANSITIONS[current] and target in ROLE_TARGETS[role]


def get_booking_for_actor(db: Session, booking_id: int, actor: Actor) -> ProviderBookings:
    """
    Booking visible to the actor.

    Bookings the actor is not party to are reported as missing.
    """
    booking = db.get(ProviderBookings, booking_id)
    if not booking or not _is_party(booking, actor):
        raise NotFoundError("Booking not found or not authorized")
    return booking


def transition_booking(
    db: Session,
    booking_id: int,
    actor: Actor,
    target: BookingStatus,
    reason: str | None = None,
    notes: str | None = None,
) -> ProviderBookings:
    """
    Move a booking to a new status.

    The write is a compare-and-set on the status that was checked; a
    stale reader cannot overwrite a newer status.

    Raises:
        NotFoundError: booking missing or actor not a party to it
        ValidationError: cancellation without a reason
        InvalidTransitionError: transition not in the graph for this role,
            or the status changed since it was read
    """
    booking = get_booking_for_actor(db, booking_id, actor)
    current = BookingStatus(booking.status)

    if not can_transition(current, target, actor.role):
        raise InvalidTransitionError(
            f"Cannot change booking from {current.value} to {target.value} as {actor.role.value}"
        )

    values = {"status": target.value, "updated_at": _utcnow()}

    if target == BookingStatus.CANCELLED:
        if not reason or not reason.strip():
            raise ValidationError("Cancellation reason is required")
        values["cancel_reason"] = reason.strip()
        values["cancelled_by"] = actor.role.value

    if notes is not None:
        values[_notes_field(actor)] = notes or None

    result = db.execute(
        update(ProviderBookings)
        .where(ProviderBookings.id == booking.id, ProviderBookings.status == current.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        logger.warning(
            f"Booking {booking.id} {current.value} → {target.value} lost a race "
            f"as {actor.role.value}"
        )
        raise InvalidTransitionError(
            f"Booking {booking.id} is no longer {current.value}; reload and retry"
        )

    db.commit()
    db.refresh(booking)

    logger.info(
        f"Booking {booking.id} {current.value} → {target.value} by {actor.role.value}"
        f"{f' ({actor.user_id})' if actor.user_id else ''}"
    )
    return booking


def update_booking_notes(
    db: Session,
    booking_id: int,
    actor: Actor,
    notes: str | None,
) -> ProviderBookings:
    """Update the actor's own notes. Allowed in any status, cancelled included."""
    booking = get_booking_for_actor(db, booking_id, actor)
    setattr(booking, _notes_field(actor), notes or None)
    booking.updated_at = _utcnow()
    db.commit()
    db.refresh(booking)
    return booking


def _notes_field(actor: Actor) -> str:
    if actor.role == ActorRole.PROVIDER:
        return "provider_notes"
    if actor.role == ActorRole.HOMEOWNER:
        return "homeowner_notes"
    raise ValidationError("Only the provider or the homeowner can edit notes")


def _is_party(booking: ProviderBookings, actor: Actor) -> bool:
    if actor.role == ActorRole.SYSTEM:
        return True
    if actor.role == ActorRole.PROVIDER:
        return booking.provider_id == actor.user_id
    return booking.homeowner_id == actor.user_id
