# backend/homeslots/services/reservations.py
"""
Reservation committer.

Turns a chosen slot into a pending booking. The slot listing is an
optimistic read; this is where it gets re-checked, inside the same
transaction as the insert:

1. Validate the request shape (ValidationError)
2. Lock the provider: UPDATE providers SET booking_seq = booking_seq + 1
   as the first statement of the transaction. On Postgres this is a row
   lock held until commit; on SQLite it takes the database write lock.
   Either way, committers for one provider run one at a time.
3. Reload windows, holidays, bookings and blocks, and require the exact
   [start, end) to still be an offered slot (ConflictError otherwise)
4. Insert the booking as pending and commit

At most one non-cancelled booking can therefore exist for any
overlapping range of a provider.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError, SchedulingError, TransientError, ValidationError
from ..models import ProviderBookings, Providers
from .slots.availability import load_busy, load_schedule
from .slots.config import SlotsConfig, get_slots_config
from .slots.generator import ensure_utc, find_offered_slot

logger = logging.getLogger(__name__)

MAX_IMAGES = 5


@dataclass
class BookingRequest:
    provider_id: str
    homeowner_id: str
    start_ts: datetime
    end_ts: datetime
    service_type: str
    description: Optional[str] = None
    homeowner_notes: Optional[str] = None
    image_count: int = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReservationCommitter:
    """Check-then-insert for one booking, atomic per provider."""

    def __init__(
        self,
        db: Session,
        config: SlotsConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.config = config or get_slots_config()
        self.clock = clock

    def commit(self, request: BookingRequest) -> ProviderBookings:
        """
        Commit a booking for a previously offered slot.

        Raises:
            ValidationError: malformed request (not retryable)
            NotFoundError: provider missing or inactive
            ConflictError: range no longer offered; re-fetch slots
            TransientError: database busy or unavailable; retry the call
        """
        self._validate(request)
        start = ensure_utc(request.start_ts)
        end = ensure_utc(request.end_ts)

        try:
            self._lock_provider(request.provider_id)

            schedule = load_schedule(self.db, request.provider_id, start, end)
            busy = load_busy(self.db, request.provider_id, start, end)

            slot = find_offered_slot(schedule, busy, start, end, self.clock(), self.config)
            if slot is None:
                raise ConflictError("Selected time slot is no longer available")

            booking = ProviderBookings(
                provider_id=request.provider_id,
                homeowner_id=request.homeowner_id,
                start_ts=start.replace(tzinfo=None),
                end_ts=end.replace(tzinfo=None),
                status="pending",
                service_type=request.service_type,
                description=request.description or None,
                homeowner_notes=request.homeowner_notes or None,
                image_count=request.image_count,
            )
            self.db.add(booking)
            self.db.commit()
        except SchedulingError as e:
            self.db.rollback()
            if isinstance(e, ConflictError):
                logger.warning(
                    f"Booking conflict: provider={request.provider_id}, "
                    f"homeowner={request.homeowner_id}, "
                    f"range={start.isoformat()}..{end.isoformat()}"
                )
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Booking insert rejected for provider={request.provider_id}: {e.orig}")
            raise ConflictError("Selected time slot is no longer available")
        except (OperationalError, PoolTimeoutError) as e:
            self.db.rollback()
            logger.error(f"Booking commit failed for provider={request.provider_id}: {e}")
            raise TransientError("Booking storage is temporarily unavailable, please retry")

        self.db.refresh(booking)

        logger.info(
            f"Booking created: booking_id={booking.id}, provider={booking.provider_id}, "
            f"homeowner={booking.homeowner_id}, range={start.isoformat()}..{end.isoformat()}"
        )
        return booking

    # ── Steps ────────────────────────────────────────────────────────────

    def _validate(self, request: BookingRequest) -> None:
        if not request.provider_id or not request.homeowner_id:
            raise ValidationError("provider_id and homeowner_id are required")

        if not request.service_type or not request.service_type.strip():
            raise ValidationError("service_type is required")

        if request.start_ts is None or request.end_ts is None:
            raise ValidationError("start_ts and end_ts are required")

        if ensure_utc(request.end_ts) <= ensure_utc(request.start_ts):
            raise ValidationError("End time must be after start time")

        if not 0 <= request.image_count <= MAX_IMAGES:
            raise ValidationError(f"Maximum {MAX_IMAGES} images allowed")

    def _lock_provider(self, provider_id: str) -> None:
        """First statement of the transaction; takes the per-provider lock."""
        result = self.db.execute(
            update(Providers)
            .where(Providers.id == provider_id, Providers.is_active.is_(True))
            .values(booking_seq=Providers.booking_seq + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Provider {provider_id} not found")


def commit_booking(
    db: Session,
    request: BookingRequest,
    config: SlotsConfig | None = None,
) -> ProviderBookings:
    """Shortcut for ReservationCommitter(db, config).commit(request)."""
    return ReservationCommitter(db, config).commit(request)
