# backend/homeslots/services/slots/availability.py
"""
Provider slot availability: data access around the pure generator.

Reads, for one provider:
- weekly windows (provider_availability)
- holidays the provider opted to block (holidays + preferences)
- non-cancelled bookings and unavailability blocks overlapping the range

then hands the snapshot to generate_slots(). Level 1 segments are taken
from Redis when available. Nothing here writes to the database.
"""

import logging
from datetime import date, datetime, timedelta, timezone

from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ...models import (
    Holidays,
    ProviderAvailability,
    ProviderBookings,
    ProviderHolidayPreferences,
    Providers,
    ProviderUnavailability,
)
from .calculator import WeeklyWindow, local_dates
from .config import SlotsConfig, get_slots_config
from .generator import (
    BUSY_BOOKING,
    BUSY_UNAVAILABLE,
    BusyInterval,
    ProviderSchedule,
    Slot,
    ensure_utc,
    generate_slots,
    validate_query,
)
from .redis_store import SegmentsRedisStore

logger = logging.getLogger(__name__)

# Statuses that occupy the provider's calendar
OCCUPYING_STATUSES = ("pending", "confirmed", "completed")

# Upper bound for a window's buffer_minutes (enforced on write)
MAX_BUFFER_MINUTES = 24 * 60


def list_available_slots(
    db: Session,
    provider_id: str,
    range_start: datetime,
    range_end: datetime,
    slot_duration_minutes: int,
    now: datetime | None = None,
    config: SlotsConfig | None = None,
    redis: Redis | None = None,
) -> tuple[ProviderSchedule | None, list[Slot]]:
    """
    List bookable slots for a provider.

    Returns:
        (schedule, slots). schedule is None and slots empty when the
        provider does not exist; absence of configuration is not a fault.
    """
    config = config or get_slots_config()
    now = ensure_utc(now or datetime.now(timezone.utc))
    start, end = validate_query(range_start, range_end, slot_duration_minutes, config)

    schedule = load_schedule(db, provider_id, start, end)
    if schedule is None or not schedule.windows:
        return schedule, []

    if redis is not None:
        _attach_cached_segments(redis, schedule, start, end, config)

    busy = load_busy(db, provider_id, start, end)
    slots = generate_slots(schedule, busy, start, end, slot_duration_minutes, now, config)

    logger.debug(
        f"Slots for provider={provider_id} {start.isoformat()}..{end.isoformat()} "
        f"duration={slot_duration_minutes}: {len(slots)}"
    )
    return schedule, slots


# ── Schedule snapshot ────────────────────────────────────────────────────


def load_schedule(
    db: Session,
    provider_id: str,
    range_start: datetime,
    range_end: datetime,
) -> ProviderSchedule | None:
    """
    Load windows and blocked holiday dates. None if provider is missing.

    The provider row (and its schedule_version) is read before windows and
    preferences, so segments cached under a version are never older than it.
    """
    provider = _get_provider(db, provider_id)
    if not provider:
        return None

    windows = tuple(
        WeeklyWindow(
            day_of_week=row.day_of_week,
            start_time=row.start_time,
            end_time=row.end_time,
            buffer_minutes=row.buffer_minutes or 0,
        )
        for row in _get_windows(db, provider_id)
    )

    schedule = ProviderSchedule(
        provider_id=provider_id,
        timezone=provider.timezone or "UTC",
        windows=windows,
        version=provider.schedule_version or 0,
    )

    dates = local_dates(range_start, range_end, schedule.tz)
    schedule.blocked_dates = frozenset(
        _get_blocked_holiday_dates(db, provider_id, dates[0], dates[-1])
    )
    return schedule


def load_busy(
    db: Session,
    provider_id: str,
    range_start: datetime,
    range_end: datetime,
) -> list[BusyInterval]:
    """
    Occupied intervals that can affect slots in the range.

    The lookup window is widened by MAX_BUFFER_MINUTES so bookings just
    outside the range still push their buffer into it.
    """
    margin = timedelta(minutes=MAX_BUFFER_MINUTES)
    lo = _to_db(range_start - margin)
    hi = _to_db(range_end + margin)

    busy = [
        BusyInterval(_from_db(b.start_ts), _from_db(b.end_ts), BUSY_BOOKING, b.id)
        for b in _get_active_bookings(db, provider_id, lo, hi)
    ]
    busy.extend(
        BusyInterval(_from_db(u.start_ts), _from_db(u.end_ts), BUSY_UNAVAILABLE, u.id)
        for u in _get_unavailability(db, provider_id, lo, hi)
    )
    return busy


# ── Level 1 cache ────────────────────────────────────────────────────────


def _attach_cached_segments(
    redis: Redis,
    schedule: ProviderSchedule,
    range_start: datetime,
    range_end: datetime,
    config: SlotsConfig,
) -> None:
    """Fill schedule.segments from Redis, calculating and storing misses."""
    store = SegmentsRedisStore(redis, config)
    dates = local_dates(range_start, range_end, schedule.tz)

    try:
        cached = store.mget_segments(schedule.provider_id, schedule.version, dates)
    except RedisError as e:
        logger.warning(f"Segments cache read failed for provider={schedule.provider_id}: {e}")
        return

    misses = {dt: schedule.segments_on(dt) for dt in dates if dt not in cached}
    schedule.segments = {**cached, **misses}

    if misses:
        logger.debug(f"Segments cache miss for provider={schedule.provider_id}: {len(misses)} days")
        try:
            store.store_multiple_days(schedule.provider_id, schedule.version, misses)
        except RedisError as e:
            logger.warning(f"Segments cache write failed for provider={schedule.provider_id}: {e}")


# ── Conversions ──────────────────────────────────────────────────────────


def _to_db(value: datetime) -> datetime:
    """Aware → naive UTC for storage."""
    return ensure_utc(value).replace(tzinfo=None)


def _from_db(value: datetime) -> datetime:
    """Naive UTC from storage → aware UTC."""
    return ensure_utc(value)


# ── Database helpers ─────────────────────────────────────────────────────


def _get_provider(db: Session, provider_id: str):
    """Get active provider by ID."""
    return (
        db.query(Providers)
        .filter(Providers.id == provider_id, Providers.is_active.is_(True))
        .first()
    )


def _get_windows(db: Session, provider_id: str) -> list:
    return (
        db.query(ProviderAvailability)
        .filter(ProviderAvailability.provider_id == provider_id)
        .order_by(ProviderAvailability.day_of_week, ProviderAvailability.start_time)
        .all()
    )


def _get_blocked_holiday_dates(
    db: Session,
    provider_id: str,
    date_start: date,
    date_end: date,
) -> list[date]:
    """Holiday dates in range the provider opted to block."""
    rows = (
        db.query(Holidays.date)
        .join(ProviderHolidayPreferences, ProviderHolidayPreferences.holiday_id == Holidays.id)
        .filter(
            ProviderHolidayPreferences.provider_id == provider_id,
            ProviderHolidayPreferences.blocks_availability.is_(True),
            Holidays.date >= date_start,
            Holidays.date <= date_end,
        )
        .all()
    )
    return [row[0] for row in rows]


def _get_active_bookings(db: Session, provider_id: str, lo: datetime, hi: datetime) -> list:
    """Non-cancelled bookings overlapping [lo, hi)."""
    return (
        db.query(ProviderBookings)
        .filter(
            ProviderBookings.provider_id == provider_id,
            ProviderBookings.status.in_(OCCUPYING_STATUSES),
            ProviderBookings.start_ts < hi,
            ProviderBookings.end_ts > lo,
        )
        .order_by(ProviderBookings.start_ts)
        .all()
    )


def _get_unavailability(db: Session, provider_id: str, lo: datetime, hi: datetime) -> list:
    return (
        db.query(ProviderUnavailability)
        .filter(
            ProviderUnavailability.provider_id == provider_id,
            ProviderUnavailability.start_ts < hi,
            ProviderUnavailability.end_ts > lo,
        )
        .all()
    )
