# backend/homeslots/services/slots/generator.py
"""
Level 2: bookable slots for a provider over a query range.

Pure function over an already-loaded schedule and occupancy snapshot:

  segments (Level 1) → fixed-size tiling → drop buffer-expanded booking
  overlaps → drop unavailability overlaps → drop past / beyond horizon
  → chronological list

Used for read-only listing and, with the range equal to the requested
slot, for re-validation inside the booking transaction.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...errors import ValidationError
from .calculator import Segment, WeeklyWindow, calculate_day_segments, local_dates
from .config import SlotsConfig, get_slots_config

BUSY_BOOKING = "booking"
BUSY_UNAVAILABLE = "unavailability"


@dataclass
class ProviderSchedule:
    """
    Provider configuration snapshot consumed by the generator.

    blocked_dates: provider-local dates whose holiday the provider opted
    to block. segments: optional precomputed Level 1 results (cache hits)
    keyed by local date; missing dates are calculated from windows.
    version: the provider's schedule_version when the snapshot was read.
    """
    provider_id: str
    timezone: str = "UTC"
    windows: tuple[WeeklyWindow, ...] = ()
    blocked_dates: frozenset[date] = frozenset()
    segments: dict[date, list[Segment]] = field(default_factory=dict)
    version: int = 0

    @property
    def tz(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError(f"Unknown timezone: {self.timezone}")

    def segments_on(self, day: date) -> list[Segment]:
        if day in self.segments:
            return self.segments[day]
        return calculate_day_segments(self.windows, day, self.tz, self.blocked_dates)


@dataclass(frozen=True)
class BusyInterval:
    """Occupied time: a non-cancelled booking or an unavailability block."""
    start: datetime
    end: datetime
    kind: str = BUSY_BOOKING
    ref_id: int | None = None


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime

    def as_local(self, tz: ZoneInfo) -> "Slot":
        return Slot(self.start.astimezone(tz), self.end.astimezone(tz))


def ensure_utc(value: datetime) -> datetime:
    """Aware datetime in UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Strict half-open intersection; touching ranges do not overlap."""
    return a_start < b_end and b_start < a_end


def validate_query(
    range_start: datetime,
    range_end: datetime,
    slot_duration_minutes: int,
    config: SlotsConfig,
) -> tuple[datetime, datetime]:
    """Validate a slot query. Returns the range normalized to UTC."""
    if range_start is None or range_end is None:
        raise ValidationError("Range start and end are required")

    if isinstance(slot_duration_minutes, bool) or not isinstance(slot_duration_minutes, int):
        raise ValidationError("Slot duration must be a whole number of minutes")

    if slot_duration_minutes <= 0:
        raise ValidationError("Slot duration must be positive")

    if not config.min_slot_minutes <= slot_duration_minutes <= config.max_slot_minutes:
        raise ValidationError(
            f"Slot duration must be between {config.min_slot_minutes} "
            f"and {config.max_slot_minutes} minutes"
        )

    start = ensure_utc(range_start)
    end = ensure_utc(range_end)

    if end <= start:
        raise ValidationError("Range end must be after range start")

    if end - start > timedelta(days=config.horizon_days):
        raise ValidationError(f"Range cannot span more than {config.horizon_days} days")

    return start, end


def generate_slots(
    schedule: ProviderSchedule,
    busy: list[BusyInterval],
    range_start: datetime,
    range_end: datetime,
    slot_duration_minutes: int,
    now: datetime,
    config: SlotsConfig | None = None,
) -> list[Slot]:
    """
    Generate free slots for a provider.

    Returns:
        Slots in chronological order (UTC). Empty list when the provider
        has no windows in the range.
    """
    config = config or get_slots_config()
    start, end = validate_query(range_start, range_end, slot_duration_minutes, config)
    now = ensure_utc(now)

    if not schedule.windows and not schedule.segments:
        return []

    tz = schedule.tz
    duration = timedelta(minutes=slot_duration_minutes)
    earliest = now + timedelta(minutes=config.min_advance_minutes)
    latest = now + timedelta(days=config.horizon_days)

    bookings = sorted(
        (b for b in busy if b.kind == BUSY_BOOKING), key=lambda b: b.start
    )
    blocks = [b for b in busy if b.kind != BUSY_BOOKING]

    slots: list[Slot] = []

    for day in local_dates(start, end, tz):
        if day in schedule.blocked_dates:
            continue

        for segment in schedule.segments_on(day):
            t = segment.start
            while t + duration <= segment.end:
                slot_end = t + duration
                if _is_free(segment, t, slot_end, bookings, blocks, start, end, earliest, latest):
                    slots.append(Slot(t, slot_end))
                t = slot_end

    slots.sort(key=lambda s: s.start)
    return slots


def _is_free(
    segment: Segment,
    slot_start: datetime,
    slot_end: datetime,
    bookings: list[BusyInterval],
    blocks: list[BusyInterval],
    range_start: datetime,
    range_end: datetime,
    earliest: datetime,
    latest: datetime,
) -> bool:
    if slot_start < range_start or slot_end > range_end:
        return False

    # No booking into history
    if slot_start < earliest or slot_start > latest:
        return False

    buffer = timedelta(minutes=segment.buffer_for(slot_start, slot_end))
    padded_start = slot_start - buffer
    padded_end = slot_end + buffer

    for booking in bookings:
        if booking.start >= padded_end:
            break
        if overlaps(padded_start, padded_end, booking.start, booking.end):
            return False

    for block in blocks:
        if overlaps(slot_start, slot_end, block.start, block.end):
            return False

    return True


def find_offered_slot(
    schedule: ProviderSchedule,
    busy: list[BusyInterval],
    start: datetime,
    end: datetime,
    now: datetime,
    config: SlotsConfig | None = None,
) -> Slot | None:
    """
    Re-derive whether [start, end) is currently an offered slot.

    Runs the generator over exactly the requested range with the
    requested length as duration, so the slot must sit on the tiling
    grid of its segment and pass every Level 2 filter.
    """
    config = config or get_slots_config()
    start = ensure_utc(start)
    end = ensure_utc(end)

    if end <= start:
        raise ValidationError("End time must be after start time")

    length = end - start
    if length % timedelta(minutes=1):
        raise ValidationError("Booking length must be a whole number of minutes")

    minutes = int(length / timedelta(minutes=1))
    for slot in generate_slots(schedule, busy, start, end, minutes, now, config):
        if slot.start == start and slot.end == end:
            return slot
    return None


def group_slots_by_date(slots: list[Slot], tz: ZoneInfo) -> "OrderedDict[str, list[Slot]]":
    """Presentation view: local slots keyed by provider-local ISO date."""
    grouped: OrderedDict[str, list[Slot]] = OrderedDict()
    for slot in slots:
        local = slot.as_local(tz)
        grouped.setdefault(local.start.date().isoformat(), []).append(local)
    return grouped
