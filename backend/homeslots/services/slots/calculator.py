# backend/homeslots/services/slots/calculator.py
"""
Level 1: effective availability segments for one provider-local date.

Produces the disjoint intervals a provider is nominally open on a date:
  weekly windows for the date's day-of-week, anchored to the date in the
  provider's timezone, converted to UTC and unioned.

Contains:
✓ provider_availability (weekly windows, buffers)
✓ holiday blocks the provider opted into (whole day)

Does NOT contain:
✗ Bookings (checked at Level 2)
✗ Unavailability blocks (checked at Level 2)
✗ "now" / min advance (checked at Level 2)

Everything here is pure; results are safe to cache per (provider, date).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class WeeklyWindow:
    """A recurring weekly window, local time of day. day_of_week: 0 = Sunday."""
    day_of_week: int
    start_time: time
    end_time: time
    buffer_minutes: int = 0


@dataclass(frozen=True)
class WindowSpan:
    """A weekly window anchored to a concrete date (UTC)."""
    start: datetime
    end: datetime
    buffer_minutes: int


@dataclass(frozen=True)
class Segment:
    """
    Disjoint effective-availability interval for a date.

    spans keeps the windows the segment was unioned from, so the buffer of
    the window a candidate slot falls within can still be resolved.
    """
    start: datetime
    end: datetime
    spans: tuple[WindowSpan, ...]

    def buffer_for(self, slot_start: datetime, slot_end: datetime) -> int:
        """
        Buffer applying to a slot inside this segment.

        Largest buffer among windows fully containing the slot; when the slot
        straddles two overlapping windows, largest among the windows it touches.
        """
        containing = [
            s.buffer_minutes for s in self.spans
            if s.start <= slot_start and slot_end <= s.end
        ]
        if containing:
            return max(containing)
        touching = [
            s.buffer_minutes for s in self.spans
            if s.start < slot_end and slot_start < s.end
        ]
        return max(touching, default=0)


def day_of_week(day: date) -> int:
    """Sunday-based day index (0 = Sunday .. 6 = Saturday)."""
    return (day.weekday() + 1) % 7


def anchor_window(window: WeeklyWindow, day: date, tz: ZoneInfo) -> WindowSpan:
    """Place a weekly window on a concrete date and convert to UTC."""
    start = datetime.combine(day, window.start_time, tzinfo=tz).astimezone(timezone.utc)
    end = datetime.combine(day, window.end_time, tzinfo=tz).astimezone(timezone.utc)
    return WindowSpan(start=start, end=end, buffer_minutes=window.buffer_minutes)


def merge_spans(spans: list[WindowSpan]) -> list[Segment]:
    """
    Union overlapping or touching spans into disjoint segments.

    Overlapping windows are a data-entry anomaly; covered time is counted
    once.
    """
    ordered = sorted((s for s in spans if s.start < s.end), key=lambda s: (s.start, s.end))
    segments: list[Segment] = []

    current_start: datetime | None = None
    current_end: datetime | None = None
    members: list[WindowSpan] = []

    for span in ordered:
        if current_end is not None and span.start <= current_end:
            current_end = max(current_end, span.end)
            members.append(span)
            continue

        if current_start is not None:
            segments.append(Segment(current_start, current_end, tuple(members)))
        current_start, current_end, members = span.start, span.end, [span]

    if current_start is not None:
        segments.append(Segment(current_start, current_end, tuple(members)))

    return segments


def calculate_day_segments(
    windows: list[WeeklyWindow] | tuple[WeeklyWindow, ...],
    target_date: date,
    tz: ZoneInfo,
    blocked_dates: frozenset[date] | set[date] = frozenset(),
) -> list[Segment]:
    """
    Calculate effective segments for a provider-local date.

    Returns:
        Sorted disjoint segments. Empty list = closed (no windows or holiday).
    """
    # Holiday blocking is all-or-nothing for the day
    if target_date in blocked_dates:
        return []

    dow = day_of_week(target_date)
    spans = [
        anchor_window(w, target_date, tz)
        for w in windows
        if w.day_of_week == dow and w.start_time < w.end_time
    ]
    if not spans:
        return []

    return merge_spans(spans)


def local_dates(start: datetime, end: datetime, tz: ZoneInfo) -> list[date]:
    """Provider-local calendar dates touched by [start, end] (inclusive)."""
    first = start.astimezone(tz).date()
    last = end.astimezone(tz).date()

    dates = []
    current = first
    while current <= last:
        dates.append(current)
        current += timedelta(days=1)
    return dates
