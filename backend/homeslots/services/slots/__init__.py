# backend/homeslots/services/slots/__init__.py
"""
Slots calculation module.

Level 1: Provider availability segments per date (cached in Redis)
Level 2: Bookable slots after bookings, buffers and blocks (on-the-fly)
"""

from .config import SlotsConfig, get_slots_config
from .calculator import WeeklyWindow, Segment, calculate_day_segments
from .generator import (
    BusyInterval,
    ProviderSchedule,
    Slot,
    find_offered_slot,
    generate_slots,
    group_slots_by_date,
)
from .redis_store import SegmentsRedisStore
from .invalidator import bump_schedule_version, invalidate_provider_cache
from .availability import list_available_slots, load_busy, load_schedule

__all__ = [
    "SlotsConfig",
    "get_slots_config",
    "WeeklyWindow",
    "Segment",
    "calculate_day_segments",
    "BusyInterval",
    "ProviderSchedule",
    "Slot",
    "find_offered_slot",
    "generate_slots",
    "group_slots_by_date",
    "SegmentsRedisStore",
    "bump_schedule_version",
    "invalidate_provider_cache",
    "list_available_slots",
    "load_busy",
    "load_schedule",
]
