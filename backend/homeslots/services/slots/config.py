# backend/homeslots/services/slots/config.py
"""
Slots configuration.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...config import settings


@dataclass(frozen=True)
class SlotsConfig:
    """
    Configuration for slot generation and reservation.

    Attributes:
        horizon_days: Longest query range and furthest bookable start
        min_advance_minutes: Slots starting sooner than now + this are hidden
        min_slot_minutes / max_slot_minutes: Accepted slot durations
        default_slot_minutes: Duration used when the caller omits one
        default_buffer_minutes: Buffer for windows saved without one
        cache_ttl_seconds: Lifetime of a cached day, counted from when it is written
    """
    horizon_days: int = 90
    min_advance_minutes: int = 0
    min_slot_minutes: int = 15
    max_slot_minutes: int = 480
    default_slot_minutes: int = 30
    default_buffer_minutes: int = 15
    cache_ttl_seconds: int = 86400

    def __post_init__(self):
        """Validate configuration."""
        if self.min_slot_minutes <= 0:
            raise ValueError(f"min_slot_minutes must be positive, got {self.min_slot_minutes}")
        if self.max_slot_minutes < self.min_slot_minutes:
            raise ValueError(
                f"max_slot_minutes ({self.max_slot_minutes}) is below "
                f"min_slot_minutes ({self.min_slot_minutes})"
            )
        if self.horizon_days <= 0:
            raise ValueError(f"horizon_days must be positive, got {self.horizon_days}")


@lru_cache
def get_slots_config() -> SlotsConfig:
    """Slots configuration built from settings (singleton)."""
    return SlotsConfig(
        horizon_days=settings.horizon_days,
        min_advance_minutes=settings.min_advance_minutes,
        min_slot_minutes=settings.min_slot_minutes,
        max_slot_minutes=settings.max_slot_minutes,
        default_slot_minutes=settings.default_slot_minutes,
        default_buffer_minutes=settings.default_buffer_minutes,
        cache_ttl_seconds=settings.segments_cache_ttl_seconds,
    )
