# backend/homeslots/services/slots/redis_store.py
"""
Redis storage for Level 1 segments.

Key format: slots:segments:{provider_id}:v{schedule_version}:{date}

The provider's schedule_version is bumped in the same transaction as any
windows, timezone or holiday-preference change, so segments computed from
an older snapshot are never read again; they just expire.

Value: JSON list of segments
       [{"start": iso, "end": iso, "spans": [[iso, iso, buffer], ...]}, ...]
       "[]" marks "calculated, closed day" so a hit is distinguishable
       from a miss.

Bookings are never cached here; they change far more often than
windows and are read live on every query.
"""

import json
from datetime import date, datetime

from redis import Redis

from .calculator import Segment, WindowSpan
from .config import SlotsConfig, get_slots_config


def _decode(value):
    return value.decode() if isinstance(value, bytes) else value


def dump_segments(segments: list[Segment]) -> str:
    return json.dumps([
        {
            "start": seg.start.isoformat(),
            "end": seg.end.isoformat(),
            "spans": [
                [span.start.isoformat(), span.end.isoformat(), span.buffer_minutes]
                for span in seg.spans
            ],
        }
        for seg in segments
    ])


def load_segments(raw: str) -> list[Segment]:
    return [
        Segment(
            start=datetime.fromisoformat(item["start"]),
            end=datetime.fromisoformat(item["end"]),
            spans=tuple(
                WindowSpan(datetime.fromisoformat(s), datetime.fromisoformat(e), int(buf))
                for s, e, buf in item["spans"]
            ),
        )
        for item in json.loads(raw)
    ]


class SegmentsRedisStore:
    """Redis storage wrapper for per-day availability segments."""

    KEY_PREFIX = "slots:segments"

    def __init__(self, redis: Redis, config: SlotsConfig | None = None):
        self.redis = redis
        self.config = config or get_slots_config()

    def _key(self, provider_id: str, version: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{provider_id}:v{version}:{dt.isoformat()}"

    # ── Write ────────────────────────────────────────────────────────────

    def store_multiple_days(
        self,
        provider_id: str,
        version: int,
        days_segments: dict[date, list[Segment]],
    ) -> None:
        """Batch store segments for multiple days via pipeline."""
        if not days_segments:
            return

        pipe = self.redis.pipeline()
        for dt, segments in days_segments.items():
            pipe.set(
                self._key(provider_id, version, dt),
                dump_segments(segments),
                ex=self.config.cache_ttl_seconds,
            )
        pipe.execute()

    # ── Read ─────────────────────────────────────────────────────────────

    def mget_segments(
        self,
        provider_id: str,
        version: int,
        dates: list[date],
    ) -> dict[date, list[Segment]]:
        """
        Batch get cached segments for one schedule version.

        Returns:
            Dict of cache hits only; missing dates must be calculated.
        """
        if not dates:
            return {}

        values = self.redis.mget([self._key(provider_id, version, dt) for dt in dates])

        result = {}
        for dt, value in zip(dates, values):
            if value is None:
                continue
            result[dt] = load_segments(_decode(value))
        return result

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_provider_segments(self, provider_id: str | None = None) -> int:
        """
        Delete cached segments of every version.

        Args:
            provider_id: Provider, or None for every provider

        Returns:
            Number of deleted keys.
        """
        pattern = f"{self.KEY_PREFIX}:{provider_id or '*'}:*"
        keys = list(self.redis.scan_iter(match=pattern))

        if not keys:
            return 0

        return self.redis.delete(*keys)
