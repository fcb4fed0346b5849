# backend/homeslots/services/slots/invalidator.py
"""
Cache invalidation for provider segments.

Triggers (bump_schedule_version, inside the writing transaction):
✓ Provider weekly availability replaced
✓ Provider timezone changed
✓ Provider holiday preferences replaced
✓ Shared holiday deleted → every provider that blocked it

Does NOT trigger:
✗ Booking created / status changed (Level 2 reads bookings live)
✗ Unavailability blocks (Level 2)

invalidate_provider_cache drops the keys themselves; only the manual
POST /slots/invalidate needs it, since bumped versions are never read.
"""

import logging
from typing import Iterable

from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy import update
from sqlalchemy.orm import Session

from ...errors import TransientError
from ...models import Providers
from .redis_store import SegmentsRedisStore

logger = logging.getLogger(__name__)


def bump_schedule_version(db: Session, provider_ids: Iterable[str]) -> int:
    """
    Move providers to a new segments cache version. Caller commits.

    Returns:
        Number of providers bumped
    """
    ids = list(provider_ids)
    if not ids:
        return 0

    result = db.execute(
        update(Providers)
        .where(Providers.id.in_(ids))
        .values(schedule_version=Providers.schedule_version + 1)
        .execution_options(synchronize_session=False)
    )
    logger.debug(f"Schedule version bumped for providers={ids}")
    return result.rowcount


def invalidate_provider_cache(redis: Redis | None, provider_id: str | None) -> int:
    """
    Delete cached segments for a provider (None = all providers).

    Returns:
        Number of deleted cache keys
    """
    if redis is None:
        return 0

    try:
        deleted = SegmentsRedisStore(redis).delete_provider_segments(provider_id)
    except RedisError as e:
        logger.error(f"Segments cache invalidation failed for provider={provider_id}: {e}")
        raise TransientError("Slots cache is temporarily unavailable, please retry")

    logger.info(f"Invalidated {deleted} cached segment days for provider={provider_id or '*'}")
    return deleted
