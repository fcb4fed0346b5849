"""
backend/homeslots/services/events.py

Event emitter: pushes booking events to a Redis queue for the
notification side (SMS / email workers live outside this service).

Queue:
- events:bookings: booking_created, booking_status_changed

Delivery is best effort. A failed push is logged and never undoes the
booking change that produced it.
"""

import json
import logging
import time

from redis.exceptions import RedisError

from ..redis_client import get_redis

logger = logging.getLogger(__name__)

BOOKINGS_QUEUE = "events:bookings"


def emit_event(event_type: str, payload: dict) -> bool:
    """
    Emit a booking event.

    Returns:
        True if the event was queued.
    """
    redis = get_redis()
    if redis is None:
        logger.debug(f"Redis disabled, event dropped: {event_type}")
        return False

    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis.rpush(BOOKINGS_QUEUE, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {BOOKINGS_QUEUE}")
        return True
    except RedisError as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
        return False
