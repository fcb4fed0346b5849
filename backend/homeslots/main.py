import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from redis.exceptions import RedisError

from .config import settings
from .database import init_db
from .errors import register_error_handlers
from .redis_client import get_redis
from .routers import availability, bookings, holidays, providers, slots, unavailability

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("homeslots backend started")
    yield


app = FastAPI(title="Provider Scheduling API", lifespan=lifespan)

register_error_handlers(app)

app.include_router(providers.router)
app.include_router(availability.router)
app.include_router(holidays.router)
app.include_router(unavailability.router)
app.include_router(slots.router)
app.include_router(bookings.router)


@app.get("/health")
def health():
    redis = get_redis()
    if redis is None:
        return {"redis": None}
    try:
        return {"redis": redis.ping()}
    except RedisError:
        logger.exception("Redis ping failed")
        return {"redis": False}
