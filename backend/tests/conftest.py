"""Shared test fixtures and helpers."""

from datetime import datetime, time, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from homeslots.database import get_db, init_db, make_engine
from homeslots.main import app
from homeslots.models import ProviderAvailability, ProviderBookings, Providers
from homeslots.services.slots import SlotsConfig

# Monday 2030-01-07; "now" sits a week earlier so everything is in the future
MONDAY = datetime(2030, 1, 7, tzinfo=timezone.utc)
NOW = datetime(2030, 1, 1, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}", busy_timeout=10)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def config():
    return SlotsConfig()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_provider(
    db,
    provider_id: str = "prov-1",
    tz: str = "UTC",
    windows: Optional[list[tuple[int, str, str, int]]] = None,
) -> Providers:
    """
    Create a provider with weekly windows.

    windows: (day_of_week, "HH:MM", "HH:MM", buffer_minutes), 0 = Sunday.
    """
    provider = Providers(id=provider_id, display_name=f"Provider {provider_id}", timezone=tz)
    db.add(provider)
    for dow, start, end, buffer in windows or []:
        db.add(ProviderAvailability(
            provider_id=provider_id,
            day_of_week=dow,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            buffer_minutes=buffer,
        ))
    db.commit()
    return provider


def make_booking(
    db,
    provider_id: str,
    start: datetime,
    end: datetime,
    status: str = "confirmed",
    homeowner_id: str = "home-1",
) -> ProviderBookings:
    booking = ProviderBookings(
        provider_id=provider_id,
        homeowner_id=homeowner_id,
        start_ts=start.astimezone(timezone.utc).replace(tzinfo=None),
        end_ts=end.astimezone(timezone.utc).replace(tzinfo=None),
        status=status,
        service_type="plumbing",
    )
    db.add(booking)
    db.commit()
    return booking


def headers(user_id: str, role: str) -> dict[str, str]:
    return {"X-User-Id": user_id, "X-User-Role": role}
