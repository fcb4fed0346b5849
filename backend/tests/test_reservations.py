import random
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from homeslots.errors import ConflictError, NotFoundError, TransientError, ValidationError
from homeslots.models import ProviderBookings, ProviderUnavailability
from homeslots.services import reservations
from homeslots.services.reservations import BookingRequest, ReservationCommitter

from conftest import NOW, make_booking, make_provider, utc

WINDOW = [(1, "09:00", "12:00", 0)]


def request(start, end, homeowner_id="home-1", provider_id="prov-1", **kwargs):
    return BookingRequest(
        provider_id=provider_id,
        homeowner_id=homeowner_id,
        start_ts=start,
        end_ts=end,
        service_type=kwargs.pop("service_type", "plumbing"),
        **kwargs,
    )


def committer(db, config):
    return ReservationCommitter(db, config, clock=lambda: NOW)


class TestCommit:
    def test_creates_pending_booking(self, db, config):
        make_provider(db, windows=WINDOW)
        booking = committer(db, config).commit(
            request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), description="Leaking sink", image_count=2)
        )

        assert booking.id is not None
        assert booking.status == "pending"
        assert booking.description == "Leaking sink"
        assert booking.image_count == 2
        assert booking.start_ts == utc(2030, 1, 7, 9).replace(tzinfo=None)

    def test_same_slot_twice_conflicts(self, db, config):
        make_provider(db, windows=WINDOW)
        committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))

        with pytest.raises(ConflictError):
            committer(db, config).commit(
                request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), homeowner_id="home-2")
            )
        assert db.query(ProviderBookings).count() == 1

    def test_overlapping_other_duration_conflicts(self, db, config):
        make_provider(db, windows=WINDOW)
        committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))

        with pytest.raises(ConflictError):
            committer(db, config).commit(request(utc(2030, 1, 7, 9, 30), utc(2030, 1, 7, 10)))

    def test_adjacent_slot_succeeds(self, db, config):
        make_provider(db, windows=WINDOW)
        committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))
        booking = committer(db, config).commit(request(utc(2030, 1, 7, 10), utc(2030, 1, 7, 11)))
        assert booking.status == "pending"

    def test_buffer_enforced(self, db, config):
        make_provider(db, windows=[(1, "09:00", "12:00", 15)])
        make_booking(db, "prov-1", utc(2030, 1, 7, 10), utc(2030, 1, 7, 10, 30))

        with pytest.raises(ConflictError):
            committer(db, config).commit(request(utc(2030, 1, 7, 10, 30), utc(2030, 1, 7, 11)))

    def test_cancelled_booking_frees_slot(self, db, config):
        make_provider(db, windows=WINDOW)
        make_booking(db, "prov-1", utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), status="cancelled")

        booking = committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))
        assert booking.status == "pending"

    def test_completed_booking_still_occupies(self, db, config):
        make_provider(db, windows=WINDOW)
        make_booking(db, "prov-1", utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), status="completed")

        with pytest.raises(ConflictError):
            committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))

    def test_unavailability_block_conflicts(self, db, config):
        make_provider(db, windows=WINDOW)
        db.add(ProviderUnavailability(
            provider_id="prov-1",
            start_ts=utc(2030, 1, 7, 9).replace(tzinfo=None),
            end_ts=utc(2030, 1, 7, 12).replace(tzinfo=None),
        ))
        db.commit()

        with pytest.raises(ConflictError):
            committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))

    def test_outside_window_conflicts(self, db, config):
        make_provider(db, windows=WINDOW)
        with pytest.raises(ConflictError):
            committer(db, config).commit(request(utc(2030, 1, 7, 13), utc(2030, 1, 7, 14)))

    def test_off_grid_conflicts(self, db, config):
        make_provider(db, windows=WINDOW)
        with pytest.raises(ConflictError):
            committer(db, config).commit(request(utc(2030, 1, 7, 9, 10), utc(2030, 1, 7, 10, 10)))

    def test_past_slot_conflicts(self, db, config):
        make_provider(db, windows=WINDOW)
        late = ReservationCommitter(db, config, clock=lambda: utc(2030, 1, 7, 11))
        with pytest.raises(ConflictError):
            late.commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))

    def test_session_usable_after_conflict(self, db, config):
        make_provider(db, windows=WINDOW)
        committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))
        with pytest.raises(ConflictError):
            committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))

        booking = committer(db, config).commit(request(utc(2030, 1, 7, 11), utc(2030, 1, 7, 12)))
        assert booking.id is not None


class TestCommitErrors:
    def test_unknown_provider(self, db, config):
        with pytest.raises(NotFoundError):
            committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), provider_id="ghost"))

    def test_inactive_provider(self, db, config):
        provider = make_provider(db, windows=WINDOW)
        provider.is_active = False
        db.commit()

        with pytest.raises(NotFoundError):
            committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))

    def test_end_before_start(self, db, config):
        make_provider(db, windows=WINDOW)
        with pytest.raises(ValidationError):
            committer(db, config).commit(request(utc(2030, 1, 7, 10), utc(2030, 1, 7, 9)))

    def test_too_many_images(self, db, config):
        make_provider(db, windows=WINDOW)
        with pytest.raises(ValidationError):
            committer(db, config).commit(
                request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), image_count=6)
            )

    def test_blank_service_type(self, db, config):
        make_provider(db, windows=WINDOW)
        with pytest.raises(ValidationError):
            committer(db, config).commit(
                request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), service_type="  ")
            )

    def test_storage_failure_is_transient(self, db, config, monkeypatch):
        make_provider(db, windows=WINDOW)

        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(reservations, "load_busy", broken)

        with pytest.raises(TransientError) as exc:
            committer(db, config).commit(request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10)))
        assert exc.value.retryable is True
        assert db.query(ProviderBookings).count() == 0


class TestConcurrency:
    def test_race_for_same_slot_has_one_winner(self, db, session_factory, config):
        make_provider(db, windows=WINDOW)
        barrier = threading.Barrier(2)
        results = []

        def attempt(homeowner_id):
            session = session_factory()
            try:
                barrier.wait()
                committer(session, config).commit(
                    request(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), homeowner_id=homeowner_id)
                )
                results.append("ok")
            except ConflictError:
                results.append("conflict")
            finally:
                session.close()

        threads = [threading.Thread(target=attempt, args=(f"home-{i}",)) for i in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == ["conflict", "ok"]
        assert db.query(ProviderBookings).count() == 1

    def test_concurrent_commits_never_overlap(self, db, session_factory, config):
        make_provider(db, windows=[(1, "08:00", "18:00", 0)])
        rng = random.Random(7)
        day_start = utc(2030, 1, 7, 8)

        attempts = []
        for i in range(40):
            minutes = rng.choice([30, 60, 120])
            index = rng.randrange(600 // minutes)
            start = day_start + timedelta(minutes=index * minutes)
            attempts.append((f"home-{i}", start, start + timedelta(minutes=minutes)))

        def attempt(args):
            homeowner_id, start, end = args
            session = session_factory()
            try:
                committer(session, config).commit(request(start, end, homeowner_id=homeowner_id))
                return True
            except ConflictError:
                return False
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(attempt, attempts))

        assert any(outcomes)

        bookings = (
            db.query(ProviderBookings)
            .filter(ProviderBookings.status != "cancelled")
            .order_by(ProviderBookings.start_ts)
            .all()
        )
        assert len(bookings) == sum(outcomes)
        for previous, current in zip(bookings, bookings[1:]):
            assert previous.end_ts <= current.start_ts
