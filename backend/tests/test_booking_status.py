import pytest

from homeslots.errors import InvalidTransitionError, NotFoundError, ValidationError
from homeslots.models import ProviderBookings
from homeslots.services.booking_status import (
    Actor,
    ActorRole,
    BookingStatus,
    can_transition,
    get_booking_for_actor,
    transition_booking,
    update_booking_notes,
)
from homeslots.services.reservations import BookingRequest, ReservationCommitter

from conftest import NOW, make_booking, make_provider, utc

PROVIDER = Actor(ActorRole.PROVIDER, "prov-1")
HOMEOWNER = Actor(ActorRole.HOMEOWNER, "home-1")
SYSTEM = Actor(ActorRole.SYSTEM)


@pytest.fixture
def booking(db):
    make_provider(db, windows=[(1, "09:00", "12:00", 0)])
    return make_booking(db, "prov-1", utc(2030, 1, 7, 9), utc(2030, 1, 7, 10), status="pending")


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current,target,role,allowed",
        [
            (BookingStatus.PENDING, BookingStatus.CONFIRMED, ActorRole.PROVIDER, True),
            (BookingStatus.PENDING, BookingStatus.CONFIRMED, ActorRole.HOMEOWNER, False),
            (BookingStatus.PENDING, BookingStatus.CANCELLED, ActorRole.HOMEOWNER, True),
            (BookingStatus.PENDING, BookingStatus.COMPLETED, ActorRole.SYSTEM, False),
            (BookingStatus.CONFIRMED, BookingStatus.COMPLETED, ActorRole.SYSTEM, True),
            (BookingStatus.CONFIRMED, BookingStatus.COMPLETED, ActorRole.PROVIDER, False),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED, ActorRole.PROVIDER, True),
            (BookingStatus.COMPLETED, BookingStatus.CANCELLED, ActorRole.SYSTEM, False),
            (BookingStatus.CANCELLED, BookingStatus.CONFIRMED, ActorRole.PROVIDER, False),
        ],
    )
    def test_can_transition(self, current, target, role, allowed):
        assert can_transition(current, target, role) is allowed


class TestTransitionBooking:
    def test_provider_confirms(self, db, booking):
        updated = transition_booking(db, booking.id, PROVIDER, BookingStatus.CONFIRMED)
        assert updated.status == "confirmed"

    def test_full_lifecycle(self, db, booking):
        transition_booking(db, booking.id, PROVIDER, BookingStatus.CONFIRMED)
        updated = transition_booking(db, booking.id, SYSTEM, BookingStatus.COMPLETED)
        assert updated.status == "completed"

    def test_homeowner_cancels_with_reason(self, db, booking):
        updated = transition_booking(
            db, booking.id, HOMEOWNER, BookingStatus.CANCELLED, reason="Fixed it myself"
        )
        assert updated.status == "cancelled"
        assert updated.cancel_reason == "Fixed it myself"
        assert updated.cancelled_by == "homeowner"

    def test_cancel_requires_reason(self, db, booking):
        with pytest.raises(ValidationError):
            transition_booking(db, booking.id, PROVIDER, BookingStatus.CANCELLED, reason=" ")
        db.refresh(booking)
        assert booking.status == "pending"

    def test_homeowner_cannot_confirm(self, db, booking):
        with pytest.raises(InvalidTransitionError):
            transition_booking(db, booking.id, HOMEOWNER, BookingStatus.CONFIRMED)

    def test_terminal_states_are_final(self, db, booking):
        transition_booking(db, booking.id, HOMEOWNER, BookingStatus.CANCELLED, reason="Moved")
        with pytest.raises(InvalidTransitionError):
            transition_booking(db, booking.id, PROVIDER, BookingStatus.CONFIRMED)

    def test_other_provider_sees_not_found(self, db, booking):
        stranger = Actor(ActorRole.PROVIDER, "prov-2")
        with pytest.raises(NotFoundError):
            transition_booking(db, booking.id, stranger, BookingStatus.CONFIRMED)

    def test_confirm_with_provider_notes(self, db, booking):
        updated = transition_booking(
            db, booking.id, PROVIDER, BookingStatus.CONFIRMED, notes="Bring the long ladder"
        )
        assert updated.provider_notes == "Bring the long ladder"
        assert updated.homeowner_notes is None


class TestNotes:
    def test_each_party_edits_own_notes(self, db, booking):
        update_booking_notes(db, booking.id, PROVIDER, "Parts ordered")
        updated = update_booking_notes(db, booking.id, HOMEOWNER, "Gate code 1234")
        assert updated.provider_notes == "Parts ordered"
        assert updated.homeowner_notes == "Gate code 1234"

    def test_notes_editable_after_cancel(self, db, booking):
        transition_booking(db, booking.id, HOMEOWNER, BookingStatus.CANCELLED, reason="Moved")
        updated = update_booking_notes(db, booking.id, HOMEOWNER, "Sorry for the trouble")
        assert updated.homeowner_notes == "Sorry for the trouble"

    def test_system_cannot_edit_notes(self, db, booking):
        with pytest.raises(ValidationError):
            update_booking_notes(db, booking.id, SYSTEM, "nope")


class TestVisibility:
    def test_parties_and_system_can_read(self, db, booking):
        for actor in (PROVIDER, HOMEOWNER, SYSTEM):
            assert get_booking_for_actor(db, booking.id, actor).id == booking.id

    def test_unknown_booking(self, db, booking):
        with pytest.raises(NotFoundError):
            get_booking_for_actor(db, 9999, SYSTEM)


class TestConcurrentTransitions:
    def test_stale_confirm_cannot_revive_cancelled_booking(self, db, session_factory, config, booking):
        provider_session = session_factory()
        homeowner_session = session_factory()
        try:
            # provider loads the booking while it is still pending
            stale = get_booking_for_actor(provider_session, booking.id, PROVIDER)
            assert stale.status == "pending"

            transition_booking(
                homeowner_session, booking.id, HOMEOWNER, BookingStatus.CANCELLED,
                reason="Changed plans",
            )
            ReservationCommitter(homeowner_session, config, clock=lambda: NOW).commit(
                BookingRequest(
                    provider_id="prov-1",
                    homeowner_id="home-2",
                    start_ts=utc(2030, 1, 7, 9),
                    end_ts=utc(2030, 1, 7, 10),
                    service_type="plumbing",
                )
            )

            with pytest.raises(InvalidTransitionError):
                transition_booking(provider_session, booking.id, PROVIDER, BookingStatus.CONFIRMED)
        finally:
            provider_session.close()
            homeowner_session.close()

        active = (
            db.query(ProviderBookings)
            .filter(ProviderBookings.status != "cancelled")
            .all()
        )
        assert [(b.homeowner_id, b.status) for b in active] == [("home-2", "pending")]

        db.refresh(booking)
        assert booking.status == "cancelled"
        assert booking.cancel_reason == "Changed plans"

    def test_loser_sees_current_status_on_retry(self, session_factory, booking):
        first = session_factory()
        second = session_factory()
        try:
            get_booking_for_actor(second, booking.id, SYSTEM)
            transition_booking(first, booking.id, PROVIDER, BookingStatus.CONFIRMED)

            with pytest.raises(InvalidTransitionError):
                transition_booking(second, booking.id, HOMEOWNER, BookingStatus.CANCELLED, reason="Moved")

            # the failed attempt rolled back and expired the stale copy
            updated = transition_booking(
                second, booking.id, HOMEOWNER, BookingStatus.CANCELLED, reason="Moved"
            )
            assert updated.status == "cancelled"
        finally:
            first.close()
            second.close()
