from datetime import date, datetime

import pytest

from bookings.models import ActorRole, BookingStatus
from bookings.schedule import InvalidDateRange, NoSchoolDaysInRange
from bookings.service import BookingService, InvalidBookingRequest
from dispatch.events import EventType
from dispatch.state_machines.booking_state import (
    InvalidStatusTransition,
    accept_booking,
    reject_booking,
)
from storage.memory import InMemoryStore, RecordNotFound, StorageConflict

from .conftest import FRIDAY, MONDAY, SATURDAY, SUNDAY

TODAY = date(2026, 10, 18)


@pytest.fixture
def service(store, dispatcher):
    return BookingService(store, dispatcher)


@pytest.fixture
def pending(service, make_request):
    return service.request_booking(make_request(), total_seats=8, booked_seats=3, today=TODAY).booking


def test_request_recurring_week(service, store, make_request):
    draft = service.request_booking(make_request(), total_seats=8, booked_seats=3, today=TODAY)

    booking = draft.booking
    assert booking.status == BookingStatus.PENDING
    assert booking.recurring_day_count == 5
    assert draft.quote.day_count == 5
    assert draft.quote.availability_percent == 62
    assert booking.total_price == draft.quote.total_price
    assert booking.distance == draft.quote.distance_km
    assert booking.price_per_km == 25
    assert store.get_booking(booking.id) == booking


def test_request_single_day(service, make_request):
    draft = service.request_booking(
        make_request(is_recurring=False, end_date=None), total_seats=4, booked_seats=0, today=TODAY
    )

    assert draft.booking.recurring_day_count is None
    assert draft.quote.day_count == 1
    assert draft.quote.availability_bonus == 0


def test_weekend_only_request_is_rejected_and_not_stored(service, store, make_request):
    with pytest.raises(NoSchoolDaysInRange):
        service.request_booking(
            make_request(ride_date=SATURDAY, end_date=SUNDAY), total_seats=8, booked_seats=3, today=TODAY
        )

    assert store.bookings_for_child("child_1") == []


def test_reversed_range_is_rejected(service, make_request):
    with pytest.raises(InvalidDateRange):
        service.request_booking(
            make_request(ride_date=FRIDAY, end_date=MONDAY), total_seats=8, booked_seats=3, today=TODAY
        )


@pytest.mark.parametrize(
    "overrides",
    [
        dict(is_recurring=True, end_date=None),
        dict(is_recurring=False, end_date=FRIDAY),
        dict(ride_date=date(2026, 10, 16), end_date=FRIDAY),
    ],
)
def test_malformed_requests(service, make_request, overrides):
    with pytest.raises(InvalidBookingRequest):
        service.request_booking(make_request(**overrides), total_seats=8, booked_seats=3, today=TODAY)


def test_booked_seats_default_to_confirmed_bookings(service, make_request):
    for child in ("child_a", "child_b"):
        booking = service.request_booking(
            make_request(child_id=child), total_seats=4, booked_seats=0, today=TODAY
        ).booking
        service.accept(booking.id, "driver_1")

    draft = service.request_booking(make_request(child_id="child_c"), total_seats=4, today=TODAY)

    assert draft.quote.availability_percent == 50


def test_accept_notifies_guardian(service, pending, push_service):
    confirmed = service.accept(pending.id, "driver_1")

    assert confirmed.status == BookingStatus.CONFIRMED
    assert confirmed.revision == pending.revision + 1
    sent = push_service.sent_to("guardian_1")
    assert [event.event_type for event in sent] == [EventType.BOOKING_CONFIRMED]


def test_second_accept_is_rejected(service, pending):
    service.accept(pending.id, "driver_1")

    with pytest.raises(InvalidStatusTransition):
        service.accept(pending.id, "driver_1")
    with pytest.raises(InvalidStatusTransition):
        service.reject(pending.id, "driver_1")


def test_concurrent_decisions_on_same_snapshot(service, store, pending, push_service):
    """
    Two requests read the same pending snapshot. Only the first write wins.
    """
    snapshot = store.get_booking(pending.id)

    service.commit(accept_booking(snapshot, "driver_1"))

    with pytest.raises(StorageConflict):
        service.commit(reject_booking(snapshot, "driver_1"))

    assert store.get_booking(pending.id).status == BookingStatus.CONFIRMED
    # the losing transition must not notify anyone
    assert [sent.event.event_type for sent in push_service.outbox] == [EventType.BOOKING_CONFIRMED]


def test_guardian_cancel_notifies_driver(service, pending, push_service):
    cancelled = service.cancel(pending.id, "guardian_1", ActorRole.GUARDIAN, reason="Moving schools")

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancellation_reason == "Moving schools"
    assert [event.event_type for event in push_service.sent_to("driver_1")] == [EventType.BOOKING_CANCELLED]
    assert push_service.sent_to("guardian_1") == []


def test_complete_before_confirmed_fails(service, pending):
    with pytest.raises(InvalidStatusTransition):
        service.complete(pending.id, today=FRIDAY)


def test_unknown_booking(service):
    with pytest.raises(RecordNotFound):
        service.accept("missing", "driver_1")


def test_child_deletion_cancels_active_bookings(service, make_request):
    first = service.request_booking(make_request(), total_seats=8, booked_seats=0, today=TODAY).booking
    second = service.request_booking(
        make_request(driver_id="driver_2"), total_seats=8, booked_seats=0, today=TODAY
    ).booking
    service.accept(second.id, "driver_2")

    cancelled = service.cancel_child_bookings("child_1", "guardian_1", reason="Child profile removed")

    assert {booking.id for booking in cancelled} == {first.id, second.id}
    assert all(booking.status == BookingStatus.CANCELLED for booking in cancelled)


def test_extend_recurring_booking(service, pending):
    # Rs.total over 5 days; extend through Friday 30 Oct (+5 school days)
    extended = service.extend(pending.id, date(2026, 10, 30))

    assert extended.end_date == date(2026, 10, 30)
    assert extended.recurring_day_count == 10
    assert extended.total_price == pending.total_price * 2


def test_extend_requires_later_end_date(service, pending):
    with pytest.raises(InvalidDateRange):
        service.extend(pending.id, FRIDAY)


def test_extend_single_day_booking_fails(service, make_request):
    booking = service.request_booking(
        make_request(is_recurring=False, end_date=None), total_seats=8, booked_seats=0, today=TODAY
    ).booking

    with pytest.raises(InvalidBookingRequest):
        service.extend(booking.id, FRIDAY)


def test_extend_cancelled_booking_fails(service, pending):
    service.reject(pending.id, "driver_1")

    with pytest.raises(InvalidStatusTransition):
        service.extend(pending.id, date(2026, 10, 30))


def test_status_summary(service, make_booking):
    assert service.status_summary(make_booking(), today=MONDAY)[0] == "Pending Confirmation"

    confirmed = make_booking(status=BookingStatus.CONFIRMED, end_date=date(2026, 11, 20))
    assert service.status_summary(confirmed, today=MONDAY) == ("Active", "32 days remaining")
    assert service.status_summary(confirmed, today=date(2026, 11, 18)) == ("Ending Soon", "Only 2 days remaining")

    assert service.days_remaining(confirmed, today=date(2026, 12, 1)) == 0


def test_driver_serves(service, home, school):
    assert service.driver_serves(home, school, home, school)


def test_overlapping_request_for_same_child_and_driver_is_refused(service, store, pending, make_request):
    with pytest.raises(InvalidBookingRequest):
        service.request_booking(
            make_request(ride_date=date(2026, 10, 21), end_date=date(2026, 10, 28)),
            total_seats=8, booked_seats=0, today=TODAY,
        )

    assert [booking.id for booking in store.bookings_for_child("child_1")] == [pending.id]


def test_child_can_book_again_after_cancel_or_for_a_later_week(service, pending, make_request):
    later = service.request_booking(
        make_request(ride_date=date(2026, 10, 26), end_date=date(2026, 10, 30)),
        total_seats=8, booked_seats=0, today=TODAY,
    ).booking
    service.reject(pending.id, "driver_1")

    again = service.request_booking(make_request(), total_seats=8, booked_seats=0, today=TODAY).booking

    assert later.status == BookingStatus.PENDING
    assert again.status == BookingStatus.PENDING

    # extending the first week into the later one would double-book the child
    with pytest.raises(InvalidBookingRequest):
        service.extend(again.id, date(2026, 10, 27))


class ConflictOnceStore(InMemoryStore):
    """Raises StorageConflict the first time one booking is saved."""
    def __init__(self, conflicting_id=None):
        super().__init__()
        self.conflicting_id = conflicting_id

    def save_booking(self, booking, *, expected_status):
        if booking.id == self.conflicting_id:
            self.conflicting_id = None
            raise StorageConflict(f"Booking {booking.id} changed since it was read")
        return super().save_booking(booking, expected_status=expected_status)


def test_child_deletion_carries_on_past_a_conflict(dispatcher, make_request, caplog):
    store = ConflictOnceStore()
    service = BookingService(store, dispatcher)
    bookings = [
        service.request_booking(make_request(driver_id=driver), total_seats=8, booked_seats=0, today=TODAY).booking
        for driver in ("driver_1", "driver_2", "driver_3")
    ]
    store.conflicting_id = bookings[1].id

    cancelled = service.cancel_child_bookings("child_1", "guardian_1", reason="Child profile removed")

    assert {booking.id for booking in cancelled} == {bookings[0].id, bookings[2].id}
    assert store.get_booking(bookings[1].id).status == BookingStatus.PENDING
    assert bookings[1].id in caplog.text
