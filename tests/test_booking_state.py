from dataclasses import replace
from datetime import date, datetime

import pytest

from bookings.models import ActorRole, BookingStatus
from dispatch.events import EventType
from dispatch.state_machines.booking_state import (
    ActorNotPermitted,
    InvalidStatusTransition,
    accept_booking,
    cancel_booking,
    complete_booking,
    reject_booking,
)
from rides.models import ActiveRide, RideChild, RideStatus

from .conftest import FRIDAY, MONDAY

NOW = datetime(2026, 10, 18, 10, 30)


def _day_ride(booking, day, status):
    child = RideChild.from_booking(booking, day)
    return replace(ActiveRide.new(booking.driver_id, day, [child]), status=status)


def test_accept_pending_booking(make_booking):
    booking = make_booking()

    result = accept_booking(booking, "driver_1", now=NOW)

    assert result.previous_status == BookingStatus.PENDING
    assert result.booking.status == BookingStatus.CONFIRMED
    assert result.booking.updated_at == NOW
    # original snapshot untouched
    assert booking.status == BookingStatus.PENDING


def test_accept_emits_booking_confirmed_for_guardian(make_booking):
    result = accept_booking(make_booking(), "driver_1", now=NOW)

    assert len(result.events) == 1
    event = result.events[0]
    assert event.event_type == EventType.BOOKING_CONFIRMED
    assert event.recipient_ids == ("guardian_1",)
    assert event.payload.data["driverId"] == "driver_1"
    assert event.payload.data["guardianId"] == "guardian_1"


def test_accept_twice_fails(make_booking):
    confirmed = accept_booking(make_booking(), "driver_1", now=NOW).booking

    with pytest.raises(InvalidStatusTransition):
        accept_booking(confirmed, "driver_1", now=NOW)


def test_accept_by_other_driver_is_refused(make_booking):
    with pytest.raises(ActorNotPermitted):
        accept_booking(make_booking(), "driver_2", now=NOW)


def test_reject_pending_notifies_guardian(make_booking):
    result = reject_booking(make_booking(), "driver_1", reason="Van is full", now=NOW)

    assert result.booking.status == BookingStatus.CANCELLED
    assert result.booking.cancelled_by == ActorRole.DRIVER
    assert result.booking.cancellation_reason == "Van is full"
    assert result.events[0].event_type == EventType.BOOKING_CANCELLED
    assert result.events[0].recipient_ids == ("guardian_1",)
    assert result.events[0].payload.data["cancelledBy"] == "driver"


def test_guardian_cancel_of_confirmed_notifies_driver(make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED)

    result = cancel_booking(booking, "guardian_1", ActorRole.GUARDIAN, now=NOW)

    assert result.booking.status == BookingStatus.CANCELLED
    assert result.events[0].recipient_ids == ("driver_1",)
    assert result.events[0].sender_id == "guardian_1"


def test_cancel_by_stranger_is_refused(make_booking):
    with pytest.raises(ActorNotPermitted):
        cancel_booking(make_booking(), "guardian_9", ActorRole.GUARDIAN, now=NOW)


@pytest.mark.parametrize("terminal", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
def test_terminal_bookings_cannot_move(make_booking, terminal):
    booking = make_booking(status=terminal)

    with pytest.raises(InvalidStatusTransition):
        cancel_booking(booking, "driver_1", ActorRole.DRIVER, now=NOW)
    with pytest.raises(InvalidStatusTransition):
        accept_booking(booking, "driver_1", now=NOW)
    with pytest.raises(InvalidStatusTransition):
        complete_booking(booking, today=FRIDAY, now=NOW)


def test_complete_before_confirmed_fails(make_booking):
    with pytest.raises(InvalidStatusTransition):
        complete_booking(make_booking(), today=FRIDAY, now=NOW)


def test_single_day_booking_completes_on_ride_date(make_booking):
    booking = make_booking(
        status=BookingStatus.CONFIRMED, is_recurring=False, end_date=None, recurring_day_count=None
    )

    with pytest.raises(InvalidStatusTransition):
        complete_booking(booking, today=date(2026, 10, 18), now=NOW)

    result = complete_booking(booking, today=MONDAY, now=NOW)
    assert result.booking.status == BookingStatus.COMPLETED
    assert result.events == []


def test_recurring_booking_needs_every_day_ride_finished(make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED)
    week = [date(2026, 10, day) for day in range(19, 24)]

    rides = [_day_ride(booking, day, RideStatus.COMPLETED) for day in week[:4]]
    rides.append(_day_ride(booking, FRIDAY, RideStatus.IN_PROGRESS))

    with pytest.raises(InvalidStatusTransition):
        complete_booking(booking, today=FRIDAY, day_rides=rides, now=NOW)

    rides[-1] = _day_ride(booking, FRIDAY, RideStatus.COMPLETED)
    result = complete_booking(booking, today=FRIDAY, day_rides=rides, now=NOW)

    assert result.booking.status == BookingStatus.COMPLETED


def test_cancelled_day_rides_keep_recurring_booking_open(make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED)
    week = [date(2026, 10, day) for day in range(19, 24)]

    all_called_off = [_day_ride(booking, day, RideStatus.CANCELLED) for day in week]
    with pytest.raises(InvalidStatusTransition):
        complete_booking(booking, today=FRIDAY, day_rides=all_called_off, now=NOW)

    one_called_off = [_day_ride(booking, day, RideStatus.COMPLETED) for day in week[:4]]
    one_called_off.append(_day_ride(booking, FRIDAY, RideStatus.CANCELLED))
    with pytest.raises(InvalidStatusTransition):
        complete_booking(booking, today=FRIDAY, day_rides=one_called_off, now=NOW)


def test_recurring_booking_with_missing_day_cannot_complete(make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED)
    rides = [_day_ride(booking, MONDAY, RideStatus.COMPLETED)]

    with pytest.raises(InvalidStatusTransition):
        complete_booking(booking, today=FRIDAY, day_rides=rides, now=NOW)


def test_reject_only_from_pending(make_booking):
    confirmed = make_booking(status=BookingStatus.CONFIRMED)

    with pytest.raises(InvalidStatusTransition):
        reject_booking(confirmed, "driver_1", reason="Changed my mind", now=NOW)

    # a confirmed booking is called off through cancel instead
    result = cancel_booking(confirmed, "driver_1", ActorRole.DRIVER, reason="Changed my mind", now=NOW)
    assert result.booking.status == BookingStatus.CANCELLED
