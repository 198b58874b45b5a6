from datetime import date, datetime, time

import pytest

from bookings.models import Booking, BookingRequest, BookingStatus, Location
from dispatch.dispatcher import NotificationDispatcher
from dispatch.push import InMemoryPushService
from storage.memory import InMemoryStore

# A school week: Monday 19 Oct 2026 .. Friday 23 Oct 2026
MONDAY = date(2026, 10, 19)
FRIDAY = date(2026, 10, 23)
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)
MORNING = time(6, 45)


@pytest.fixture
def home():
    # Colombo Fort
    return Location.new(6.9271, 79.8612, "Fort, Colombo 01")


@pytest.fixture
def school():
    # Wellawatte
    return Location.new(6.8649, 79.8640, "Wellawatte, Colombo 06")


@pytest.fixture
def make_request(home, school):
    def _make(**overrides):
        fields = dict(
            guardian_id="guardian_1",
            child_id="child_1",
            driver_id="driver_1",
            pickup_location=home,
            dropoff_location=school,
            ride_date=MONDAY,
            is_recurring=True,
            end_date=FRIDAY,
            daily_time=MORNING,
        )
        fields.update(overrides)
        return BookingRequest(**fields)
    return _make


@pytest.fixture
def make_booking(home, school):
    def _make(**overrides):
        fields = dict(
            id="booking_1",
            guardian_id="guardian_1",
            child_id="child_1",
            driver_id="driver_1",
            pickup_location=home,
            dropoff_location=school,
            ride_date=MONDAY,
            is_recurring=True,
            end_date=FRIDAY,
            daily_time=MORNING,
            recurring_day_count=5,
            status=BookingStatus.PENDING,
            total_price=950,
            created_at=datetime(2026, 10, 18, 9, 0),
            updated_at=datetime(2026, 10, 18, 9, 0),
        )
        fields.update(overrides)
        return Booking(**fields)
    return _make


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def push_service():
    return InMemoryPushService()


@pytest.fixture
def dispatcher(push_service):
    return NotificationDispatcher(push_service=push_service)
