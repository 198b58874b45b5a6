import csv
import logging
import os
import random
from datetime import date, datetime, time, timedelta
from typing import Dict, List

from bookings.models import BookingRequest, BookingStatus, Location
from bookings.schedule import NoSchoolDaysInRange, expand_schedule
from bookings.service import BookingService, InvalidBookingRequest
from dispatch.dispatcher import NotificationDispatcher
from dispatch.push import InMemoryPushService
from dispatch.state_machines.booking_state import InvalidStatusTransition
from pricing.engine import format_price
from rides.models import RideChildStatus
from rides.service import NoBookingsForDay, RideService
from storage.memory import InMemoryStore

logger = logging.getLogger(__name__)


def load_drivers(filepath="mock_drivers.csv") -> Dict[str, dict]:
    drivers = {}

    # Resolve the correct path depending on where the user runs the script from.
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    with open(os.path.join(base_dir, filepath), 'r') as file:
        reader = csv.DictReader(file)
        for row in reader:
            drivers[row['driver_id']] = {
                "total_seats": int(row['total_seats']),
                "route_start": Location.new(float(row['route_start_lat']), float(row['route_start_lon'])),
                "route_end": Location.new(float(row['route_end_lat']), float(row['route_end_lon']), row['school_name']),
            }
    return drivers


def load_requests(filepath="mock_booking_requests.csv", limit=120) -> List[BookingRequest]:
    requests = []
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    with open(os.path.join(base_dir, filepath), 'r') as file:
        reader = csv.DictReader(file)
        for row in reader:
            if len(requests) >= limit: break

            is_recurring = row['is_recurring'] == "True"
            hour, minute = row['daily_time'].split(":")
            requests.append(
                BookingRequest(
                    guardian_id=row['guardian_id'],
                    child_id=row['child_id'],
                    driver_id=row['driver_id'],
                    pickup_location=Location.new(float(row['pickup_lat']), float(row['pickup_lon'])),
                    dropoff_location=Location.new(float(row['dropoff_lat']), float(row['dropoff_lon']), row['school_name']),
                    ride_date=date.fromisoformat(row['ride_date']),
                    is_recurring=is_recurring,
                    end_date=date.fromisoformat(row['end_date']) if is_recurring else None,
                    daily_time=time(int(hour), int(minute)),
                )
            )
    return requests


def run_simulation(acceptance_probability=0.8, absence_probability=0.05, cancel_day_probability=0.03):
    print("=== STARTING SCHOOL TERM SIMULATION ===")

    # 1. Load Data
    drivers = load_drivers()
    requests = load_requests(limit=120)
    print(f"Loaded {len(requests)} Booking Requests and {len(drivers)} Drivers.\n")

    # 2. Configure System
    store = InMemoryStore()
    push_service = InMemoryPushService()
    dispatcher = NotificationDispatcher(push_service=push_service)
    bookings = BookingService(store, dispatcher)
    rides = RideService(store, dispatcher)

    # 3. Step 1: Guardians request, drivers decide
    print("Requesting and deciding bookings...")
    skipped_off_route = 0
    for request in requests:
        driver = drivers[request.driver_id]
        if not bookings.driver_serves(
            request.pickup_location, request.dropoff_location, driver["route_start"], driver["route_end"]
        ):
            skipped_off_route += 1
            continue

        try:
            draft = bookings.request_booking(request, total_seats=driver["total_seats"])
        except (InvalidBookingRequest, NoSchoolDaysInRange) as e:
            logger.warning(f"Request for {request.child_id} refused: {e}")
            continue

        full = bookings.booked_seats(request.driver_id, request.ride_date) >= driver["total_seats"]

        if not full and random.random() < acceptance_probability:
            bookings.accept(draft.booking.id, request.driver_id)
        else:
            bookings.reject(draft.booking.id, request.driver_id, reason="Van is full" if full else None)

    confirmed = [b for d in drivers for b in store.bookings_for_driver(d, BookingStatus.CONFIRMED)]
    print(f"Confirmed {len(confirmed)} bookings ({skipped_off_route} requests were off-route).\n")

    # 4. Step 2: Drive the first school week
    first_day = min((b.ride_date for b in confirmed), default=date.today())
    week = expand_schedule(first_day, first_day + timedelta(days=6))

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    output_path = os.path.join(base_dir, "term_results.csv")

    with open(output_path, "w", newline='') as file:
        writer = csv.writer(file)
        writer.writerow(["ride_id", "status", "children", "picked_up", "absent", "dropped_off"])

        for day in week:
            morning = datetime.combine(day, time(6, 0))
            for driver_id in sorted(drivers):
                try:
                    planned = rides.plan_day_ride(driver_id, day)
                except NoBookingsForDay:
                    continue

                if random.random() < cancel_day_probability:
                    ride = rides.cancel_for_day(planned.id, "Vehicle breakdown", today=day, now=morning)
                else:
                    ride = rides.start_day_ride(driver_id, day, now=morning)
                    on_board = []
                    for child in ride.children:
                        if random.random() < absence_probability:
                            ride = rides.mark_child(ride.id, child.child_id, RideChildStatus.ABSENT)
                        else:
                            ride = rides.mark_child(ride.id, child.child_id, RideChildStatus.PICKED_UP)
                            on_board.append(child.child_id)
                    for child_id in on_board:
                        ride = rides.mark_child(ride.id, child_id, RideChildStatus.DROPPED_OFF)

                writer.writerow([
                    ride.id, ride.status.value, ride.total_children,
                    ride.picked_up_count, ride.absent_count, ride.dropped_off_count,
                ])

    # 5. Close out bookings that ended this week (a called-off day keeps them open)
    completed = 0
    for booking in confirmed:
        if booking.last_ride_date > week[-1]:
            continue
        try:
            bookings.complete(booking.id, today=week[-1])
        except InvalidStatusTransition as e:
            logger.warning(f"Booking {booking.id} left open: {e}")
            continue
        completed += 1

    revenue = sum(b.total_price for b in confirmed)
    print("\n=== SIMULATION COMPLETE ===")
    print(f"Day rides run: {len(store.all_rides())} over {len(week)} school days")
    print(f"Bookings completed this week: {completed} / {len(confirmed)}")
    print(f"Booked revenue: {format_price(revenue)}")
    print(f"Notifications sent: {len(push_service.outbox)}")
    print("Results written to 'term_results.csv'.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_simulation()
