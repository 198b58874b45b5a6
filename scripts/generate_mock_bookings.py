import pandas as pd
import numpy as np
import uuid
from datetime import date, timedelta


def next_monday(today: date) -> date:
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


def generate_mock_bookings(
    num_requests=200,
    num_schools=8,
    num_drivers=25,
    term_weeks=4,
    output_prefix="mock",
):
    """
    Generates drivers and booking requests for a school term around Colombo.
    Each driver runs one suburb -> school route, and most children live near a
    driver's route start so the route compatibility check has real work to do.
    """
    # Center around Colombo, Sri Lanka
    CENTER_LAT = 6.9271
    CENTER_LON = 79.8612

    # 1. Fixed schools, the drop-off points every route ends at
    schools = []
    for school_index in range(num_schools):
        schools.append({
            "id": f"s_{str(uuid.uuid4())[:8]}",
            "name": f"School {school_index+1}",
            "lat": CENTER_LAT + np.random.uniform(-0.04, 0.04),
            "lon": CENTER_LON + np.random.uniform(-0.03, 0.03),
        })

    # 2. Drivers: start in a suburb up to ~15km out (roughly 0.12 degrees)
    drivers = []
    for driver_index in range(num_drivers):
        school = np.random.choice(schools)
        drivers.append({
            "driver_id": f"d_{str(driver_index+1).zfill(3)}",
            "total_seats": int(np.random.choice([8, 10, 12, 14], p=[0.3, 0.3, 0.25, 0.15])),
            "route_start_lat": np.round(school["lat"] + np.random.uniform(-0.12, 0.12), 6),
            "route_start_lon": np.round(school["lon"] + np.random.uniform(-0.08, 0.08), 6),
            "route_end_lat": np.round(school["lat"], 6),
            "route_end_lon": np.round(school["lon"], 6),
            "school_name": school["name"],
        })

    term_start = next_monday(date.today())
    term_end = term_start + timedelta(weeks=term_weeks, days=-3)  # Friday of the last week

    # 3. Booking requests
    data = []
    for request_index in range(num_requests):
        driver = np.random.choice(drivers)

        # Most homes sit within ~3km of the route start, a few are far off the route
        spread = 0.03 if np.random.random() < 0.9 else 0.3
        pickup_lat = driver["route_start_lat"] + np.random.uniform(-spread, spread)
        pickup_lon = driver["route_start_lon"] + np.random.uniform(-spread, spread)

        is_recurring = bool(np.random.choice([True, False], p=[0.85, 0.15]))
        ride_date = term_start + timedelta(days=int(np.random.randint(0, 5)))
        pickup_minutes = int(np.random.randint(0, 9)) * 5  # 06:20 .. 07:00

        data.append({
            "request_id": f"r_{str(request_index+1).zfill(5)}",
            "guardian_id": f"g_{np.random.randint(1000, 9999)}",
            "child_id": f"c_{str(request_index+1).zfill(5)}",
            "driver_id": driver["driver_id"],
            "pickup_lat": np.round(pickup_lat, 6),
            "pickup_lon": np.round(pickup_lon, 6),
            "dropoff_lat": driver["route_end_lat"],
            "dropoff_lon": driver["route_end_lon"],
            "school_name": driver["school_name"],
            "ride_date": ride_date.isoformat(),
            "is_recurring": is_recurring,
            "end_date": term_end.isoformat() if is_recurring else "",
            "daily_time": f"06:{20 + pickup_minutes:02d}" if pickup_minutes < 40 else "07:00",
        })

    # 4. Save to CSV
    drivers_file = f"{output_prefix}_drivers.csv"
    requests_file = f"{output_prefix}_booking_requests.csv"
    pd.DataFrame(drivers).to_csv(drivers_file, index=False)
    df = pd.DataFrame(data)
    df.to_csv(requests_file, index=False)
    print(f"✅ Generated {num_drivers} drivers -> '{drivers_file}'")
    print(f"✅ Generated {num_requests} booking requests ({term_start} .. {term_end}) -> '{requests_file}'")

    # Print a quick preview of demand per driver
    print("\nTop 5 Drivers (Requests):")
    counts = df['driver_id'].value_counts().head(5)
    for driver_id, count in counts.items():
        print(f"  {driver_id}: {count} requests")


if __name__ == "__main__":
    generate_mock_bookings(num_requests=200, num_drivers=25)
