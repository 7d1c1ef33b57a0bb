from datetime import datetime, time, timedelta, timezone

from routewise.src.db import Booking
from routewise.src.enums import TenantStatus, TripStatus, UserRole


def tomorrowAt(hour: int, days: int = 1) -> datetime:
    day = datetime.now(timezone.utc).date() + timedelta(days=days)
    return datetime.combine(day, time(hour), tzinfo=timezone.utc)


def test_tenant_branding(client, make_tenant):
    tenant, _ = make_tenant(slug="kerala-travels")
    response = client.get("/public/tenants/Kerala-Travels")
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == tenant.id
    assert body["primary_color"] == "#3B82F6"
    assert body["timezone"] == "Asia/Kolkata"
    assert "payment_gateway" not in body


def test_inactive_tenant_has_no_storefront(client, make_tenant):
    make_tenant(slug="closed", status=TenantStatus.SUSPENDED)
    for slug in ("closed", "unknown"):
        response = client.get(f"/public/tenants/{slug}")
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Tenant not found"


def test_search_trips(client, operator, make_fleet, make_trip):
    _, busType, route = make_fleet(operator)
    later = make_trip(busType, route, departure=tomorrowAt(20))
    sooner = make_trip(busType, route, departure=tomorrowAt(8))
    make_trip(busType, route, departure=datetime.now(timezone.utc) - timedelta(hours=1))
    make_trip(busType, route, departure=tomorrowAt(9), status=TripStatus.CANCELLED)
    make_trip(busType, route, departure=tomorrowAt(10), available_seats=1)

    response = client.get(
        "/public/trips/search",
        params={"origin": " trivandrum ", "destination": "KOCHI", "passengers": 2},
    )
    assert response.status_code == 200
    results = response.json()
    assert [trip["id"] for trip in results] == [sooner.id, later.id]
    assert results[0]["origin"] == "Trivandrum"
    assert results[0]["destination"] == "Kochi"
    assert results[0]["distance"] == 205


def test_search_trips_on_a_day(client, operator, make_fleet, make_trip):
    _, busType, route = make_fleet(operator)
    tomorrow = make_trip(busType, route, departure=tomorrowAt(12))
    make_trip(busType, route, departure=tomorrowAt(12, days=2))

    response = client.get(
        "/public/trips/search",
        params={
            "origin": "Trivandrum",
            "destination": "Kochi",
            "date": tomorrowAt(0).date().isoformat(),
        },
    )
    assert [trip["id"] for trip in response.json()] == [tomorrow.id]


def test_search_other_direction(client, operator, make_fleet, make_trip):
    _, busType, route = make_fleet(operator)
    make_trip(busType, route)
    response = client.get(
        "/public/trips/search", params={"origin": "Kochi", "destination": "Trivandrum"}
    )
    assert response.json() == []


def test_search_needs_places(client):
    response = client.get("/public/trips/search", params={"origin": "Kochi"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    response = client.get(
        "/public/trips/search",
        params={"origin": "Kochi", "destination": "Trivandrum", "passengers": 0},
    )
    assert response.status_code == 400


def test_list_trips(client, operator, bearer, make_fleet, make_trip):
    _, busType, route = make_fleet(operator)
    trip = make_trip(busType, route)
    make_trip(busType, route, status=TripStatus.CANCELLED)

    response = client.get("/api/trips", headers=bearer(operator))
    assert response.status_code == 200
    assert response.json()["meta"]["pagination"]["total"] == 2

    response = client.get(
        "/api/trips", params={"status": TripStatus.SCHEDULED}, headers=bearer(operator)
    )
    assert [item["id"] for item in response.json()["data"]] == [trip.id]

    response = client.get(f"/api/trips/{trip.id}", headers=bearer(operator))
    assert response.json()["data"]["route_id"] == route.id
    assert client.get("/api/trips/9999", headers=bearer(operator)).status_code == 404
    assert client.get("/api/trips").status_code == 401


def test_bookings_belong_to_their_passenger(
    client, operator, bearer, make_user, make_fleet, make_trip, add_record
):
    _, busType, route = make_fleet(operator)
    trip = make_trip(busType, route)
    passenger = make_user(email_id="passenger@routewise.in", role=UserRole.USER)
    admin = make_user(email_id="admin@routewise.in", role=UserRole.ADMIN)
    own = add_record(
        Booking(
            booking_code="RW2001",
            user_id=passenger.id,
            trip_id=trip.id,
            base_fare=500,
            total_amount=550,
        )
    )
    foreign = add_record(
        Booking(
            booking_code="RW2002",
            user_id=operator.id,
            trip_id=trip.id,
            base_fare=500,
            total_amount=550,
        )
    )

    response = client.get("/api/bookings", headers=bearer(passenger))
    assert [item["id"] for item in response.json()["data"]] == [own.id]

    response = client.get(f"/api/bookings/{foreign.id}", headers=bearer(passenger))
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "The Booking belongs to another user"
    assert client.get("/api/bookings/9999", headers=bearer(passenger)).status_code == 404

    response = client.get("/api/bookings", headers=bearer(admin))
    assert response.json()["meta"]["pagination"]["total"] == 2
    response = client.get(f"/api/bookings/{foreign.id}", headers=bearer(admin))
    assert response.json()["data"]["booking_code"] == "RW2002"
