from routewise.src import fleet
from routewise.src.enums import ACType, Amenity, SeatingType

BUS_TYPE = {
    "name": "Volvo Multi-Axle",
    "ac_type": ACType.AC,
    "seating_type": SeatingType.SEATER,
    "capacity": 40,
    "lower_seater_price": 550,
    "upper_seater_price": 450,
    "amenities": [Amenity.WIFI, Amenity.CHARGING_POINT, Amenity.WIFI],
}


def create_organization(client, data, **extra):
    response = client.post("/admin/organizations", json={**data, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_bus_type(operator_client, organization_data):
    org = create_organization(operator_client, organization_data)
    response = operator_client.post("/admin/bus-types", json=BUS_TYPE)
    assert response.status_code == 201
    body = response.json()
    assert body["organization_id"] == org["id"]
    assert body["amenities"] == [Amenity.CHARGING_POINT, Amenity.WIFI]
    assert body["display_name"] == "AC Seater"
    assert body["pricing_text"] == "Seater: ₹550 / ₹450"
    assert body["lower_sleeper_price"] == 0


def test_create_bus_type_without_organization(operator_client):
    response = operator_client.post("/admin/bus-types", json=BUS_TYPE)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == (
        "No organization found. Please create an organization first."
    )


def test_create_bus_type_without_required_fields(operator_client, organization_data):
    create_organization(operator_client, organization_data)
    data = {key: value for key, value in BUS_TYPE.items() if key not in ("name", "capacity")}
    response = operator_client.post("/admin/bus-types", json=data)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Missing required fields: name, capacity"


def test_create_bus_type_with_invalid_values(operator_client, organization_data):
    create_organization(operator_client, organization_data)
    for field, value in [("capacity", 0), ("lower_seater_price", -1), ("ac_type", 9)]:
        response = operator_client.post("/admin/bus-types", json={**BUS_TYPE, field: value})
        assert response.status_code == 400, field


def test_bus_type_goes_to_primary_organization(operator_client, organization_data):
    create_organization(operator_client, organization_data)
    primary = create_organization(
        operator_client, organization_data, name="Malabar Travels", is_primary=True
    )
    response = operator_client.post("/admin/bus-types", json=BUS_TYPE)
    assert response.json()["organization_id"] == primary["id"]


def test_bus_type_in_organization_of_another_user(
    operator_client, other_client, organization_data
):
    create_organization(operator_client, organization_data)
    foreign = create_organization(other_client, organization_data)
    response = operator_client.post(
        "/admin/bus-types", json={**BUS_TYPE, "organization_id": foreign["id"]}
    )
    assert response.status_code == 403


def test_bus_type_of_another_user(operator_client, other_client, organization_data):
    create_organization(other_client, organization_data)
    busType = other_client.post("/admin/bus-types", json=BUS_TYPE).json()
    url = f"/admin/bus-types/{busType['id']}"

    assert operator_client.get(url).status_code == 403
    assert operator_client.put(url, json=BUS_TYPE).status_code == 403
    assert operator_client.delete(url).status_code == 403
    assert operator_client.get("/admin/bus-types/9999").status_code == 404


def test_update_and_delete_bus_type(operator_client, organization_data):
    create_organization(operator_client, organization_data)
    busType = operator_client.post("/admin/bus-types", json=BUS_TYPE).json()
    url = f"/admin/bus-types/{busType['id']}"

    response = operator_client.put(
        url,
        json={
            **BUS_TYPE,
            "seating_type": SeatingType.SEATER_SLEEPER,
            "lower_sleeper_price": 900,
            "upper_sleeper_price": 700,
        },
    )
    assert response.status_code == 200
    assert response.json()["display_name"] == "AC Seater + Sleeper"
    assert response.json()["pricing_text"] == "Seater: ₹550 / ₹450 | Sleeper: ₹900 / ₹700"

    response = operator_client.put(url, json={"capacity": 30})
    assert response.status_code == 400

    assert operator_client.delete(url).status_code == 204
    assert operator_client.get(url).status_code == 404


def test_list_bus_types(operator_client, organization_data):
    first = create_organization(operator_client, organization_data)
    second = create_organization(operator_client, organization_data, name="Malabar")
    operator_client.post("/admin/bus-types", json=BUS_TYPE)
    operator_client.post(
        "/admin/bus-types", json={**BUS_TYPE, "organization_id": second["id"]}
    )

    assert len(operator_client.get("/admin/bus-types").json()) == 2
    response = operator_client.get(
        "/admin/bus-types", params={"organization_id": first["id"]}
    )
    assert [item["organization_id"] for item in response.json()] == [first["id"]]


def test_bus_type_presets(operator_client):
    response = operator_client.get("/admin/bus-types/presets")
    assert response.status_code == 200
    presets = {preset["name"]: preset for preset in response.json()}
    assert list(presets) == [
        "AC Seater",
        "AC Sleeper",
        "Non-AC Seater",
        "Non-AC Sleeper",
        "AC Seater + Sleeper",
    ]
    assert presets["Non-AC Sleeper"]["capacity"] == 35
    assert presets["AC Sleeper"]["pricing_text"] == "Sleeper: ₹900 / ₹700"
    assert presets["AC Seater + Sleeper"]["amenities"] == [1, 2, 3, 5, 6, 7, 9]


def test_display_name():
    assert fleet.displayName(ACType.NON_AC, SeatingType.SEATER_SLEEPER) == (
        "Non-AC Seater + Sleeper"
    )
    assert fleet.displayName(ACType.AC, SeatingType.SLEEPER) == "AC Sleeper"


def test_pricing_text_omits_missing_upper_fare():
    assert fleet.pricingText(SeatingType.SLEEPER, 0, 0, 900, 0) == "Sleeper: ₹900"
    assert fleet.pricingText(SeatingType.SEATER, 350.5, None) == "Seater: ₹350.5"


def test_bus_type_errors():
    valid = {
        "name": "AC Seater",
        "ac_type": ACType.AC,
        "seating_type": SeatingType.SEATER,
        "capacity": 40,
        "lower_seater_price": 550,
    }
    assert fleet.busTypeErrors(valid) == []

    errors = fleet.busTypeErrors(
        {**valid, "seating_type": SeatingType.SEATER_SLEEPER, "lower_sleeper_price": 900}
    )
    assert errors == [
        "upper_seater_price must be greater than zero",
        "upper_sleeper_price must be greater than zero",
    ]

    errors = fleet.busTypeErrors({**valid, "name": " ", "capacity": 0, "amenities": [42]})
    assert errors == [
        "Bus type name is required",
        "Capacity must be greater than zero",
        "Amenities contain an unknown value",
    ]


def test_route_errors():
    assert fleet.routeErrors(
        {"name": "TVM -> COK", "origin": "TVM", "destination": "COK", "distance": 205}
    ) == []
    assert fleet.routeErrors({"name": "TVM -> COK", "origin": "TVM", "distance": 0}) == [
        "Route destination is required",
        "Distance must be greater than zero",
    ]
