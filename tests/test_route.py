ROUTE = {
    "name": "Trivandrum -> Kochi",
    "origin": "Trivandrum",
    "destination": "Kochi",
    "distance": 205.5,
    "duration": "5h 30m",
}


def test_create_route(operator_client, organization_data):
    org = operator_client.post("/admin/organizations", json=organization_data).json()
    response = operator_client.post("/admin/routes", json=ROUTE)
    assert response.status_code == 201
    assert response.json()["organization_id"] == org["id"]
    assert response.json()["distance"] == 205.5


def test_create_route_without_organization(operator_client):
    response = operator_client.post("/admin/routes", json=ROUTE)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == (
        "No organization found. Please complete onboarding first."
    )


def test_create_route_without_required_fields(operator_client, organization_data):
    operator_client.post("/admin/organizations", json=organization_data)
    response = operator_client.post(
        "/admin/routes", json={"name": "Trivandrum -> Kochi", "origin": "Trivandrum"}
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == (
        "Missing required fields: destination, distance"
    )


def test_route_distance_must_be_positive(operator_client, organization_data):
    operator_client.post("/admin/organizations", json=organization_data)
    response = operator_client.post("/admin/routes", json={**ROUTE, "distance": 0})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_route_of_another_user(operator_client, other_client, organization_data):
    other_client.post("/admin/organizations", json=organization_data)
    route = other_client.post("/admin/routes", json=ROUTE).json()
    url = f"/admin/routes/{route['id']}"

    response = operator_client.get(url)
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "The Route belongs to another user"
    assert operator_client.put(url, json=ROUTE).status_code == 403
    assert operator_client.delete(url).status_code == 403


def test_update_and_delete_route(operator_client, organization_data):
    operator_client.post("/admin/organizations", json=organization_data)
    route = operator_client.post("/admin/routes", json=ROUTE).json()
    url = f"/admin/routes/{route['id']}"

    response = operator_client.put(url, json={**ROUTE, "destination": "Ernakulam"})
    assert response.status_code == 200
    assert response.json()["destination"] == "Ernakulam"

    response = operator_client.get("/admin/routes", params={"destination": "erna"})
    assert [item["id"] for item in response.json()] == [route["id"]]

    assert operator_client.delete(url).status_code == 204
    assert operator_client.get(url).status_code == 404
