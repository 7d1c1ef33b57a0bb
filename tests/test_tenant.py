from routewise.api.tenant import maskSecrets
from routewise.src import openobserve
from routewise.src.enums import TenantStatus, UserRole

TENANT = {
    "name": "Malabar Travels",
    "slug": "malabar-travels",
    "primary_color": "#0F766E",
    "roles": [
        {"name": "Owner", "manage_settings": True, "manage_users": True},
        {"name": "Agent", "manage_bookings": True},
    ],
}


def test_list_tenants_needs_admin(client, operator, bearer):
    response = client.get("/api/tenants", headers=bearer(operator))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "AUTHORIZATION_FAILED"


def test_create_tenant(client, admin, bearer):
    response = client.post("/api/tenants", json=TENANT, headers=bearer(admin))
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Tenant created"
    tenant = body["data"]
    assert tenant["slug"] == "malabar-travels"
    assert tenant["primary_color"] == "#0F766E"
    assert tenant["secondary_color"] == "#1E40AF"
    assert tenant["currency"] == "INR"
    assert tenant["status"] == TenantStatus.ACTIVE
    assert [role["name"] for role in tenant["roles"]] == ["Owner", "Agent"]
    assert tenant["roles"][0]["manage_settings"] is True
    assert tenant["roles"][1]["manage_settings"] is False


def test_create_tenant_with_invalid_data(client, admin, bearer):
    headers = bearer(admin)
    for field, value in [("slug", "Malabar Travels"), ("primary_color", "teal")]:
        response = client.post("/api/tenants", json={**TENANT, field: value}, headers=headers)
        assert response.status_code == 400, field

    response = client.post("/api/tenants", json={"name": "Malabar"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Missing required fields: slug"


def test_create_tenant_with_taken_slug(client, admin, bearer, make_tenant):
    make_tenant(slug="malabar-travels")
    response = client.post("/api/tenants", json=TENANT, headers=bearer(admin))
    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Tenant slug already exists"


def test_create_tenant_needs_admin(client, operator, bearer):
    response = client.post("/api/tenants", json=TENANT, headers=bearer(operator))
    assert response.status_code == 403


def test_list_tenants(client, admin, bearer, make_tenant):
    for slug in ("alpha", "beta", "gamma"):
        make_tenant(slug=slug)
    make_tenant(slug="closed", status=TenantStatus.INACTIVE)
    headers = bearer(admin)

    response = client.get("/api/tenants", params={"limit": 2}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert [tenant["slug"] for tenant in body["data"]] == ["gamma", "beta"]
    assert body["meta"]["pagination"] == {
        "page": 1,
        "limit": 2,
        "total": 3,
        "total_pages": 2,
        "has_next": True,
        "has_prev": False,
    }

    response = client.get(
        "/api/tenants", params={"status": TenantStatus.INACTIVE}, headers=headers
    )
    assert [tenant["slug"] for tenant in response.json()["data"]] == ["closed"]


def test_fetch_tenant(client, admin, bearer, make_user, make_tenant):
    tenant, role = make_tenant()
    other, _ = make_tenant(slug="other")
    member = make_user(tenant_id=tenant.id, tenant_role_id=role.id)

    response = client.get(f"/api/tenants/{tenant.id}", headers=bearer(member))
    assert response.status_code == 200
    assert [item["name"] for item in response.json()["data"]["roles"]] == ["Staff"]

    response = client.get(f"/api/tenants/{other.id}", headers=bearer(member))
    assert response.status_code == 403
    assert client.get(f"/api/tenants/{other.id}", headers=bearer(admin)).status_code == 200
    assert client.get("/api/tenants/9999", headers=bearer(admin)).status_code == 404


def test_update_tenant_settings(client, bearer, make_user, make_tenant):
    tenant, role = make_tenant(manage_settings=True)
    member = make_user(tenant_id=tenant.id, tenant_role_id=role.id)

    response = client.put(
        f"/api/tenants/{tenant.id}",
        json={"name": "Kerala Travels Ltd", "advance_booking_days": 45},
        headers=bearer(member),
    )
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Kerala Travels Ltd"
    assert response.json()["data"]["advance_booking_days"] == 45


def test_update_tenant_needs_permission(client, bearer, make_user, make_tenant):
    tenant, role = make_tenant(manage_bookings=True)
    member = make_user(tenant_id=tenant.id, tenant_role_id=role.id)
    outsider = make_user(email_id="outsider@routewise.in")

    for user in (member, outsider):
        response = client.put(
            f"/api/tenants/{tenant.id}", json={"name": "Renamed"}, headers=bearer(user)
        )
        assert response.status_code == 403


def test_status_is_managed_by_admins(client, bearer, make_user, make_tenant):
    tenant, role = make_tenant(manage_settings=True)
    member = make_user(tenant_id=tenant.id, tenant_role_id=role.id)

    for data in ({"status": TenantStatus.SUSPENDED}, {"subscription_active": False}):
        response = client.put(
            f"/api/tenants/{tenant.id}", json=data, headers=bearer(member)
        )
        assert response.status_code == 403


def test_tenant_status_transitions(client, admin, bearer, make_tenant):
    headers = bearer(admin)
    tenant, _ = make_tenant()
    url = f"/api/tenants/{tenant.id}"

    response = client.put(url, json={"status": TenantStatus.INACTIVE}, headers=headers)
    assert response.json()["data"]["status"] == TenantStatus.INACTIVE

    response = client.put(url, json={"status": TenantStatus.SUSPENDED}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid status is provided"

    response = client.put(url, json={"status": TenantStatus.ACTIVE}, headers=headers)
    assert response.json()["data"]["status"] == TenantStatus.ACTIVE


def test_update_replaces_roles(client, admin, bearer, make_tenant):
    tenant, _ = make_tenant()
    response = client.put(
        f"/api/tenants/{tenant.id}",
        json={"roles": [{"name": "Manager", "view_analytics": True}]},
        headers=bearer(admin),
    )
    assert response.status_code == 200
    roles = response.json()["data"]["roles"]
    assert [role["name"] for role in roles] == ["Manager"]
    assert roles[0]["view_analytics"] is True


def test_delete_tenant(client, admin, operator, bearer, make_tenant):
    tenant, _ = make_tenant()
    url = f"/api/tenants/{tenant.id}"
    assert client.delete(url, headers=bearer(operator)).status_code == 403

    response = client.delete(url, headers=bearer(admin))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == TenantStatus.INACTIVE
    # The record is kept
    assert client.get(url, headers=bearer(admin)).status_code == 200
    assert client.get("/api/tenants", headers=bearer(admin)).json()["data"] == []


PAYMENT_GATEWAY = {
    "stripe": {
        "publishable_key": "pk_live_123",
        "secret_key": "sk_live_SECRET",
        "webhook_secret": "whsec_SECRET",
    },
    "razorpay": {"key_id": "rzp_live_123", "key_secret": "SECRET"},
}
NOTIFICATION_SETTINGS = {
    "email": {"enabled": True, "smtp": {"host": "smtp.routewise.in", "password": "SECRET"}},
    "sms": {"enabled": False, "provider": "msg91", "credentials": {"token": "SECRET"}},
}


def test_mask_secrets():
    assert maskSecrets(PAYMENT_GATEWAY) == {
        "stripe": {
            "publishable_key": "pk_live_123",
            "secret_key": "********",
            "webhook_secret": "********",
        },
        "razorpay": {"key_id": "rzp_live_123", "key_secret": "********"},
    }
    masked = maskSecrets(NOTIFICATION_SETTINGS)
    assert masked["email"]["smtp"] == {"host": "smtp.routewise.in", "password": "********"}
    assert masked["sms"]["credentials"] == "********"
    # Unset credentials stay as they are
    assert maskSecrets({"stripe": {"secret_key": ""}}) == {"stripe": {"secret_key": ""}}


def test_credentials_are_hidden_from_members(client, admin, bearer, make_user):
    response = client.post(
        "/api/tenants",
        json={
            **TENANT,
            "payment_gateway": PAYMENT_GATEWAY,
            "notification_settings": NOTIFICATION_SETTINGS,
        },
        headers=bearer(admin),
    )
    tenantId = response.json()["data"]["id"]
    passenger = make_user(
        email_id="passenger@routewise.in", role=UserRole.USER, tenant_id=tenantId
    )

    response = client.get(f"/api/tenants/{tenantId}", headers=bearer(passenger))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["payment_gateway"] is None
    assert data["notification_settings"] is None
    assert "SECRET" not in response.text

    response = client.get(f"/api/tenants/{tenantId}", headers=bearer(admin))
    assert response.json()["data"]["payment_gateway"] == PAYMENT_GATEWAY


def test_settings_managers_see_credentials(client, bearer, make_user, make_tenant):
    tenant, role = make_tenant(manage_settings=True)
    member = make_user(tenant_id=tenant.id, tenant_role_id=role.id)
    headers = bearer(member)
    client.put(
        f"/api/tenants/{tenant.id}", json={"payment_gateway": PAYMENT_GATEWAY}, headers=headers
    )

    response = client.get(f"/api/tenants/{tenant.id}", headers=headers)
    assert response.json()["data"]["payment_gateway"] == PAYMENT_GATEWAY


def test_tenant_events_mask_credentials(client, admin, bearer, monkeypatch):
    events = []
    monkeypatch.setattr(openobserve, "logEvent", events.append)
    response = client.post(
        "/api/tenants",
        json={
            **TENANT,
            "payment_gateway": PAYMENT_GATEWAY,
            "notification_settings": NOTIFICATION_SETTINGS,
        },
        headers=bearer(admin),
    )
    client.put(
        f"/api/tenants/{response.json()['data']['id']}",
        json={"payment_gateway": {"stripe": {"secret_key": "sk_live_OTHER"}}},
        headers=bearer(admin),
    )

    assert len(events) == 2
    assert events[0]["payment_gateway"]["stripe"]["secret_key"] == "********"
    assert events[0]["notification_settings"]["email"]["smtp"]["password"] == "********"
    assert events[1]["payment_gateway"] == {"stripe": {"secret_key": "********"}}
    assert all("SECRET" not in str(event) and "OTHER" not in str(event) for event in events)


def test_members_keep_their_role_when_roles_change(client, bearer, make_user, make_tenant):
    tenant, role = make_tenant(manage_settings=True)
    member = make_user(tenant_id=tenant.id, tenant_role_id=role.id)
    headers = bearer(member)

    response = client.put(
        f"/api/tenants/{tenant.id}",
        json={
            "roles": [
                {"name": "Staff", "manage_settings": True, "view_analytics": True},
                {"name": "Agent", "manage_bookings": True},
            ]
        },
        headers=headers,
    )
    assert response.status_code == 200
    roles = response.json()["data"]["roles"]
    assert [(item["id"], item["name"]) for item in roles][0] == (role.id, "Staff")
    assert roles[0]["view_analytics"] is True
    assert roles[1]["name"] == "Agent"

    response = client.get(f"/api/users/{member.id}", headers=headers)
    assert response.json()["data"]["tenant_role_id"] == role.id
    # The member still manages the settings
    response = client.put(
        f"/api/tenants/{tenant.id}", json={"name": "Renamed"}, headers=headers
    )
    assert response.status_code == 200


def test_dropped_roles_are_removed_from_members(client, admin, bearer, make_user, make_tenant):
    tenant, role = make_tenant()
    member = make_user(tenant_id=tenant.id, tenant_role_id=role.id)
    client.put(
        f"/api/tenants/{tenant.id}",
        json={"roles": [{"name": "Agent"}]},
        headers=bearer(admin),
    )

    response = client.get(f"/api/users/{member.id}", headers=bearer(admin))
    assert response.json()["data"]["tenant_role_id"] is None


def test_role_names_must_be_unique(client, admin, bearer, make_tenant):
    tenant, _ = make_tenant()
    roles = [{"name": "Agent"}, {"name": "Agent", "manage_bookings": True}]
    response = client.put(
        f"/api/tenants/{tenant.id}", json={"roles": roles}, headers=bearer(admin)
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    response = client.post(
        "/api/tenants", json={**TENANT, "roles": roles}, headers=bearer(admin)
    )
    assert response.status_code == 400
