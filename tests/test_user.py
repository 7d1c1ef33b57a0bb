from routewise.src.enums import AccountStatus, UserRole


def test_admin_lists_every_user(client, admin, operator, bearer, make_tenant, make_user):
    tenant, _ = make_tenant()
    member = make_user(email_id="member@routewise.in", tenant_id=tenant.id)
    headers = bearer(admin)

    response = client.get("/api/users", headers=headers)
    assert response.status_code == 200
    assert response.json()["meta"]["pagination"]["total"] == 3

    response = client.get("/api/users", params={"tenant_id": tenant.id}, headers=headers)
    assert [user["id"] for user in response.json()["data"]] == [member.id]

    response = client.get("/api/users", params={"email_id": "OPERATOR"}, headers=headers)
    assert [user["id"] for user in response.json()["data"]] == [operator.id]


def test_user_managers_list_their_tenant(client, bearer, make_tenant, make_user):
    tenant, role = make_tenant(manage_users=True)
    other, _ = make_tenant(slug="other")
    manager = make_user(
        email_id="manager@routewise.in", tenant_id=tenant.id, tenant_role_id=role.id
    )
    make_user(email_id="member@routewise.in", tenant_id=tenant.id)
    make_user(email_id="stranger@routewise.in", tenant_id=other.id)

    response = client.get("/api/users", headers=bearer(manager))
    assert response.status_code == 200
    assert sorted(user["email_id"] for user in response.json()["data"]) == [
        "manager@routewise.in",
        "member@routewise.in",
    ]


def test_list_users_needs_permission(client, operator, bearer, make_tenant, make_user):
    response = client.get("/api/users", headers=bearer(operator))
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Tenant access required"

    tenant, role = make_tenant(manage_bookings=True)
    agent = make_user(
        email_id="agent@routewise.in", tenant_id=tenant.id, tenant_role_id=role.id
    )
    response = client.get("/api/users", headers=bearer(agent))
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Insufficient permissions"


def test_fetch_user(client, admin, operator, bearer, make_user):
    other = make_user(email_id="other@routewise.in")

    response = client.get(f"/api/users/{operator.id}", headers=bearer(operator))
    assert response.status_code == 200
    assert response.json()["data"]["email_id"] == operator.email_id

    assert client.get(f"/api/users/{other.id}", headers=bearer(operator)).status_code == 403
    assert client.get(f"/api/users/{other.id}", headers=bearer(admin)).status_code == 200
    response = client.get("/api/users/9999", headers=bearer(admin))
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "User not found"


def test_update_own_profile(client, operator, bearer):
    response = client.put(
        f"/api/users/{operator.id}",
        json={
            "full_name": "Anil Kumar",
            "date_of_birth": "1990-04-12",
            "preferences": {"language": "ml"},
        },
        headers=bearer(operator),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "User updated"
    assert body["data"]["full_name"] == "Anil Kumar"
    assert body["data"]["date_of_birth"] == "1990-04-12"
    assert body["data"]["preferences"] == {"language": "ml"}


def test_users_cannot_grant_themselves_access(client, operator, bearer, make_user):
    headers = bearer(operator)
    response = client.put(
        f"/api/users/{operator.id}", json={"role": UserRole.ADMIN}, headers=headers
    )
    assert response.status_code == 403

    other = make_user(email_id="other@routewise.in")
    response = client.put(
        f"/api/users/{other.id}", json={"full_name": "Hacked"}, headers=headers
    )
    assert response.status_code == 403


def test_admin_assigns_tenant_role(client, admin, operator, bearer, make_tenant):
    tenant, role = make_tenant()
    other, foreignRole = make_tenant(slug="other")
    headers = bearer(admin)
    url = f"/api/users/{operator.id}"

    response = client.put(
        url, json={"tenant_id": tenant.id, "tenant_role_id": role.id}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["tenant_role_id"] == role.id

    response = client.put(url, json={"tenant_role_id": foreignRole.id}, headers=headers)
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "INVALID_ASSOCIATION"

    # Moving to another tenant drops the role of the previous one
    response = client.put(url, json={"tenant_id": other.id}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["tenant_id"] == other.id
    assert response.json()["data"]["tenant_role_id"] is None


def test_delete_user(client, admin, operator, bearer):
    assert client.delete(f"/api/users/{admin.id}", headers=bearer(operator)).status_code == 403

    response = client.delete(f"/api/users/{operator.id}", headers=bearer(admin))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == AccountStatus.INACTIVE

    response = client.get("/api/auth/profile", headers=bearer(operator))
    assert response.status_code == 401
