import re

from routewise.src import jwt
from routewise.src.enums import AccountStatus, UserRole

REGISTRATION = {
    "email_id": "Passenger@Example.com",
    "password": "s3cret-pass",
    "full_name": "Meera Nair",
    "phone_number": "+91 9847 000111",
}


def test_register(client):
    response = client.post("/api/auth/register", json=REGISTRATION)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Registration successful"
    assert re.match(r"^req_\d+_[a-z0-9]{9}$", body["meta"]["request_id"])
    user = body["data"]["user"]
    assert user["email_id"] == "passenger@example.com"
    assert user["role"] == UserRole.USER
    assert user["status"] == AccountStatus.ACTIVE
    assert "password" not in user
    tokens = body["data"]["tokens"]
    assert tokens["token_type"] == "bearer"
    assert tokens["expires_in"] == 15 * 60

    response = client.get(
        "/api/auth/profile",
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )
    assert response.json()["data"]["id"] == user["id"]


def test_register_duplicate_email(client):
    client.post("/api/auth/register", json=REGISTRATION)
    response = client.post(
        "/api/auth/register",
        json={**REGISTRATION, "email_id": "passenger@example.com"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == {
        "code": "RESOURCE_ALREADY_EXISTS",
        "message": "Email already registered",
    }


def test_register_with_invalid_data(client):
    for field, value in [("password", "short"), ("email_id", "not-an-email")]:
        response = client.post("/api/auth/register", json={**REGISTRATION, field: value})
        assert response.status_code == 400, field
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_register_in_unknown_tenant(client):
    response = client.post("/api/auth/register", json={**REGISTRATION, "tenant_id": 404})
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Tenant not found"


def test_register_in_tenant(client, make_tenant):
    tenant, _ = make_tenant()
    response = client.post(
        "/api/auth/register", json={**REGISTRATION, "tenant_id": tenant.id}
    )
    assert response.status_code == 201
    assert response.json()["data"]["user"]["tenant_id"] == tenant.id


def test_login(client, operator):
    response = client.post(
        "/api/auth/login",
        json={"email_id": "OPERATOR@routewise.in", "password": "password"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["data"]["user"]["id"] == operator.id
    assert body["data"]["user"]["last_login_at"] is not None
    assert body["data"]["tokens"]["access_token"]


def test_login_with_wrong_password(client, operator):
    response = client.post(
        "/api/auth/login",
        json={"email_id": operator.email_id, "password": "wrong-password"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid email or password"


def test_login_of_inactive_account(client, make_user):
    user = make_user(status=AccountStatus.SUSPENDED)
    response = client.post(
        "/api/auth/login", json={"email_id": user.email_id, "password": "password"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == {
        "code": "ACCOUNT_INACTIVE",
        "message": "Account is inactive",
    }


def test_refresh_token(client, operator):
    tokens = jwt.makeTokens(operator)
    response = client.post(
        "/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert response.status_code == 200
    assert jwt.accessPayload(response.json()["data"]["access_token"])["sub"] == str(
        operator.id
    )


def test_refresh_with_access_token(client, operator):
    tokens = jwt.makeTokens(operator)
    response = client.post(
        "/api/auth/refresh", json={"refresh_token": tokens["access_token"]}
    )
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired refresh token"


def test_profile(client, operator, bearer):
    response = client.get("/api/auth/profile", headers=bearer(operator))
    assert response.status_code == 200
    assert response.json()["data"]["email_id"] == operator.email_id


def test_profile_without_valid_token(client, make_user, bearer):
    response = client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Authentication required"

    response = client.get(
        "/api/auth/profile", headers={"Authorization": "Bearer garbage"}
    )
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired token"

    inactive = make_user(email_id="gone@routewise.in", status=AccountStatus.INACTIVE)
    response = client.get("/api/auth/profile", headers=bearer(inactive))
    assert response.status_code == 401


def test_refresh_token_cannot_authenticate(client, operator):
    tokens = jwt.makeTokens(operator)
    response = client.get(
        "/api/auth/profile",
        headers={"Authorization": f"Bearer {tokens['refresh_token']}"},
    )
    assert response.status_code == 401


def test_forgot_password_does_not_reveal_accounts(client, operator):
    known = client.post("/api/auth/forgot-password", json={"email_id": operator.email_id})
    unknown = client.post(
        "/api/auth/forgot-password", json={"email_id": "nobody@routewise.in"}
    )
    assert known.status_code == unknown.status_code == 200
    assert known.json()["message"] == unknown.json()["message"]


def test_reset_password(client, operator):
    token = jwt.makeResetToken(operator)
    response = client.post(
        "/api/auth/reset-password", json={"token": token, "password": "new-password"}
    )
    assert response.status_code == 200

    response = client.post(
        "/api/auth/login", json={"email_id": operator.email_id, "password": "password"}
    )
    assert response.status_code == 401
    response = client.post(
        "/api/auth/login",
        json={"email_id": operator.email_id, "password": "new-password"},
    )
    assert response.status_code == 200


def test_reset_password_with_invalid_token(client, operator):
    tokens = jwt.makeTokens(operator)
    for token in ("garbage", tokens["access_token"]):
        response = client.post(
            "/api/auth/reset-password", json={"token": token, "password": "new-password"}
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TOKEN"


def test_logout(client, operator, bearer):
    response = client.post("/api/auth/logout", headers=bearer(operator))
    assert response.status_code == 200
    assert response.json()["message"] == "Logout successful"
    assert response.json()["data"] is None
