from routewise.src.constants import ADMIN_SESSION_COOKIE, MAX_ADMIN_SESSIONS
from routewise.src.db import AdminSession, sessionMaker
from routewise.src.enums import AccountStatus


def test_login_sets_session_cookie(operator, client):
    response = client.post(
        "/admin/auth/login",
        json={"email_id": operator.email_id, "password": "password"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["email_id"] == operator.email_id
    assert body["last_login_at"] is not None
    assert "password" not in body
    assert client.cookies.get(ADMIN_SESSION_COOKIE)
    assert "httponly" in response.headers["set-cookie"].lower()


def test_login_with_wrong_password(operator, client):
    response = client.post(
        "/admin/auth/login",
        json={"email_id": operator.email_id, "password": "wrong-password"},
    )
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": {
            "code": "AUTHENTICATION_FAILED",
            "message": "Invalid email or password",
        },
    }
    assert response.headers["X-Error"] == "InvalidCredentials"


def test_login_with_unknown_email(client):
    response = client.post(
        "/admin/auth/login",
        json={"email_id": "nobody@routewise.in", "password": "password"},
    )
    assert response.status_code == 401


def test_login_of_inactive_account(make_user, client):
    user = make_user(status=AccountStatus.INACTIVE)
    response = client.post(
        "/admin/auth/login", json={"email_id": user.email_id, "password": "password"}
    )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "ACCOUNT_INACTIVE"


def test_session_user(operator_client, operator):
    response = operator_client.get("/admin/auth/me")
    assert response.status_code == 200
    assert response.json()["id"] == operator.id
    assert response.json()["onboarding_complete"] is False


def test_missing_session_cookie(client):
    response = client.get("/admin/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == {
        "code": "AUTHENTICATION_FAILED",
        "message": "Authentication required",
    }


def test_unknown_session_cookie(client):
    client.cookies.set(ADMIN_SESSION_COOKIE, "not-a-session")
    response = client.get("/admin/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired token"


def test_logout(operator_client):
    response = operator_client.post("/admin/auth/logout")
    assert response.status_code == 204

    response = operator_client.get("/admin/auth/me")
    assert response.status_code == 401


def test_session_limit(operator, sign_in):
    for _ in range(MAX_ADMIN_SESSIONS + 2):
        sign_in(operator.email_id)

    session = sessionMaker()
    try:
        count = (
            session.query(AdminSession)
            .filter(AdminSession.user_id == operator.id)
            .count()
        )
    finally:
        session.close()
    assert count == MAX_ADMIN_SESSIONS
