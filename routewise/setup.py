import argparse
from http import HTTPStatus
from requests import Session as HTTPSession

from routewise.src import argon2
from routewise.src.enums import AccountStatus, SubscriptionPlan, TenantStatus, UserRole
from routewise.src.urls import (
    URL_ADMIN_LOGIN,
    URL_BUS_TYPE,
    URL_BUS_TYPE_PRESETS,
    URL_ORGANIZATION,
    URL_ROUTE,
)
from routewise.src.db import (
    Tenant,
    TenantRole,
    User,
    sessionMaker,
    engine,
    ORMbase,
)


# ----------------------------------- Project Setup -------------------------------------------#
def removeTables():
    session = sessionMaker()
    ORMbase.metadata.drop_all(engine)
    session.commit()
    print("* All tables deleted")
    session.close()


def createTables():
    session = sessionMaker()
    ORMbase.metadata.create_all(engine)
    session.commit()
    print("* All tables created")
    session.close()


def initDB():
    session = sessionMaker()
    tenant = Tenant(
        name="RouteWise",
        slug="routewise",
        status=TenantStatus.ACTIVE,
        subscription_plan=SubscriptionPlan.ENTERPRISE,
        cancellation_policy={
            "rules": [
                {"hours_before": 24, "refund_percent": 90},
                {"hours_before": 6, "refund_percent": 50},
                {"hours_before": 0, "refund_percent": 0},
            ]
        },
    )
    session.add(tenant)
    session.flush()

    ownerRole = TenantRole(
        tenant_id=tenant.id,
        name="Owner",
        manage_bookings=True,
        manage_routes=True,
        manage_buses=True,
        manage_depots=True,
        view_analytics=True,
        manage_users=True,
        manage_settings=True,
    )
    agentRole = TenantRole(
        tenant_id=tenant.id,
        name="Agent",
        manage_bookings=True,
    )
    session.add_all([ownerRole, agentRole])
    session.flush()

    password = argon2.makePassword("password")
    admin = User(
        email_id="admin@routewise.in",
        password=password,
        full_name="RouteWise admin",
        role=UserRole.ADMIN,
        status=AccountStatus.ACTIVE,
        email_verified=True,
    )
    operator = User(
        email_id="operator@routewise.in",
        password=password,
        full_name="RouteWise operator",
        role=UserRole.OPERATOR,
        status=AccountStatus.ACTIVE,
        email_verified=True,
        tenant_id=tenant.id,
        tenant_role_id=ownerRole.id,
    )
    session.add_all([admin, operator])
    session.commit()
    print("* Initialization completed")
    session.close()


def POST(client: HTTPSession, URL: str, status_code: int = HTTPStatus.CREATED, **kwargs):
    response = client.post(URL, **kwargs)
    assert response.status_code == status_code, response.text
    return response


def testDB():
    # Base URL
    BASE_URL = "http://127.0.0.1:8080/admin"
    # Keeps the session cookie between requests
    client = HTTPSession()

    # Sign in to the admin console
    credentials = {"email_id": "operator@routewise.in", "password": "password"}
    POST(
        client,
        (BASE_URL + URL_ADMIN_LOGIN),
        json=credentials,
        status_code=HTTPStatus.OK,
    )
    print("* Signed in as operator")

    # Create Organization
    organizationData = {
        "name": "Kerala Travels",
        "address": "MG Road, Thiruvananthapuram, Kerala 695001",
        "phone_number": "+91 9496 801157",
        "email_id": "contact@keralatravels.in",
        "website": "https://keralatravels.in",
        "gst_number": "32ABCDE1234F1Z5",
        "is_primary": True,
    }
    organization = POST(
        client,
        (BASE_URL + URL_ORGANIZATION),
        json=organizationData,
    )
    print("* Created organization")

    # Create Bus types from the presets
    presets = client.get(BASE_URL + URL_BUS_TYPE_PRESETS)
    assert presets.status_code == HTTPStatus.OK, presets.text
    for preset in presets.json():
        busTypeData = {
            key: value
            for key, value in preset.items()
            if key not in ("display_name", "pricing_text")
        }
        busTypeData["organization_id"] = organization.json()["id"]
        POST(client, (BASE_URL + URL_BUS_TYPE), json=busTypeData)
    print("* Created bus types")

    # Create Routes
    routes = [
        {
            "name": "Trivandrum -> Kochi",
            "origin": "Trivandrum",
            "destination": "Kochi",
            "distance": 205,
            "duration": "5h 30m",
        },
        {
            "name": "Kochi -> Bangalore",
            "origin": "Kochi",
            "destination": "Bangalore",
            "distance": 545,
            "duration": "11h",
        },
    ]
    for routeData in routes:
        routeData["organization_id"] = organization.json()["id"]
        POST(client, (BASE_URL + URL_ROUTE), json=routeData)
    print("* Created routes")


# Setup database
if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    # remove tables
    parser.add_argument("-rm", action="store_true", help="remove tables")
    parser.add_argument("-cr", action="store_true", help="create tables")
    parser.add_argument("-init", action="store_true", help="initialize DB")
    parser.add_argument("-test", action="store_true", help="add test data")
    args = parser.parse_args()

    if args.cr:
        createTables()
    if args.init:
        initDB()
    if args.test:
        testDB()
    if args.rm:
        removeTables()
