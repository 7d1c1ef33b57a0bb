from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, EmailStr, Field

from routewise.api.bearer import cookie_admin
from routewise.src.constants import (
    ADMIN_COOKIE_SECURE,
    ADMIN_SESSION_COOKIE,
    ADMIN_SESSION_VALIDITY,
    MAX_ADMIN_SESSIONS,
)
from routewise.src.db import AdminSession, User, sessionMaker
from routewise.src import argon2, exceptions, validators, getters
from routewise.src.enums import AccountStatus, PlatformType
from routewise.src.loggers import logEvent
from routewise.src.functions import enumStr, fuseExceptionResponses
from routewise.src.urls import URL_ADMIN_LOGIN, URL_ADMIN_LOGOUT, URL_ADMIN_ME

route_admin = APIRouter()


## Output Schema
class SessionUserSchema(BaseModel):
    id: int
    email_id: str
    full_name: str
    phone_number: Optional[str]
    role: int
    status: int
    tenant_id: Optional[int]
    onboarding_complete: bool
    last_login_at: Optional[datetime]
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class LoginForm(BaseModel):
    email_id: EmailStr = Field(max_length=256)
    password: str = Field(max_length=128)
    platform_type: PlatformType = Field(
        description=enumStr(PlatformType), default=PlatformType.WEB
    )
    client_details: str | None = Field(max_length=1024, default=None)


## API endpoints [Admin]
@route_admin.post(
    URL_ADMIN_LOGIN,
    tags=["Session"],
    response_model=SessionUserSchema,
    responses=fuseExceptionResponses(
        [exceptions.InvalidCredentials(), exceptions.InactiveAccount()]
    ),
    description="""
    Sign in to the admin console.
    On success a session is stored and its token is returned in an httpOnly cookie, valid for 24 hours.
    Only the latest sessions of a user are kept, the oldest one is dropped once the limit is reached.
    """,
)
async def create_session(
    fParam: LoginForm,
    response: Response,
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        user = session.query(User).filter(User.email_id == fParam.email_id.lower()).first()
        if user is None:
            raise exceptions.InvalidCredentials()
        if not argon2.checkPassword(fParam.password, user.password):
            raise exceptions.InvalidCredentials()
        if user.status != AccountStatus.ACTIVE:
            raise exceptions.InactiveAccount()

        upgradedHash = argon2.upgradePassword(fParam.password, user.password)
        if upgradedHash is not None:
            user.password = upgradedHash

        # Remove excess sessions from DB
        tokens = (
            session.query(AdminSession)
            .filter(AdminSession.user_id == user.id)
            .order_by(AdminSession.id.desc())
            .all()
        )
        if len(tokens) >= MAX_ADMIN_SESSIONS:
            for token in tokens[MAX_ADMIN_SESSIONS - 1 :]:
                session.delete(token)
            session.flush()

        # Create a new session
        now = datetime.now(timezone.utc)
        token = AdminSession(
            user_id=user.id,
            expires_in=ADMIN_SESSION_VALIDITY,
            expires_at=now + timedelta(seconds=ADMIN_SESSION_VALIDITY),
            platform_type=fParam.platform_type,
            client_details=fParam.client_details,
        )
        user.last_login_at = now
        session.add(token)
        session.commit()
        session.refresh(user)

        response.set_cookie(
            key=ADMIN_SESSION_COOKIE,
            value=token.access_token,
            max_age=ADMIN_SESSION_VALIDITY,
            httponly=True,
            samesite="lax",
            secure=ADMIN_COOKIE_SECURE,
        )
        logEvent(
            token,
            request_info,
            {"id": token.id, "platform_type": token.platform_type},
        )
        return user
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.post(
    URL_ADMIN_LOGOUT,
    tags=["Session"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    Sign out of the admin console.
    Deletes the current session and clears the session cookie.
    """,
)
async def delete_session(
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)

        session.delete(token)
        session.commit()
        logEvent(token, request_info, {"id": token.id})

        response = Response(status_code=status.HTTP_204_NO_CONTENT)
        response.delete_cookie(
            key=ADMIN_SESSION_COOKIE, httponly=True, samesite="lax"
        )
        return response
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_ADMIN_ME,
    tags=["Session"],
    response_model=SessionUserSchema,
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    Fetch the account signed in with the current session.
    """,
)
async def fetch_session_user(cookie=Depends(cookie_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        return getters.sessionUser(token, session)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
