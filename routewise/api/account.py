import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, EmailStr, Field

from routewise.api.bearer import bearer_api
from routewise.api.user import UserSchema
from routewise.src.constants import MIN_PASSWORD_LENGTH, REGEX_PHONE
from routewise.src.db import Tenant, User, sessionMaker
from routewise.src import argon2, exceptions, jwt, validators, getters
from routewise.src.enums import AccountStatus, UserRole
from routewise.src.loggers import logEvent
from routewise.src.schemas import Envelope
from routewise.src.functions import envelope, fuseExceptionResponses
from routewise.src.urls import (
    URL_AUTH_FORGOT_PASSWORD,
    URL_AUTH_LOGIN,
    URL_AUTH_LOGOUT,
    URL_AUTH_PROFILE,
    URL_AUTH_REFRESH,
    URL_AUTH_REGISTER,
    URL_AUTH_RESET_PASSWORD,
)

route_api = APIRouter()
logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists for this email, a password reset link has been sent"
)


## Output Schema
class TokenSchema(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int


class AuthSchema(BaseModel):
    user: UserSchema
    tokens: TokenSchema


## Input Forms
class RegisterForm(BaseModel):
    email_id: EmailStr = Field(max_length=256)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)
    full_name: str = Field(min_length=1, max_length=128)
    phone_number: str | None = Field(max_length=32, pattern=REGEX_PHONE, default=None)
    tenant_id: int | None = Field(default=None)


class LoginForm(BaseModel):
    email_id: EmailStr = Field(max_length=256)
    password: str = Field(max_length=128)


class RefreshForm(BaseModel):
    refresh_token: str


class ForgotPasswordForm(BaseModel):
    email_id: EmailStr = Field(max_length=256)


class ResetPasswordForm(BaseModel):
    token: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)


## API endpoints [API]
@route_api.post(
    URL_AUTH_REGISTER,
    tags=["Auth"],
    response_model=Envelope[AuthSchema],
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.PydanticError(),
            exceptions.UniqueViolation("Email already registered"),
            exceptions.UnknownResource(Tenant),
        ]
    ),
    description="""
    Register a passenger account.
    The password must have at least 8 characters.
    Returns the account together with a fresh token pair.
    """,
)
async def register_user(
    fParam: RegisterForm,
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        email_id = fParam.email_id.lower()
        if session.query(User.id).filter(User.email_id == email_id).first():
            raise exceptions.UniqueViolation("Email already registered")
        if fParam.tenant_id is not None:
            tenant = session.query(Tenant).filter(Tenant.id == fParam.tenant_id).first()
            if tenant is None:
                raise exceptions.UnknownResource(Tenant)

        user = User(
            email_id=email_id,
            password=argon2.makePassword(fParam.password),
            full_name=fParam.full_name.strip(),
            phone_number=fParam.phone_number,
            tenant_id=fParam.tenant_id,
            role=UserRole.USER,
            status=AccountStatus.ACTIVE,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        logEvent(user, request_info, jsonable_encoder(user, exclude={"password"}))
        return envelope(
            {"user": user, "tokens": jwt.makeTokens(user)},
            message="Registration successful",
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.post(
    URL_AUTH_LOGIN,
    tags=["Auth"],
    response_model=Envelope[AuthSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidCredentials(), exceptions.InactiveAccount()]
    ),
    description="""
    Sign in with email and password.
    Returns the account together with a fresh token pair.
    """,
)
async def login_user(
    fParam: LoginForm,
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
        user.last_login_at = datetime.now(timezone.utc)
        session.commit()
        session.refresh(user)
        logEvent(user, request_info, {"id": user.id, "email_id": user.email_id})
        return envelope(
            {"user": user, "tokens": jwt.makeTokens(user)},
            message="Login successful",
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.post(
    URL_AUTH_REFRESH,
    tags=["Auth"],
    response_model=Envelope[TokenSchema],
    responses=fuseExceptionResponses([exceptions.InvalidToken()]),
    description="""
    Exchange a refresh token for a new token pair.
    The account must still exist and be active.
    """,
)
async def refresh_token(fParam: RefreshForm):
    try:
        session = sessionMaker()
        payload = jwt.refreshPayload(fParam.refresh_token)
        user = session.query(User).filter(User.id == int(payload["sub"])).first()
        if user is None or user.status != AccountStatus.ACTIVE:
            raise exceptions.InvalidToken(detail="Invalid or expired refresh token")
        return envelope(jwt.makeTokens(user))
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.post(
    URL_AUTH_LOGOUT,
    tags=["Auth"],
    response_model=Envelope[None],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    Sign out.
    Tokens are stateless, the client is expected to discard them.
    """,
)
async def logout_user(
    credential=Depends(bearer_api),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        logEvent(user, request_info, {"id": user.id})
        return envelope(None, message="Logout successful")
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.post(
    URL_AUTH_FORGOT_PASSWORD,
    tags=["Auth"],
    response_model=Envelope[None],
    description="""
    Request a password reset.
    The answer is the same whether or not the email is registered.
    """,
)
async def forgot_password(fParam: ForgotPasswordForm):
    try:
        session = sessionMaker()
        user = session.query(User).filter(User.email_id == fParam.email_id.lower()).first()
        if user is not None:
            resetToken = jwt.makeResetToken(user)
            # TODO: deliver the reset link by email once a mail provider is configured
            logger.info("Password reset token for user %s: %s", user.id, resetToken)
        return envelope(None, message=FORGOT_PASSWORD_MESSAGE)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.post(
    URL_AUTH_RESET_PASSWORD,
    tags=["Auth"],
    response_model=Envelope[None],
    responses=fuseExceptionResponses(
        [exceptions.InvalidResetToken(), exceptions.UnknownResource(User)]
    ),
    description="""
    Set a new password using a password reset token.
    """,
)
async def reset_password(
    fParam: ResetPasswordForm,
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        payload = jwt.resetPayload(fParam.token)
        user = session.query(User).filter(User.id == int(payload["sub"])).first()
        if user is None:
            raise exceptions.UnknownResource(User)

        user.password = argon2.makePassword(fParam.password)
        session.commit()
        logEvent(user, request_info, {"id": user.id})
        return envelope(None, message="Password reset successful")
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.get(
    URL_AUTH_PROFILE,
    tags=["Auth"],
    response_model=Envelope[UserSchema],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    Fetch the account the bearer token was issued for.
    """,
)
async def fetch_profile(credential=Depends(bearer_api)):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        return envelope(user)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
