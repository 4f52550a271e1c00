"""
api/routes/auth.py
------------------
Identity-provider endpoints.

POST /register  - Create an account. Only allowlisted emails may register;
                  the role is assigned by the allowlist service.
POST /login     - Exchange credentials for a JWT access token (OAuth2 form).
GET  /me        - Return the authenticated account.
"""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from offerdesk.core.config import settings
from offerdesk.core.errors import NotFound, Unauthenticated
from offerdesk.core.identity import IdentityContextResolver
from offerdesk.core.security import create_access_token
from offerdesk.dependencies import (
    DbSession,
    SessionPrincipal,
    get_identity_resolver,
    rate_limited,
)
from offerdesk.schemas.user import TokenResponse, UserRead, UserRegister
from offerdesk.services.user_service import UserService

router = APIRouter(tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    body: UserRegister,
    db: DbSession,
    resolver: Annotated[IdentityContextResolver, Depends(get_identity_resolver)],
) -> UserRead:
    """
    Create an account in the configured default organisation.
    Emails that are not on the admin allowlist are refused (403).
    """
    user = await UserService.register_user(db, body, resolver.default_org_id)
    return UserRead.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and receive a JWT access token",
    dependencies=[Depends(rate_limited("login"))],
)
async def login(
    # The OAuth2 "username" field carries the email address.
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: DbSession,
) -> TokenResponse:
    """
    Authenticate with email + password and receive a signed JWT.

    Via curl:
        -d "username=you@email.com&password=yourpassword"
    """
    user = await UserService.authenticate(db, form_data.username, form_data.password)
    if user is None:
        raise Unauthenticated("Invalid email or password")

    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(
        subject=user.id,
        email=user.email,
        role=user.role,
        org_id=user.org_id,
        expires_delta=expires,
    )

    return TokenResponse(
        access_token=token,
        token_type="bearer",
        expires_in=int(expires.total_seconds()),
        user=UserRead.model_validate(user),
    )


@router.get(
    "/me",
    response_model=UserRead,
    summary="Get the currently authenticated account",
)
async def get_me(principal: SessionPrincipal, db: DbSession) -> UserRead:
    user = await UserService.get_by_id(db, principal.user_id)
    if user is None:
        raise NotFound.for_entity("User")
    return UserRead.model_validate(user)
