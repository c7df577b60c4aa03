"""Route guard dependencies resolving the caller from a bearer token."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Cookie, Depends, Header, Request

from beztern.domain.errors import GuardRedirect
from beztern.services.guards import (
    AuthState,
    GuardOutcome,
    evaluate_admin_guard,
    evaluate_user_guard,
)

if TYPE_CHECKING:
    from beztern.containers import AppContainer

ACCESS_TOKEN_COOKIE = "sb-access-token"


def access_token(
    authorization: str | None = Header(default=None),
    sb_access_token: str | None = Cookie(default=None, alias=ACCESS_TOKEN_COOKIE),
) -> str | None:
    """Return the bearer token from the header, else the session cookie."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return sb_access_token or None


async def current_auth_state(
    request: Request, token: str | None = Depends(access_token)
) -> AuthState:
    container: AppContainer = request.app.state.container
    return await container.auth_service.resolve(token)


def _enforce(outcome: GuardOutcome) -> None:
    location = outcome.location
    if location is not None:
        raise GuardRedirect(location)


async def require_user(state: AuthState = Depends(current_auth_state)) -> AuthState:
    """Allow any signed-in identity, else redirect to the login page."""
    _enforce(evaluate_user_guard(state))
    return state


async def require_admin(state: AuthState = Depends(current_auth_state)) -> AuthState:
    """Allow admins only; signed-in non-admins go to the default page."""
    _enforce(evaluate_admin_guard(state))
    return state
