"""Sign-up, sign-in and session endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import RedirectResponse

from beztern.api.guards import ACCESS_TOKEN_COOKIE, access_token, require_user
from beztern.api.serializers import serialize_profile
from beztern.domain.verification import VerificationKind
from beztern.services.guards import AuthState, GuardOutcome, evaluate_admin_guard

if TYPE_CHECKING:
    from beztern.containers import AppContainer

router = APIRouter(tags=["auth"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


@router.post("/signup")
async def sign_up(
    request: Request, payload: dict[str, Any] = Body(...)
) -> dict[str, object]:
    """Create an account and send verification codes."""
    user = _container(request).auth_service.sign_up(payload)
    return {
        "level": "success",
        "message": (
            "Account created successfully! "
            "Please check your email for verification."
        ),
        "user_id": user.id if user else None,
        "redirect_to": "/login?verified=pending",
    }


@router.post("/login")
async def login(
    request: Request, payload: dict[str, Any] = Body(...)
) -> dict[str, object]:
    result = _container(request).auth_service.sign_in(payload)
    return {
        "level": result.level,
        "message": result.message,
        "redirect_to": result.redirect_to,
        "access_token": result.session.access_token,
        "refresh_token": result.session.refresh_token,
        "profile": serialize_profile(result.profile) if result.profile else None,
    }


@router.get("/login/oauth/{provider}")
async def oauth_login(provider: str, request: Request) -> RedirectResponse:
    """Send the browser to the third-party consent page."""
    url = _container(request).auth_service.oauth_url(provider)
    return RedirectResponse(url)


@router.get("/auth/callback")
async def oauth_callback(
    request: Request,
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
) -> RedirectResponse:
    result = _container(request).auth_service.handle_callback(
        code, error=error, error_description=error_description
    )
    response = RedirectResponse(result.redirect_to)
    if result.session is not None:
        response.set_cookie(
            ACCESS_TOKEN_COOKIE,
            result.session.access_token,
            httponly=True,
            secure=request.url.scheme == "https",
            samesite="lax",
        )
    return response


@router.post("/forgot-password")
async def forgot_password(
    request: Request, payload: dict[str, Any] = Body(...)
) -> dict[str, str]:
    _container(request).auth_service.request_password_reset(payload)
    return {
        "level": "success",
        "message": "Reset instructions sent! Check your email/phone.",
    }


@router.post("/reset-password")
async def reset_password(
    request: Request,
    payload: dict[str, Any] = Body(...),
    state: AuthState = Depends(require_user),
) -> dict[str, str]:
    _container(request).auth_service.reset_password(state.user_id, payload)
    return {"level": "success", "message": "Password updated successfully"}


@router.post("/verify")
async def verify(
    request: Request, payload: dict[str, Any] = Body(...)
) -> dict[str, str]:
    """Check the email and phone codes issued at sign-up."""
    service = _container(request).verification_service
    submitted = {
        VerificationKind.EMAIL: payload.get("email_code"),
        VerificationKind.PHONE: payload.get("phone_code"),
    }
    service.verify_all(
        {kind: str(code) for kind, code in submitted.items() if code}
    )
    return {
        "level": "success",
        "message": "Verification successful!",
        "redirect_to": "/login",
    }


@router.post("/logout")
async def logout(
    request: Request, token: str | None = Depends(access_token)
) -> dict[str, str]:
    if token:
        _container(request).auth_service.sign_out(token)
    return {"level": "success", "message": "Logged out successfully"}


@router.get("/session")
async def session(
    request: Request, token: str | None = Depends(access_token)
) -> dict[str, object]:
    """Report the caller's auth state and where the admin guard would send them."""
    state = await _container(request).auth_service.resolve(token)
    outcome = evaluate_admin_guard(state)
    return {
        "is_authenticated": state.is_authenticated,
        "user_id": state.user_id,
        "email": state.email,
        "profile": serialize_profile(state.profile) if state.profile else None,
        "is_admin": outcome is GuardOutcome.ALLOW,
    }
