"""Employee pages: attendance, shop visits, location and own profile."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, Header, Request

from beztern.api.guards import require_user
from beztern.api.serializers import (
    serialize_attendance,
    serialize_preferences,
    serialize_profile,
    serialize_shop_visit,
)
from beztern.domain.errors import NotificationError
from beztern.services.device import is_mobile_user_agent
from beztern.services.guards import AuthState
from beztern.services.location import accuracy_label

if TYPE_CHECKING:
    from beztern.containers import AppContainer

router = APIRouter(tags=["employee"])

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _display_name(state: AuthState) -> str:
    if state.profile is not None:
        return state.profile.display_name(fallback_email=state.email)
    return state.email or "User"


def _is_secure(request: Request) -> bool:
    return request.url.scheme == "https" or request.url.hostname in _LOCAL_HOSTS


@router.get("/attendance")
async def attendance_page(
    request: Request, state: AuthState = Depends(require_user)
) -> dict[str, object]:
    records = _container(request).attendance_service.recent(state.user_id)
    return {
        "employee": _display_name(state),
        "records": [serialize_attendance(record) for record in records],
    }


@router.post("/attendance")
async def submit_attendance(
    request: Request,
    payload: dict[str, Any] = Body(...),
    state: AuthState = Depends(require_user),
) -> dict[str, object]:
    record = _container(request).attendance_service.submit(
        state.user_id, _display_name(state), payload
    )
    return {
        "level": "success",
        "message": "Attendance submitted successfully!",
        "redirect_to": "/shop-visit",
        "record": serialize_attendance(record),
    }


@router.get("/shop-visit")
async def shop_visit_page(
    request: Request, state: AuthState = Depends(require_user)
) -> dict[str, object]:
    records = _container(request).shop_visit_service.recent(state.user_id)
    return {
        "employee": _display_name(state),
        "records": [serialize_shop_visit(record) for record in records],
    }


@router.post("/shop-visit")
async def submit_shop_visit(
    request: Request,
    payload: dict[str, Any] = Body(...),
    state: AuthState = Depends(require_user),
) -> dict[str, object]:
    record = _container(request).shop_visit_service.submit(
        state.user_id, _display_name(state), payload
    )
    return {
        "level": "success",
        "message": "Shop visit data submitted successfully!",
        "record": serialize_shop_visit(record),
    }


@router.get("/location")
async def current_location(
    request: Request,
    retry: bool = False,
    state: AuthState = Depends(require_user),
    user_agent: str | None = Header(default=None),
) -> dict[str, object]:
    """Best-effort position lookup; failures come back as a message.

    ``retry=true`` spends one of the caller's manual retries, which persist
    across requests until a lookup succeeds.
    """
    fetcher = _container(request).user_location_fetcher(
        state.user_id,
        mobile=is_mobile_user_agent(user_agent),
        secure_context=_is_secure(request),
    )
    coordinates = await (fetcher.retry() if retry else fetcher.fetch())
    if coordinates is None:
        return {
            "coordinates": None,
            "retries_left": fetcher.retries_left,
            "error": fetcher.last_error,
            "error_kind": fetcher.last_error_kind.value
            if fetcher.last_error_kind
            else None,
        }
    accuracy = fetcher.last_fix.accuracy if fetcher.last_fix else None
    return {
        "coordinates": coordinates.as_dict(),
        "location": coordinates.format_location(),
        "accuracy": accuracy,
        "accuracy_label": accuracy_label(accuracy),
        "retries_left": fetcher.retries_left,
    }


@router.get("/profile")
async def profile_page(
    request: Request, state: AuthState = Depends(require_user)
) -> dict[str, object]:
    profile, preferences = _container(request).profile_service.get_profile(
        state.user_id, state.email
    )
    return {
        "profile": serialize_profile(profile),
        "preferences": serialize_preferences(preferences),
    }


@router.patch("/profile")
async def update_profile(
    request: Request,
    payload: dict[str, Any] = Body(...),
    state: AuthState = Depends(require_user),
) -> dict[str, str]:
    message = _container(request).profile_service.update_profile(
        state.user_id, state.email, payload
    )
    level = "info" if message.startswith("Email updated") else "success"
    return {"level": level, "message": message}


@router.put("/profile/preferences")
async def update_preferences(
    request: Request,
    payload: dict[str, Any] = Body(...),
    state: AuthState = Depends(require_user),
) -> dict[str, object]:
    preferences = _container(request).profile_service.update_preferences(
        state.user_id, payload
    )
    return {
        "level": "success",
        "message": "Preferences updated successfully",
        "preferences": serialize_preferences(preferences),
    }


@router.post("/profile/password")
async def change_password(
    request: Request,
    payload: dict[str, Any] = Body(...),
    state: AuthState = Depends(require_user),
) -> dict[str, str]:
    _container(request).profile_service.change_password(
        state.user_id, state.email, payload
    )
    return {"level": "success", "message": "Password updated successfully"}


@router.post("/profile/avatar")
async def upload_avatar(
    request: Request,
    payload: dict[str, Any] = Body(...),
    state: AuthState = Depends(require_user),
) -> dict[str, str]:
    image = payload.get("image")
    if not isinstance(image, str) or not image:
        raise NotificationError("Failed to upload image")
    url = _container(request).profile_service.upload_avatar(state.user_id, image)
    return {
        "level": "success",
        "message": "Profile picture updated successfully",
        "avatar_url": url,
    }
