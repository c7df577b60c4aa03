"""Route guard decisions for authenticated and admin-only pages."""

from dataclasses import dataclass
from enum import Enum

from beztern.domain.models import Profile

LOGIN_ROUTE = "/login"
DEFAULT_ROUTE = "/attendance"
ADMIN_ROUTE = "/admin-dashboard"


@dataclass(frozen=True)
class AuthState:
    """Snapshot of the caller's identity used by the guards."""

    loading: bool = False
    is_authenticated: bool = False
    profile: Profile | None = None
    user_id: str | None = None
    email: str | None = None


class GuardOutcome(str, Enum):
    LOADING = "loading"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_DEFAULT = "redirect_default"
    ALLOW = "allow"

    @property
    def location(self) -> str | None:
        if self is GuardOutcome.REDIRECT_LOGIN:
            return LOGIN_ROUTE
        if self is GuardOutcome.REDIRECT_DEFAULT:
            return DEFAULT_ROUTE
        return None


def evaluate_user_guard(state: AuthState) -> GuardOutcome:
    """Allow any authenticated identity."""
    if state.loading:
        return GuardOutcome.LOADING
    if not state.is_authenticated:
        return GuardOutcome.REDIRECT_LOGIN
    return GuardOutcome.ALLOW


def evaluate_admin_guard(state: AuthState) -> GuardOutcome:
    """Allow only identities whose profile role is exactly admin.

    A signed-in non-admin, or one whose profile could not be loaded, is sent
    to the default page rather than the login page.
    """
    if state.loading:
        return GuardOutcome.LOADING
    if not state.is_authenticated:
        return GuardOutcome.REDIRECT_LOGIN
    if state.profile is None or not state.profile.is_admin:
        return GuardOutcome.REDIRECT_DEFAULT
    return GuardOutcome.ALLOW


def landing_route(profile: Profile | None) -> str:
    """Page a freshly signed-in identity lands on."""
    if profile is not None and profile.is_admin:
        return ADMIN_ROUTE
    return DEFAULT_ROUTE
