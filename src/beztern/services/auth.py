"""Authentication flows over the hosted auth provider."""

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from beztern.domain.errors import AuthenticationError, NotificationError
from beztern.domain.models import AuthSession, AuthUser, Profile, Role
from beztern.services.forms import (
    ForgotPasswordForm,
    LoginForm,
    ResetPasswordForm,
    SignUpForm,
    parse_form,
)
from beztern.services.guards import DEFAULT_ROUTE, LOGIN_ROUTE, AuthState, landing_route
from beztern.services.profiles import ProfileRepository
from beztern.services.verification import VerificationService

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^\S+@\S+\.\S+$")


class AuthGateway(Protocol):
    """Interface for the hosted identity provider.

    Implementations raise on provider errors; the exception text is the
    provider's message.
    """

    def sign_up(
        self, email: str, password: str, metadata: dict[str, object]
    ) -> AuthUser | None:
        """Register an identity and return it."""

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Return a session for valid credentials."""

    def oauth_url(self, provider: str, redirect_to: str) -> str:
        """Return the provider consent URL."""

    def exchange_code(self, code: str) -> AuthSession:
        """Trade an OAuth callback code for a session."""

    def get_user(self, access_token: str) -> AuthUser | None:
        """Return the identity behind an access token."""

    def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""

    def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        """Send a password-reset link."""

    def update_user(self, user_id: str, attributes: dict[str, object]) -> None:
        """Change email or password of an identity."""


@dataclass(frozen=True)
class SignInResult:
    session: AuthSession
    profile: Profile | None
    redirect_to: str
    message: str
    level: str = "success"


@dataclass(frozen=True)
class CallbackResult:
    redirect_to: str
    message: str
    level: str
    session: AuthSession | None = None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def classify_sign_in_error(message: str) -> str:
    """Map a provider sign-in error to the message shown to the user."""
    if "Invalid login" in message:
        return "Invalid credentials. Please check your password."
    if "Email not confirmed" in message:
        return "Please verify your email before logging in. Check your inbox."
    return message or "Authentication failed"


@dataclass
class AuthService:
    """Sign-up, sign-in and session resolution."""

    gateway: AuthGateway
    profile_repository: ProfileRepository
    verification_service: VerificationService | None = None
    site_url: str = "http://localhost:5173"
    admin_allowlist: frozenset[str] = field(default_factory=frozenset)
    profile_fetch_timeout: float = 10.0
    clock: Callable[[], datetime] = _utcnow

    def sign_up(self, payload: object) -> AuthUser | None:
        """Create the identity, its profile row and verification codes."""
        form = parse_form(SignUpForm, payload)
        phone = form.phone.strip() or None
        try:
            user = self.gateway.sign_up(
                form.email,
                form.password,
                {"full_name": form.full_name, "phone_number": phone, "role": "user"},
            )
        except Exception as exc:
            logger.warning("Sign-up rejected", extra={"error": str(exc)})
            raise AuthenticationError(str(exc) or "Failed to create account") from exc
        if user is None:
            return None
        try:
            self.profile_repository.create_profile(
                Profile(
                    id=user.id,
                    role=Role.USER,
                    email=form.email,
                    full_name=form.full_name,
                    phone=phone,
                    created_at=self.clock(),
                )
            )
        except Exception:
            logger.exception("Profile creation failed", extra={"user_id": user.id})
        if self.verification_service is not None:
            try:
                self.verification_service.issue(user.id, form.email, phone)
            except Exception:
                logger.exception(
                    "Failed to issue verification codes", extra={"user_id": user.id}
                )
        logger.info("Account created", extra={"user_id": user.id})
        return user

    def resolve_email(self, identifier: str) -> str | None:
        """Return the sign-in email for an email, username or phone number."""
        if _EMAIL.match(identifier):
            return identifier
        try:
            return self.profile_repository.find_email(identifier)
        except Exception:
            logger.exception("Identifier lookup failed")
            return None

    def sign_in(self, payload: object) -> SignInResult:
        form = parse_form(LoginForm, payload)
        email = self.resolve_email(form.identifier)
        if email is None:
            raise AuthenticationError("User not found. Please check your credentials.")
        try:
            session = self.gateway.sign_in_with_password(email, form.password)
        except Exception as exc:
            logger.warning("Sign-in rejected", extra={"error": str(exc)})
            raise AuthenticationError(classify_sign_in_error(str(exc))) from exc
        try:
            profile = self.profile_repository.get_profile(session.user.id)
        except Exception:
            logger.exception(
                "Profile lookup after sign-in failed",
                extra={"user_id": session.user.id},
            )
            profile = None
        if profile is None:
            return SignInResult(
                session=session,
                profile=None,
                redirect_to=DEFAULT_ROUTE,
                message="Login successful but profile data unavailable",
                level="warning",
            )
        return SignInResult(
            session=session,
            profile=profile,
            redirect_to=landing_route(profile),
            message=f"Welcome, {profile.full_name or 'User'}!",
        )

    def oauth_url(self, provider: str) -> str:
        try:
            return self.gateway.oauth_url(provider, f"{self.site_url}/auth/callback")
        except Exception as exc:
            logger.exception("OAuth start failed", extra={"provider": provider})
            raise AuthenticationError(
                f"Failed to sign in with {provider.capitalize()}"
            ) from exc

    def handle_callback(  # noqa: PLR0911
        self,
        code: str | None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> CallbackResult:
        """Finish a third-party sign-in and pick the landing page."""
        if error:
            logger.warning("OAuth provider returned an error", extra={"error": error})
            return CallbackResult(
                LOGIN_ROUTE,
                f"Authentication error: {error_description or error}",
                "error",
            )
        if not code:
            return CallbackResult(
                LOGIN_ROUTE, "No session found. Please try logging in again.", "error"
            )
        try:
            session = self.gateway.exchange_code(code)
        except Exception:
            logger.exception("OAuth code exchange failed")
            return CallbackResult(
                LOGIN_ROUTE, "Authentication failed. Please try again.", "error"
            )
        user = session.user
        try:
            profile = self.profile_repository.get_profile(user.id)
        except Exception:
            logger.exception("Profile fetch failed", extra={"user_id": user.id})
            return CallbackResult(LOGIN_ROUTE, "Error fetching user profile", "error")

        if profile is None:
            try:
                self.profile_repository.create_profile(self._profile_from_identity(user))
            except Exception:
                logger.exception("Profile creation failed", extra={"user_id": user.id})
                return CallbackResult(LOGIN_ROUTE, "Error creating user profile", "error")
            return CallbackResult(
                DEFAULT_ROUTE,
                "Welcome! Your account has been created.",
                "success",
                session,
            )

        if not profile.active:
            self._revoke(session.access_token)
            return CallbackResult(
                LOGIN_ROUTE,
                "Your account has been deactivated. Please contact admin.",
                "error",
            )
        name = profile.username or profile.full_name or user.email
        return CallbackResult(
            landing_route(profile), f"Welcome back, {name}!", "success", session
        )

    async def resolve(self, access_token: str | None) -> AuthState:
        """Turn an access token into the guard state for a request."""
        if not access_token:
            return AuthState(is_authenticated=False)
        try:
            user = await asyncio.to_thread(self.gateway.get_user, access_token)
        except Exception:
            logger.warning("Access token rejected", exc_info=True)
            return AuthState(is_authenticated=False)
        if user is None:
            return AuthState(is_authenticated=False)
        profile = await self._fetch_profile(user)
        return AuthState(
            is_authenticated=True, profile=profile, user_id=user.id, email=user.email
        )

    def sign_out(self, access_token: str) -> None:
        try:
            self.gateway.sign_out(access_token)
        except Exception as exc:
            logger.exception("Logout failed")
            raise NotificationError("Error logging out") from exc

    def request_password_reset(self, payload: object) -> None:
        form = parse_form(ForgotPasswordForm, payload)
        if "@" in form.identifier:
            email = form.identifier
        else:
            email = self.resolve_email(form.identifier)
        if email is None:
            raise NotificationError("User not found")
        try:
            self.gateway.reset_password_for_email(
                email, f"{self.site_url}/reset-password"
            )
        except Exception as exc:
            logger.exception("Password reset request failed")
            raise NotificationError(
                str(exc) or "Failed to send reset instructions"
            ) from exc

    def reset_password(self, user_id: str, payload: object) -> None:
        form = parse_form(ResetPasswordForm, payload)
        try:
            self.gateway.update_user(user_id, {"password": form.password})
        except Exception as exc:
            logger.exception("Password reset failed", extra={"user_id": user_id})
            raise NotificationError(str(exc) or "Failed to reset password") from exc

    async def _fetch_profile(self, user: AuthUser) -> Profile | None:
        try:
            profile = await asyncio.wait_for(
                asyncio.to_thread(self.profile_repository.get_profile, user.id),
                timeout=self.profile_fetch_timeout,
            )
        except TimeoutError:
            logger.warning("Profile fetch timed out", extra={"user_id": user.id})
            profile = None
        except Exception:
            logger.exception("Profile fetch failed", extra={"user_id": user.id})
            profile = None
        if profile is None and user.id in self.admin_allowlist:
            logger.warning(
                "Using fallback admin profile for allow-listed identity",
                extra={"user_id": user.id},
            )
            return Profile(
                id=user.id,
                role=Role.ADMIN,
                email=user.email,
                full_name="Admin User",
                active=True,
            )
        return profile

    def _profile_from_identity(self, user: AuthUser) -> Profile:
        metadata = user.metadata
        email = user.email or ""
        return Profile(
            id=user.id,
            role=Role.USER,
            email=user.email,
            full_name=str(metadata.get("full_name") or metadata.get("name") or ""),
            username=str(
                metadata.get("preferred_username") or email.split("@", maxsplit=1)[0]
            ),
            avatar_url=str(metadata.get("avatar_url") or metadata.get("picture") or ""),
            active=True,
            created_at=self.clock(),
        )

    def _revoke(self, access_token: str) -> None:
        try:
            self.gateway.sign_out(access_token)
        except Exception:
            logger.exception("Failed to revoke deactivated session")
