"""Profile lookup and self-service profile management."""

import logging
import secrets
import string
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Protocol

from beztern.domain.errors import NotificationError
from beztern.domain.models import Profile, UserPreferences
from beztern.services.forms import (
    PasswordChangeForm,
    PreferencesForm,
    ProfileUpdateForm,
    parse_form,
)
from beztern.services.images import decode_data_url, detect_mime_type, extension_for
from beztern.services.photos import PhotoStorage

if TYPE_CHECKING:
    from beztern.services.auth import AuthGateway

logger = logging.getLogger(__name__)


class ProfileRepository(Protocol):
    """Persistence interface for ``profiles`` rows."""

    def get_profile(self, user_id: str) -> Profile | None:
        """Return the profile for an identity, if present."""

    def find_email(self, identifier: str) -> str | None:
        """Return the email of the profile matching a username or phone."""

    def create_profile(self, profile: Profile) -> Profile:
        """Insert a profile row and return it."""

    def update_profile(self, user_id: str, changes: dict[str, object]) -> None:
        """Apply a partial update to a profile row."""


class PreferencesRepository(Protocol):
    """Persistence interface for ``user_preferences``."""

    def get_preferences(self, user_id: str) -> UserPreferences | None:
        """Return stored preferences, if any."""

    def upsert_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        """Create or replace the preferences row."""


def _random_suffix(length: int = 10) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


@dataclass
class ProfileService:
    """Service for the signed-in user's own profile page."""

    profile_repository: ProfileRepository
    preferences_repository: PreferencesRepository
    storage: PhotoStorage
    gateway: "AuthGateway"
    avatar_bucket: str = "avatars"

    def get_profile(
        self, user_id: str, email: str | None = None
    ) -> tuple[Profile, UserPreferences]:
        """Return the profile with preferences, defaulting missing preferences."""
        try:
            profile = self.profile_repository.get_profile(user_id)
            preferences = self.preferences_repository.get_preferences(user_id)
        except Exception as exc:
            logger.exception("Failed to load profile", extra={"user_id": user_id})
            raise NotificationError("Failed to load profile") from exc
        if profile is None:
            raise NotificationError("Failed to load profile")
        if email and not profile.email:
            profile = replace(profile, email=email)
        return profile, preferences or UserPreferences()

    def update_profile(
        self, user_id: str, current_email: str | None, payload: object
    ) -> str:
        """Update display fields; an email change goes through the auth provider.

        Returns the notification message for the caller.
        """
        form = parse_form(ProfileUpdateForm, payload)
        changes = form.model_dump(
            include={"full_name", "phone", "username", "bio"}, exclude_unset=True
        )
        try:
            if changes:
                self.profile_repository.update_profile(user_id, changes)
            if form.email and form.email != current_email:
                self.gateway.update_user(user_id, {"email": form.email})
                logger.info("Email change requested", extra={"user_id": user_id})
                return "Email updated. Please check your new email for verification."
        except Exception as exc:
            logger.exception("Failed to update profile", extra={"user_id": user_id})
            raise NotificationError("Failed to update profile") from exc
        return "Profile updated successfully"

    def update_preferences(self, user_id: str, payload: object) -> UserPreferences:
        form = parse_form(PreferencesForm, payload)
        preferences = UserPreferences(
            email_notifications=form.email_notifications,
            dark_mode=form.dark_mode,
            language=form.language,
        )
        try:
            self.preferences_repository.upsert_preferences(user_id, preferences)
        except Exception as exc:
            logger.exception("Failed to update preferences", extra={"user_id": user_id})
            raise NotificationError("Failed to update preferences") from exc
        return preferences

    def upload_avatar(self, user_id: str, data_url: str) -> str:
        """Store a new avatar image and point the profile at it."""
        try:
            mime_type, data = decode_data_url(data_url)
        except ValueError as exc:
            raise NotificationError("Failed to upload image") from exc
        mime_type = detect_mime_type(data) if mime_type == "image/jpeg" else mime_type
        extension = extension_for(mime_type)
        path = f"profiles/{user_id}-{_random_suffix()}.{extension}"
        try:
            self.storage.upload(self.avatar_bucket, path, data, mime_type)
            url = self.storage.public_url(self.avatar_bucket, path)
            self.profile_repository.update_profile(user_id, {"avatar_url": url})
        except Exception as exc:
            logger.exception("Avatar upload failed", extra={"user_id": user_id})
            raise NotificationError("Failed to upload image") from exc
        return url

    def change_password(self, user_id: str, email: str | None, payload: object) -> None:
        """Re-check the current password, then set the new one."""
        form = parse_form(PasswordChangeForm, payload)
        if not email:
            raise NotificationError("Current password is incorrect")
        try:
            self.gateway.sign_in_with_password(email, form.current_password)
        except Exception as exc:
            logger.warning("Password re-check failed", extra={"user_id": user_id})
            raise NotificationError("Current password is incorrect") from exc
        try:
            self.gateway.update_user(user_id, {"password": form.new_password})
        except Exception as exc:
            logger.exception("Failed to update password", extra={"user_id": user_id})
            raise NotificationError("Failed to update password") from exc
