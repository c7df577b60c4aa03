"""Domain models for identities and user profiles."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of application roles."""

    ADMIN = "admin"
    USER = "user"

    @classmethod
    def parse(cls, raw: object) -> "Role":
        """Map a stored role string to a role; only exact ``admin`` is admin."""
        if raw == cls.ADMIN.value:
            return cls.ADMIN
        return cls.USER


@dataclass(frozen=True)
class Profile:
    """Application-level user record stored in ``profiles``."""

    id: str
    role: Role = Role.USER
    email: str | None = None
    full_name: str | None = None
    username: str | None = None
    phone: str | None = None
    active: bool = True
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def display_name(self, fallback_email: str | None = None) -> str:
        """Return username, then email, then full name, then ``User``."""
        for candidate in (self.username, self.email or fallback_email, self.full_name):
            if candidate and candidate.strip():
                return candidate
        return "User"


@dataclass(frozen=True)
class AuthUser:
    """Identity as reported by the auth provider."""

    id: str
    email: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthSession:
    """Tokens issued for a signed-in identity."""

    access_token: str
    refresh_token: str | None
    user: AuthUser


@dataclass(frozen=True)
class UserPreferences:
    """Per-user settings stored in ``user_preferences``."""

    email_notifications: bool = True
    dark_mode: bool = False
    language: str = "english"
