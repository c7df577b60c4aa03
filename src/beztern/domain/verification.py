"""One-time verification code models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class VerificationKind(str, Enum):
    EMAIL = "email"
    PHONE = "phone"

    @property
    def profile_flag(self) -> str:
        return f"{self.value}_verified"


@dataclass(frozen=True)
class VerificationCode:
    """Row in ``verification_codes``."""

    user_id: str
    code: str
    kind: VerificationKind
    expires_at: datetime
    id: str | None = None
