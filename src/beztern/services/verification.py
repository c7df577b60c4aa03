"""One-time code issuing and verification."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from beztern.domain.errors import NotificationError
from beztern.domain.verification import VerificationCode, VerificationKind
from beztern.services.profiles import ProfileRepository

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
OTP_DIGITS = "0123456789"


class VerificationRepository(Protocol):
    """Persistence interface for ``verification_codes``."""

    def store_codes(self, codes: list[VerificationCode]) -> None:
        """Insert freshly issued codes."""

    def find_active_code(
        self, code: str, kind: VerificationKind, now: datetime
    ) -> VerificationCode | None:
        """Return an unexpired code matching value and kind."""

    def delete_code(self, code_id: str) -> None:
        """Remove a consumed code."""


class CodeSender(Protocol):
    """Delivery channel for verification codes."""

    def send(self, kind: VerificationKind, destination: str, code: str) -> None:
        """Deliver ``code`` to an email address or phone number."""


def generate_code() -> str:
    return "".join(secrets.choice(OTP_DIGITS) for _ in range(OTP_LENGTH))


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class VerificationService:
    """Issue and check the email and phone codes sent at sign-up."""

    repository: VerificationRepository
    profile_repository: ProfileRepository
    sender: CodeSender
    ttl: timedelta = timedelta(minutes=30)
    clock: Callable[[], datetime] = _utcnow

    def issue(
        self, user_id: str, email: str | None, phone: str | None
    ) -> list[VerificationCode]:
        """Store one code per available channel and send it."""
        expires_at = self.clock() + self.ttl
        destinations = {
            VerificationKind.EMAIL: email,
            VerificationKind.PHONE: phone,
        }
        codes = [
            VerificationCode(
                user_id=user_id, code=generate_code(), kind=kind, expires_at=expires_at
            )
            for kind, destination in destinations.items()
            if destination
        ]
        if not codes:
            return []
        self.repository.store_codes(codes)
        for code in codes:
            self.sender.send(code.kind, destinations[code.kind], code.code)
        return codes

    def verify(self, code: str, kind: VerificationKind) -> str:
        """Consume a code and flag the owning profile as verified.

        Returns the verified user's id.
        """
        return self.verify_all({kind: code})

    def verify_all(self, codes: dict[VerificationKind, str]) -> str:
        """Check every submitted code, then consume them together.

        Nothing is flagged or deleted unless all codes are valid and belong
        to the same user.
        """
        now = self.clock()
        matches = [
            self.repository.find_active_code(code.strip(), kind, now)
            for kind, code in codes.items()
        ]
        if not matches or None in matches:
            raise NotificationError("Invalid or expired verification code")
        if len({match.user_id for match in matches}) > 1:
            logger.warning("Verification codes belong to different users")
            raise NotificationError("Invalid or expired verification code")
        user_id = matches[0].user_id
        for match in matches:
            try:
                self.profile_repository.update_profile(
                    user_id, {match.kind.profile_flag: True}
                )
            except Exception as exc:
                logger.exception(
                    "Failed to mark profile verified", extra={"kind": match.kind}
                )
                raise NotificationError(f"Failed to verify {match.kind.value}") from exc
            if match.id is not None:
                self.repository.delete_code(match.id)
        logger.info("Verification succeeded", extra={"user_id": user_id})
        return user_id
