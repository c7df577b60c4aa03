"""Code sender that writes verification codes to the application log."""

import logging
from dataclasses import dataclass

from beztern.domain.verification import VerificationKind
from beztern.services.verification import CodeSender

logger = logging.getLogger(__name__)


@dataclass
class LoggingCodeSender(CodeSender):
    """Stands in for email and SMS delivery until a provider is configured."""

    def send(self, kind: VerificationKind, destination: str, code: str) -> None:
        channel = "email" if kind is VerificationKind.EMAIL else "SMS"
        logger.info(
            "Sending %s verification code",
            channel,
            extra={"destination": destination, "code": code},
        )
