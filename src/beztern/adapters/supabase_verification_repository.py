"""Supabase repository for one-time verification codes."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from beztern.domain.verification import VerificationCode, VerificationKind
from beztern.services.verification import VerificationRepository


@dataclass
class SupabaseVerificationRepository(VerificationRepository):
    """Supabase implementation for ``verification_codes``."""

    client: Client

    def store_codes(self, codes: list[VerificationCode]) -> None:
        response = (
            self.client.table("verification_codes")
            .insert(
                [
                    {
                        "user_id": code.user_id,
                        "code": code.code,
                        "type": code.kind.value,
                        "expires_at": code.expires_at.isoformat(),
                    }
                    for code in codes
                ]
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to store verification codes")

    def find_active_code(
        self, code: str, kind: VerificationKind, now: datetime
    ) -> VerificationCode | None:
        """Return an unexpired code matching value and kind."""
        response = (
            self.client.table("verification_codes")
            .select("id, user_id, code, type, expires_at")
            .eq("code", code)
            .eq("type", kind.value)
            .gt("expires_at", now.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return VerificationCode(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            code=str(row["code"]),
            kind=VerificationKind(row["type"]),
            expires_at=datetime.fromisoformat(str(row["expires_at"])),
        )

    def delete_code(self, code_id: str) -> None:
        self.client.table("verification_codes").delete().eq("id", code_id).execute()
