"""Supabase Auth adapter."""

from dataclasses import dataclass

from supabase import Client

from beztern.domain.models import AuthSession, AuthUser
from beztern.services.auth import AuthGateway

OAUTH_QUERY_PARAMS = {"access_type": "offline", "prompt": "consent"}


@dataclass
class SupabaseAuthGateway(AuthGateway):
    """Supabase implementation of the identity provider interface."""

    client: Client

    def sign_up(
        self, email: str, password: str, metadata: dict[str, object]
    ) -> AuthUser | None:
        response = self.client.auth.sign_up(
            {"email": email, "password": password, "options": {"data": metadata}}
        )
        return _to_user(response.user)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = self.client.auth.sign_in_with_password(
            {"email": email, "password": password}
        )
        return _to_session(response)

    def oauth_url(self, provider: str, redirect_to: str) -> str:
        response = self.client.auth.sign_in_with_oauth(
            {
                "provider": provider,
                "options": {
                    "redirect_to": redirect_to,
                    "query_params": OAUTH_QUERY_PARAMS,
                },
            }
        )
        return response.url

    def exchange_code(self, code: str) -> AuthSession:
        response = self.client.auth.exchange_code_for_session({"auth_code": code})
        return _to_session(response)

    def get_user(self, access_token: str) -> AuthUser | None:
        response = self.client.auth.get_user(access_token)
        if response is None:
            return None
        return _to_user(response.user)

    def sign_out(self, access_token: str) -> None:
        self.client.auth.admin.sign_out(access_token)

    def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        self.client.auth.reset_password_for_email(email, {"redirect_to": redirect_to})

    def update_user(self, user_id: str, attributes: dict[str, object]) -> None:
        self.client.auth.admin.update_user_by_id(user_id, attributes)


def _to_user(user: object) -> AuthUser | None:
    if user is None:
        return None
    return AuthUser(
        id=str(user.id),
        email=getattr(user, "email", None),
        metadata=dict(getattr(user, "user_metadata", None) or {}),
    )


def _to_session(response: object) -> AuthSession:
    session = getattr(response, "session", None)
    user = _to_user(getattr(response, "user", None))
    if session is None or user is None:
        raise RuntimeError("Supabase returned no session")
    return AuthSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        user=user,
    )
