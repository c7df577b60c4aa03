"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from PIL import Image

from beztern.config import Settings
from beztern.containers import AppContainer
from beztern.domain.capture import FacingMode, StreamConstraints
from beztern.domain.errors import LocationError
from beztern.domain.location import Coordinates, LocationErrorKind, LocationFix
from beztern.domain.models import AuthSession, AuthUser, Profile, Role, UserPreferences
from beztern.domain.records import AttendanceRecord, ShopVisitRecord
from beztern.domain.verification import VerificationCode, VerificationKind
from beztern.services.admin import AdminRepository, AdminService
from beztern.services.attendance import AttendanceRepository, AttendanceService
from beztern.services.auth import AuthGateway, AuthService
from beztern.services.camera import MediaDevices, PreferenceStore
from beztern.services.images import encode_jpeg, to_data_url
from beztern.services.location import GeolocationProvider
from beztern.services.photos import PhotoStorage
from beztern.services.profiles import (
    PreferencesRepository,
    ProfileRepository,
    ProfileService,
)
from beztern.services.shop_visits import ShopVisitRepository, ShopVisitService
from beztern.services.verification import (
    CodeSender,
    VerificationRepository,
    VerificationService,
)

FIXED_NOW = datetime(2024, 5, 15, 9, 30, tzinfo=UTC)


def fixed_clock() -> datetime:
    return FIXED_NOW


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    profiles: dict[str, Profile] = field(default_factory=dict)
    updates: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    fail: bool = False

    def get_profile(self, user_id: str) -> Profile | None:
        if self.fail:
            raise RuntimeError("profiles unavailable")
        return self.profiles.get(user_id)

    def find_email(self, identifier: str) -> str | None:
        for profile in self.profiles.values():
            if identifier in {profile.username, profile.phone}:
                return profile.email
        return None

    def create_profile(self, profile: Profile) -> Profile:
        if self.fail:
            raise RuntimeError("profiles unavailable")
        self.profiles[profile.id] = profile
        return profile

    def update_profile(self, user_id: str, changes: dict[str, object]) -> None:
        if self.fail:
            raise RuntimeError("profiles unavailable")
        self.updates.append((user_id, changes))
        current = self.profiles.get(user_id)
        if current is not None:
            known = {
                key: value
                for key, value in changes.items()
                if key in Profile.__dataclass_fields__
            }
            self.profiles[user_id] = replace(current, **known)


@dataclass
class InMemoryPreferencesRepository(PreferencesRepository):
    """In-memory preferences repository for tests."""

    rows: dict[str, UserPreferences] = field(default_factory=dict)

    def get_preferences(self, user_id: str) -> UserPreferences | None:
        return self.rows.get(user_id)

    def upsert_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        self.rows[user_id] = preferences


@dataclass
class InMemoryPhotoStorage(PhotoStorage):
    """Records uploads instead of sending them anywhere."""

    uploads: list[tuple[str, str, bytes, str]] = field(default_factory=list)
    fail: bool = False

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> None:
        if self.fail:
            raise RuntimeError("storage unavailable")
        self.uploads.append((bucket, path, data, content_type))

    def public_url(self, bucket: str, path: str) -> str:
        return f"https://cdn.example.com/{bucket}/{path}"


@dataclass
class InMemoryAttendanceRepository(AttendanceRepository):
    """In-memory attendance repository for tests."""

    records: list[AttendanceRecord] = field(default_factory=list)
    fail: bool = False

    def create_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        if self.fail:
            raise RuntimeError("insert failed")
        stored = replace(record, id=str(uuid4()))
        self.records.append(stored)
        return stored

    def list_attendance(self, user_id: str, limit: int) -> list[AttendanceRecord]:
        owned = [record for record in self.records if record.user_id == user_id]
        return sorted(owned, key=lambda record: record.created_at, reverse=True)[
            :limit
        ]


@dataclass
class InMemoryShopVisitRepository(ShopVisitRepository):
    """In-memory shop visit repository for tests."""

    records: list[ShopVisitRecord] = field(default_factory=list)
    fail: bool = False

    def create_shop_visit(self, record: ShopVisitRecord) -> ShopVisitRecord:
        if self.fail:
            raise RuntimeError("insert failed")
        stored = replace(record, id=str(uuid4()))
        self.records.append(stored)
        return stored

    def list_shop_visits(self, user_id: str, limit: int) -> list[ShopVisitRecord]:
        owned = [record for record in self.records if record.user_id == user_id]
        return sorted(owned, key=lambda record: record.created_at, reverse=True)[
            :limit
        ]


@dataclass
class InMemoryVerificationRepository(VerificationRepository):
    """In-memory verification code store for tests."""

    codes: list[VerificationCode] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    def store_codes(self, codes: list[VerificationCode]) -> None:
        self.codes.extend(replace(code, id=str(uuid4())) for code in codes)

    def find_active_code(
        self, code: str, kind: VerificationKind, now: datetime
    ) -> VerificationCode | None:
        for stored in self.codes:
            if stored.code == code and stored.kind is kind and stored.expires_at > now:
                return stored
        return None

    def delete_code(self, code_id: str) -> None:
        self.deleted.append(code_id)
        self.codes = [code for code in self.codes if code.id != code_id]


@dataclass
class RecordingCodeSender(CodeSender):
    """Collects sent codes."""

    sent: list[tuple[VerificationKind, str, str]] = field(default_factory=list)

    def send(self, kind: VerificationKind, destination: str, code: str) -> None:
        self.sent.append((kind, destination, code))


@dataclass
class FakeAuthGateway(AuthGateway):
    """Identity provider double keyed by email and access token."""

    passwords: dict[str, str] = field(default_factory=dict)
    users: dict[str, AuthUser] = field(default_factory=dict)
    tokens: dict[str, AuthUser] = field(default_factory=dict)
    oauth_codes: dict[str, AuthUser] = field(default_factory=dict)
    signed_out: list[str] = field(default_factory=list)
    updates: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    reset_requests: list[tuple[str, str]] = field(default_factory=list)
    sign_in_error: str | None = None

    def add_user(
        self, email: str, password: str, token: str | None = None
    ) -> AuthUser:
        user = AuthUser(id=str(uuid4()), email=email)
        self.passwords[email] = password
        self.users[email] = user
        if token is not None:
            self.tokens[token] = user
        return user

    def sign_up(
        self, email: str, password: str, metadata: dict[str, object]
    ) -> AuthUser | None:
        if email in self.users:
            raise RuntimeError("User already registered")
        user = AuthUser(id=str(uuid4()), email=email, metadata=metadata)
        self.passwords[email] = password
        self.users[email] = user
        return user

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        if self.sign_in_error is not None:
            raise RuntimeError(self.sign_in_error)
        if self.passwords.get(email) != password:
            raise RuntimeError("Invalid login credentials")
        user = self.users[email]
        token = f"token-{user.id}"
        self.tokens[token] = user
        return AuthSession(access_token=token, refresh_token="refresh", user=user)

    def oauth_url(self, provider: str, redirect_to: str) -> str:
        return f"https://auth.example.com/{provider}?redirect_to={redirect_to}"

    def exchange_code(self, code: str) -> AuthSession:
        user = self.oauth_codes.get(code)
        if user is None:
            raise RuntimeError("invalid code")
        token = f"token-{user.id}"
        self.tokens[token] = user
        return AuthSession(access_token=token, refresh_token=None, user=user)

    def get_user(self, access_token: str) -> AuthUser | None:
        return self.tokens.get(access_token)

    def sign_out(self, access_token: str) -> None:
        self.signed_out.append(access_token)
        self.tokens.pop(access_token, None)

    def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        self.reset_requests.append((email, redirect_to))

    def update_user(self, user_id: str, attributes: dict[str, object]) -> None:
        self.updates.append((user_id, attributes))


@dataclass
class InMemoryAdminRepository(AdminRepository):
    """In-memory admin repository for tests."""

    profiles: list[dict[str, object]] = field(default_factory=list)
    attendance: list[dict[str, object]] = field(default_factory=list)
    shop_visits: list[dict[str, object]] = field(default_factory=list)
    fail: bool = False

    def list_profiles(self) -> list[dict[str, object]]:
        if self.fail:
            raise RuntimeError("profiles unavailable")
        return list(self.profiles)

    def list_attendance(self) -> list[dict[str, object]]:
        return list(self.attendance)

    def list_shop_visits(self) -> list[dict[str, object]]:
        return list(self.shop_visits)

    def update_profile(
        self, profile_id: str, changes: dict[str, object]
    ) -> dict[str, object]:
        for index, row in enumerate(self.profiles):
            if row.get("id") == profile_id:
                self.profiles[index] = {**row, **changes}
                return self.profiles[index]
        raise RuntimeError("Failed to update profile")

    def delete_profile(self, profile_id: str) -> None:
        self.profiles = [row for row in self.profiles if row.get("id") != profile_id]


@dataclass
class FakeGeolocationProvider(GeolocationProvider):
    """Returns queued fixes or raises queued location errors."""

    results: list[LocationFix | LocationErrorKind] = field(default_factory=list)
    calls: int = 0

    async def current_position(
        self, *, high_accuracy: bool, timeout: float, maximum_age: float
    ) -> LocationFix:
        self.calls += 1
        result = self.results.pop(0) if self.results else LocationErrorKind.TIMEOUT
        if isinstance(result, LocationErrorKind):
            raise LocationError(result, result.value)
        return result


@dataclass
class InMemoryPreferenceStore(PreferenceStore):
    facing_mode: FacingMode | None = None

    def load_facing_mode(self) -> FacingMode | None:
        return self.facing_mode

    def save_facing_mode(self, facing_mode: FacingMode) -> None:
        self.facing_mode = facing_mode


@dataclass
class FakeTrack:
    stopped: bool = False

    def stop(self) -> None:
        self.stopped = True


@dataclass
class FakeStream:
    facing_mode: FacingMode
    size: tuple[int, int] = (64, 48)
    track_list: list[FakeTrack] = field(
        default_factory=lambda: [FakeTrack(), FakeTrack()]
    )
    frame_error: Exception | None = None

    @property
    def tracks(self) -> list[FakeTrack]:
        return self.track_list

    @property
    def active(self) -> bool:
        return not all(track.stopped for track in self.track_list)

    async def grab_frame(self) -> Image.Image:
        if self.frame_error is not None:
            raise self.frame_error
        return Image.new("RGB", self.size, color=(200, 120, 40))


@dataclass
class FakeMediaDevices(MediaDevices):
    """Hands out fake streams; ``denied`` facing modes are refused.

    When ``gate`` is set, each request waits for it before answering.
    """

    denied: set[FacingMode] = field(default_factory=set)
    deny_all: bool = False
    deny_detailed: bool = False
    requests: list[StreamConstraints] = field(default_factory=list)
    streams: list[FakeStream] = field(default_factory=list)
    gate: asyncio.Event | None = None

    async def get_user_media(self, constraints: StreamConstraints) -> FakeStream:
        self.requests.append(constraints)
        if self.gate is not None:
            await self.gate.wait()
        if self.deny_all or constraints.facing_mode in self.denied:
            raise PermissionError("NotAllowedError")
        if self.deny_detailed and not constraints.is_minimal:
            raise RuntimeError("OverconstrainedError")
        stream = FakeStream(facing_mode=constraints.facing_mode)
        self.streams.append(stream)
        return stream

    def active_streams(self) -> list[FakeStream]:
        return [stream for stream in self.streams if stream.active]


@dataclass
class FakeHaptics:
    patterns: list[list[int]] = field(default_factory=list)

    def vibrate(self, pattern: list[int]) -> bool:
        self.patterns.append(pattern)
        return True


def make_fix(latitude: float = 12.9716, longitude: float = 77.5946) -> LocationFix:
    return LocationFix(
        coordinates=Coordinates(latitude=latitude, longitude=longitude),
        accuracy=8.0,
        captured_at=FIXED_NOW,
    )


def make_profile(role: Role = Role.USER, **overrides: object) -> Profile:
    values: dict[str, object] = {
        "id": str(uuid4()),
        "role": role,
        "email": "asha@example.com",
        "full_name": "Asha Rao",
        "username": "asha",
        "created_at": FIXED_NOW,
    }
    values.update(overrides)
    return Profile(**values)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="service-key",
        site_url="https://app.example.com",
        geolocation_url="https://geo.example.com/json/",
    )


@pytest.fixture
def photo_data_url() -> str:
    return to_data_url(encode_jpeg(Image.new("RGB", (8, 8), color=(10, 20, 30))))


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def auth_gateway() -> FakeAuthGateway:
    return FakeAuthGateway()


@pytest.fixture
def photo_storage() -> InMemoryPhotoStorage:
    return InMemoryPhotoStorage()


@pytest.fixture
def geolocation_provider() -> FakeGeolocationProvider:
    return FakeGeolocationProvider()


@pytest.fixture
def container(
    settings: Settings,
    profile_repository: InMemoryProfileRepository,
    auth_gateway: FakeAuthGateway,
    photo_storage: InMemoryPhotoStorage,
    geolocation_provider: FakeGeolocationProvider,
) -> AppContainer:
    verification_service = VerificationService(
        repository=InMemoryVerificationRepository(),
        profile_repository=profile_repository,
        sender=RecordingCodeSender(),
        clock=fixed_clock,
    )
    auth_service = AuthService(
        gateway=auth_gateway,
        profile_repository=profile_repository,
        verification_service=verification_service,
        site_url=settings.site_url,
        clock=fixed_clock,
    )
    profile_service = ProfileService(
        profile_repository=profile_repository,
        preferences_repository=InMemoryPreferencesRepository(),
        storage=photo_storage,
        gateway=auth_gateway,
    )

    camera_preferences: dict[str, InMemoryPreferenceStore] = {}

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        auth_service=auth_service,
        verification_service=verification_service,
        profile_service=profile_service,
        attendance_service=AttendanceService(
            repository=InMemoryAttendanceRepository(),
            storage=photo_storage,
            clock=fixed_clock,
        ),
        shop_visit_service=ShopVisitService(
            repository=InMemoryShopVisitRepository(),
            storage=photo_storage,
            clock=fixed_clock,
        ),
        admin_service=AdminService(InMemoryAdminRepository(), clock=fixed_clock),
        geolocation_provider=geolocation_provider,
        preferences_for=lambda client_id: camera_preferences.setdefault(
            client_id, InMemoryPreferenceStore()
        ),
        close_resources=close_resources,
    )
