"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from supabase import Client, ClientOptions, create_client

from beztern.adapters.httpx_geolocation_client import HttpxGeolocationClient
from beztern.adapters.json_preference_store import JsonPreferenceStore
from beztern.adapters.logging_code_sender import LoggingCodeSender
from beztern.adapters.supabase_admin_repository import SupabaseAdminRepository
from beztern.adapters.supabase_attendance_repository import (
    SupabaseAttendanceRepository,
)
from beztern.adapters.supabase_auth_gateway import SupabaseAuthGateway
from beztern.adapters.supabase_photo_storage import SupabasePhotoStorage
from beztern.adapters.supabase_preferences_repository import (
    SupabasePreferencesRepository,
)
from beztern.adapters.supabase_profile_repository import SupabaseProfileRepository
from beztern.adapters.supabase_shop_visit_repository import (
    SupabaseShopVisitRepository,
)
from beztern.adapters.supabase_verification_repository import (
    SupabaseVerificationRepository,
)
from beztern.config import Settings, parse_admin_allowlist
from beztern.services.admin import AdminService
from beztern.services.attendance import AttendanceService
from beztern.services.auth import AuthService
from beztern.services.camera import (
    CaptureSession,
    Haptics,
    MediaDevices,
    PreferenceStore,
)
from beztern.services.location import GeolocationProvider, LocationFetcher
from beztern.services.profiles import ProfileService
from beztern.services.shop_visits import ShopVisitService
from beztern.services.verification import VerificationService

logger = logging.getLogger(__name__)


class UnconfiguredClient:
    """Placeholder used when Supabase is not configured; every backend call fails."""

    def __getattr__(self, name: str) -> object:
        raise RuntimeError("Supabase is not configured")


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    verification_service: VerificationService
    profile_service: ProfileService
    attendance_service: AttendanceService
    shop_visit_service: ShopVisitService
    admin_service: AdminService
    geolocation_provider: GeolocationProvider
    preferences_for: Callable[[str], PreferenceStore]
    close_resources: Callable[[], Awaitable[None]]
    user_locations: dict[str, LocationFetcher] = field(default_factory=dict)

    def location_fetcher(
        self, mobile: bool = False, secure_context: bool = True
    ) -> LocationFetcher:
        """Create a fetcher with its own retry budget."""
        return LocationFetcher(
            provider=self.geolocation_provider,
            mobile=mobile,
            secure_context=secure_context,
        )

    def user_location_fetcher(
        self, user_id: str, mobile: bool = False, secure_context: bool = True
    ) -> LocationFetcher:
        """Return the caller's fetcher, keeping its retry budget across requests."""
        fetcher = self.user_locations.get(user_id)
        if fetcher is None:
            fetcher = self.location_fetcher(
                mobile=mobile, secure_context=secure_context
            )
            self.user_locations[user_id] = fetcher
        fetcher.mobile = mobile
        fetcher.secure_context = secure_context
        return fetcher

    def capture_session(
        self,
        devices: MediaDevices,
        client_id: str,
        mobile: bool = False,
        haptics: Haptics | None = None,
    ) -> CaptureSession:
        """Create a camera session using the client's stored facing preference."""
        return CaptureSession(
            devices=devices,
            preferences=self.preferences_for(client_id),
            mobile=mobile,
            haptics=haptics,
            location=self.location_fetcher(mobile=mobile),
        )


def _create_supabase_client(
    settings: Settings, options: ClientOptions | None = None
) -> Client | UnconfiguredClient:
    if not settings.supabase_url or not settings.supabase_key:
        logger.error(
            "SUPABASE_URL or SUPABASE_KEY is not set; backend calls will fail"
        )
        return UnconfiguredClient()
    if options is None:
        return create_client(settings.supabase_url, settings.supabase_key)
    return create_client(settings.supabase_url, settings.supabase_key, options=options)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = _create_supabase_client(resolved_settings)
    profile_repository = SupabaseProfileRepository(supabase_client)
    photo_storage = SupabasePhotoStorage(supabase_client)
    auth_gateway = SupabaseAuthGateway(
        _create_supabase_client(
            resolved_settings,
            ClientOptions(persist_session=False, auto_refresh_token=False),
        )
    )
    verification_service = VerificationService(
        repository=SupabaseVerificationRepository(supabase_client),
        profile_repository=profile_repository,
        sender=LoggingCodeSender(),
        ttl=resolved_settings.otp_ttl,
    )
    auth_service = AuthService(
        gateway=auth_gateway,
        profile_repository=profile_repository,
        verification_service=verification_service,
        site_url=resolved_settings.site_url,
        admin_allowlist=parse_admin_allowlist(resolved_settings.admin_allowlist),
        profile_fetch_timeout=resolved_settings.profile_fetch_timeout_seconds,
    )
    profile_service = ProfileService(
        profile_repository=profile_repository,
        preferences_repository=SupabasePreferencesRepository(supabase_client),
        storage=photo_storage,
        gateway=auth_gateway,
        avatar_bucket=resolved_settings.avatar_bucket,
    )
    attendance_service = AttendanceService(
        repository=SupabaseAttendanceRepository(supabase_client),
        storage=photo_storage,
        bucket=resolved_settings.storage_bucket,
    )
    shop_visit_service = ShopVisitService(
        repository=SupabaseShopVisitRepository(supabase_client),
        storage=photo_storage,
        bucket=resolved_settings.storage_bucket,
    )
    admin_service = AdminService(SupabaseAdminRepository(supabase_client))
    geolocation_client = HttpxGeolocationClient.create(
        resolved_settings.geolocation_url
    )

    async def close_resources() -> None:
        await geolocation_client.close()

    return AppContainer(
        settings=resolved_settings,
        auth_service=auth_service,
        verification_service=verification_service,
        profile_service=profile_service,
        attendance_service=attendance_service,
        shop_visit_service=shop_visit_service,
        admin_service=admin_service,
        geolocation_provider=geolocation_client,
        preferences_for=JsonPreferenceStore(
            Path(resolved_settings.camera_preferences_path)
        ).for_client,
        close_resources=close_resources,
    )
