"""Shop visit submission."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from beztern.domain.errors import NotificationError
from beztern.domain.records import ShopVisitRecord
from beztern.services.forms import ShopVisitForm, parse_form
from beztern.services.photos import PhotoStorage, store_photo

logger = logging.getLogger(__name__)


class ShopVisitRepository(Protocol):
    """Persistence interface for ``shop_visits`` rows."""

    def create_shop_visit(self, record: ShopVisitRecord) -> ShopVisitRecord:
        """Insert a visit and return it as stored."""

    def list_shop_visits(self, user_id: str, limit: int) -> list[ShopVisitRecord]:
        """Return a user's most recent visits, newest first."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def shop_visit_photo_path(user_id: str, at: datetime) -> str:
    millis = int(at.timestamp() * 1000)
    return f"shop-visits/{user_id}/shop_visit_{user_id}_{millis}.jpg"


def compose_visit_notes(display_name: str, form: ShopVisitForm) -> str:
    return (
        f"Employee: {display_name}. Owner: {form.owner_name} ({form.owner_email}). "
        f"Visit successful: {form.visit_successful}. Additional notes: {form.notes}"
    )


@dataclass
class ShopVisitService:
    """Validate, upload and record a shop visit."""

    repository: ShopVisitRepository
    storage: PhotoStorage
    bucket: str = "employee-photos"
    clock: Callable[[], datetime] = _utcnow

    def submit(
        self, user_id: str, display_name: str, payload: object
    ) -> ShopVisitRecord:
        form = parse_form(ShopVisitForm, payload)
        now = self.clock()
        photo_url = store_photo(
            self.storage, self.bucket, shop_visit_photo_path(user_id, now), form.photo
        )
        coordinates = form.location.to_coordinates()
        record = ShopVisitRecord(
            id=None,
            user_id=user_id,
            shop_name=form.shop_name,
            location=coordinates.format_location(),
            coordinates=coordinates,
            notes=compose_visit_notes(display_name, form),
            visit_date=now.date(),
            created_at=now,
            photos=[photo_url] if photo_url else [],
        )
        try:
            stored = self.repository.create_shop_visit(record)
        except Exception as exc:
            logger.exception("Failed to save shop visit", extra={"user_id": user_id})
            raise NotificationError("Failed to submit shop visit data") from exc
        logger.info(
            "Shop visit submitted",
            extra={"user_id": user_id, "shop_name": record.shop_name},
        )
        return stored

    def recent(self, user_id: str, limit: int = 10) -> list[ShopVisitRecord]:
        try:
            return self.repository.list_shop_visits(user_id, limit)
        except Exception as exc:
            logger.exception("Failed to load shop visits", extra={"user_id": user_id})
            raise NotificationError("Failed to load shop visits") from exc
