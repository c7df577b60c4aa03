"""Admin dashboard: load, enrich, search and export collections."""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from beztern.domain.admin import AdminTab, Dashboard, DateFilter, ExportFile
from beztern.domain.errors import NotificationError
from beztern.services.exports import collection_csv, complete_report

logger = logging.getLogger(__name__)

SEARCH_FIELDS: dict[AdminTab, tuple[str, ...]] = {
    AdminTab.EMPLOYEES: ("full_name", "email", "username", "phone"),
    AdminTab.ATTENDANCE: ("user_name", "location"),
    AdminTab.VISITS: ("user_name", "shop_name", "location"),
    AdminTab.PHOTOS: ("employee_name", "title", "shop_name"),
}
EDITABLE_PROFILE_FIELDS = frozenset({"full_name", "phone", "username", "role", "active"})


class AdminRepository(Protocol):
    """Persistence interface for admin data; whole collections, newest first."""

    def list_profiles(self) -> list[dict[str, object]]:
        """Return every profile row."""

    def list_attendance(self) -> list[dict[str, object]]:
        """Return every attendance row."""

    def list_shop_visits(self) -> list[dict[str, object]]:
        """Return every shop visit row."""

    def update_profile(
        self, profile_id: str, changes: dict[str, object]
    ) -> dict[str, object]:
        """Update a profile row and return it."""

    def delete_profile(self, profile_id: str) -> None:
        """Delete a profile row."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _has_text(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _display_name(profile: Mapping[str, object] | None) -> tuple[str, str]:
    if profile is None:
        return "Unknown User", "No email"
    name = "Unknown User"
    for key in ("username", "email", "full_name"):
        if _has_text(profile.get(key)):
            name = str(profile[key])
            break
    return name, str(profile.get("email") or "No email")


def enrich_rows(
    rows: Iterable[Mapping[str, object]], profiles: list[dict[str, object]]
) -> list[dict[str, object]]:
    """Attach ``user_name``/``user_email`` by looking up each row's owner."""
    enriched = []
    for row in rows:
        owner = next((p for p in profiles if p.get("id") == row.get("user_id")), None)
        name, email = _display_name(owner)
        enriched.append({**row, "user_name": name, "user_email": email})
    return enriched


def _parse_date(raw: object) -> datetime | None:
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, str) and raw:
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def build_gallery(
    attendance: list[dict[str, object]], shop_visits: list[dict[str, object]]
) -> list[dict[str, object]]:
    """Flatten attendance and visit photos into one list, newest first."""
    photos: list[dict[str, object]] = []
    for record in attendance:
        if not _has_text(record.get("photo_url")):
            continue
        label = "Check In" if record.get("type") == "check_in" else "Check Out"
        photos.append(
            {
                "id": f"attendance_{record.get('id')}",
                "url": record["photo_url"],
                "type": "attendance",
                "employee_name": record["user_name"],
                "employee_email": record["user_email"],
                "date": record.get("created_at"),
                "title": f"{label} Photo",
                "description": f"{record['user_name']} - {label}",
                "location": record.get("location"),
                "notes": record.get("notes"),
            }
        )
    for visit in shop_visits:
        for index, url in enumerate(visit.get("photos") or []):
            photos.append(
                {
                    "id": f"shop_{visit.get('id')}_{index}",
                    "url": url,
                    "type": "shop_visit",
                    "employee_name": visit["user_name"],
                    "employee_email": visit["user_email"],
                    "date": visit.get("created_at"),
                    "title": f"{visit.get('shop_name')} - Photo {index + 1}",
                    "description": (
                        f"{visit['user_name']} visited {visit.get('shop_name')}"
                    ),
                    "location": visit.get("location"),
                    "notes": visit.get("notes"),
                    "shop_name": visit.get("shop_name"),
                }
            )
    oldest = datetime.min.replace(tzinfo=UTC)
    photos.sort(key=lambda photo: _parse_date(photo["date"]) or oldest, reverse=True)
    return photos


def matches_search(
    row: Mapping[str, object], fields: Iterable[str], term: str
) -> bool:
    """Case-insensitive substring match over ``fields``; blank matches all."""
    needle = term.strip().lower()
    if not needle:
        return True
    return any(needle in str(row.get(key) or "").lower() for key in fields)


def filter_by_date(
    rows: list[dict[str, object]], date_filter: DateFilter, now: datetime
) -> list[dict[str, object]]:
    """Keep rows created since the start of today, this week or this month.

    Weeks start on Sunday.
    """
    if date_filter is DateFilter.ALL:
        return rows
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_filter is DateFilter.TODAY:
        start = start_of_day
    elif date_filter is DateFilter.WEEK:
        start = start_of_day - timedelta(days=(now.weekday() + 1) % 7)
    else:
        start = start_of_day.replace(day=1)
    kept = []
    for row in rows:
        created = _parse_date(row.get("created_at") or row.get("date"))
        if created is not None and created >= start:
            kept.append(row)
    return kept


@dataclass
class AdminService:
    """Service for the admin dashboard."""

    repository: AdminRepository
    clock: Callable[[], datetime] = _utcnow

    def load_dashboard(self) -> Dashboard:
        """Fetch all three collections and derive the enriched views."""
        try:
            profiles = self.repository.list_profiles()
            attendance = enrich_rows(self.repository.list_attendance(), profiles)
            shop_visits = enrich_rows(self.repository.list_shop_visits(), profiles)
        except Exception as exc:
            logger.exception("Failed to load dashboard data")
            raise NotificationError("Failed to load dashboard data") from exc
        dashboard = Dashboard(
            employees=profiles,
            attendance=attendance,
            shop_visits=shop_visits,
            photos=build_gallery(attendance, shop_visits),
        )
        logger.info("Dashboard loaded", extra=dashboard.counts())
        return dashboard

    def search(
        self,
        dashboard: Dashboard,
        tab: AdminTab,
        term: str = "",
        date_filter: DateFilter = DateFilter.ALL,
    ) -> list[dict[str, object]]:
        """Filter one collection; employees ignore the date filter."""
        rows = dashboard.collection(tab)
        if tab is not AdminTab.EMPLOYEES:
            rows = filter_by_date(rows, date_filter, self.clock())
        fields = SEARCH_FIELDS[tab]
        return [row for row in rows if matches_search(row, fields, term)]

    def export_csv(self, tab: AdminTab, dashboard: Dashboard | None = None) -> ExportFile:
        """Export the whole active collection with its scalar columns."""
        resolved = dashboard or self.load_dashboard()
        rows = resolved.collection(tab)
        if not rows:
            raise NotificationError("No data to export")
        return ExportFile(filename=tab.export_filename, content=collection_csv(rows))

    def export_report(self, dashboard: Dashboard | None = None) -> ExportFile:
        resolved = dashboard or self.load_dashboard()
        if not (resolved.employees or resolved.attendance or resolved.shop_visits):
            raise NotificationError("No data to export")
        now = self.clock()
        content = complete_report(
            resolved.employees,
            resolved.attendance,
            resolved.shop_visits,
            photo_count=len(resolved.photos),
            generated_at=now,
        )
        return ExportFile(
            filename=f"Beztern_Complete_Report_{now.date().isoformat()}.csv",
            content=content,
        )

    def update_profile(
        self, profile_id: str, changes: Mapping[str, object]
    ) -> dict[str, object]:
        """Apply an admin edit limited to the editable profile fields."""
        allowed = {
            key: value
            for key, value in changes.items()
            if key in EDITABLE_PROFILE_FIELDS
        }
        try:
            updated = self.repository.update_profile(profile_id, allowed)
        except Exception as exc:
            logger.exception("Failed to update user", extra={"profile_id": profile_id})
            raise NotificationError("Failed to update user") from exc
        logger.info("User updated", extra={"profile_id": profile_id})
        return updated

    def delete_profile(self, profile_id: str) -> None:
        """Delete the profile row only; the auth identity is left in place."""
        try:
            self.repository.delete_profile(profile_id)
        except Exception as exc:
            logger.exception("Failed to delete user", extra={"profile_id": profile_id})
            raise NotificationError("Failed to delete user") from exc
        logger.info("User deleted", extra={"profile_id": profile_id})
