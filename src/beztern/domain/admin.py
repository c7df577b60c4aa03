"""Admin dashboard domain models."""

from dataclasses import dataclass, field
from enum import Enum


class AdminTab(str, Enum):
    """Collections shown on the admin dashboard."""

    EMPLOYEES = "employees"
    ATTENDANCE = "attendance"
    VISITS = "visits"
    PHOTOS = "photos"

    @property
    def export_filename(self) -> str:
        return {
            AdminTab.EMPLOYEES: "employees.csv",
            AdminTab.ATTENDANCE: "attendance.csv",
            AdminTab.VISITS: "shop_visits.csv",
            AdminTab.PHOTOS: "photos_gallery.csv",
        }[self]


class DateFilter(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


@dataclass
class Dashboard:
    """Whole collections loaded for one dashboard refresh, newest first."""

    employees: list[dict[str, object]] = field(default_factory=list)
    attendance: list[dict[str, object]] = field(default_factory=list)
    shop_visits: list[dict[str, object]] = field(default_factory=list)
    photos: list[dict[str, object]] = field(default_factory=list)

    def collection(self, tab: AdminTab) -> list[dict[str, object]]:
        if tab is AdminTab.EMPLOYEES:
            return self.employees
        if tab is AdminTab.ATTENDANCE:
            return self.attendance
        if tab is AdminTab.VISITS:
            return self.shop_visits
        return self.photos

    def counts(self) -> dict[str, int]:
        return {
            "employees": len(self.employees),
            "attendance": len(self.attendance),
            "shop_visits": len(self.shop_visits),
            "photos": len(self.photos),
        }


@dataclass(frozen=True)
class ExportFile:
    filename: str
    content: str
