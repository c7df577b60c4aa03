"""CSV serialization for admin exports and camera metadata."""

import csv
import io
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

from beztern.domain.capture import PhotoMetadata

REPORT_TITLE = "BEZTERN EMPLOYEE MANAGEMENT SYSTEM - COMPLETE REPORT"
EMPLOYEE_HEADERS = [
    "Full Name",
    "Email",
    "Phone",
    "Username",
    "Role",
    "Status",
    "Joined Date",
]
ATTENDANCE_HEADERS = [
    "Employee Name",
    "Employee Email",
    "Date",
    "Time",
    "Type",
    "Location",
    "Notes",
]
SHOP_VISIT_HEADERS = [
    "Employee Name",
    "Employee Email",
    "Shop Name",
    "Visit Date",
    "Visit Time",
    "Location",
    "Notes",
]
METADATA_HEADERS = [
    "Timestamp",
    "Camera Type",
    "Orientation",
    "Latitude",
    "Longitude",
    "Resolution",
    "File Path",
]


def _writer(buffer: io.StringIO, quoting: int = csv.QUOTE_MINIMAL):  # noqa: ANN202
    return csv.writer(buffer, quoting=quoting, lineterminator="\n")


def write_rows(rows: Iterable[Sequence[object]]) -> str:
    """Serialize rows; fields with commas, quotes or newlines get quoted."""
    buffer = io.StringIO()
    writer = _writer(buffer)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def collection_csv(records: Sequence[Mapping[str, object]]) -> str:
    """Export a record collection using the scalar keys of its first row.

    Nested values (lists, dicts) are skipped. Returns an empty string for an
    empty collection.
    """
    if not records:
        return ""
    headers = [
        key
        for key, value in records[0].items()
        if not isinstance(value, (list, dict, tuple, set))
    ]
    rows: list[list[object]] = [headers]
    rows.extend([record.get(key) for key in headers] for record in records)
    return write_rows(rows)


def photo_metadata_csv(entries: Iterable[PhotoMetadata]) -> str:
    rows: list[list[object]] = [METADATA_HEADERS]
    for entry in entries:
        coordinates = entry.coordinates
        rows.append(
            [
                entry.timestamp,
                entry.camera_type.value,
                entry.orientation,
                coordinates.latitude if coordinates else "",
                coordinates.longitude if coordinates else "",
                entry.resolution,
                entry.file_path,
            ]
        )
    return write_rows(rows)


def _parse_timestamp(raw: object) -> datetime | None:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def _date(raw: object) -> str:
    parsed = _parse_timestamp(raw)
    return parsed.date().isoformat() if parsed else "N/A"


def _time(raw: object) -> str:
    parsed = _parse_timestamp(raw)
    return parsed.strftime("%H:%M:%S") if parsed else "N/A"


def complete_report(
    employees: Sequence[Mapping[str, object]],
    attendance: Sequence[Mapping[str, object]],
    shop_visits: Sequence[Mapping[str, object]],
    photo_count: int,
    generated_at: datetime,
) -> str:
    """Render the sectioned report with every collection and a summary."""
    buffer = io.StringIO()
    lines = _writer(buffer, quoting=csv.QUOTE_NONE)
    quoted = _writer(buffer, quoting=csv.QUOTE_ALL)

    def line(text: str = "") -> None:
        buffer.write(f"{text}\n")

    line(REPORT_TITLE)
    line(
        f"Generated on: {generated_at.date().isoformat()} "
        f"at {generated_at.strftime('%H:%M:%S')}"
    )
    line()
    if employees:
        line("=== EMPLOYEES DATA ===")
        lines.writerow(EMPLOYEE_HEADERS)
        for employee in employees:
            quoted.writerow(
                [
                    employee.get("full_name") or "N/A",
                    employee.get("email") or "N/A",
                    employee.get("phone") or "N/A",
                    employee.get("username") or "N/A",
                    employee.get("role") or "user",
                    "Inactive" if employee.get("active") is False else "Active",
                    _date(employee.get("created_at")),
                ]
            )
        line()
    if attendance:
        line("=== ATTENDANCE RECORDS ===")
        lines.writerow(ATTENDANCE_HEADERS)
        for record in attendance:
            quoted.writerow(
                [
                    record.get("user_name") or "Unknown",
                    record.get("user_email") or "N/A",
                    _date(record.get("created_at")),
                    _time(record.get("created_at")),
                    "Check In" if record.get("type") == "check_in" else "Check Out",
                    record.get("location") or "No location",
                    record.get("notes") or "No notes",
                ]
            )
        line()
    if shop_visits:
        line("=== SHOP VISITS ===")
        lines.writerow(SHOP_VISIT_HEADERS)
        for visit in shop_visits:
            quoted.writerow(
                [
                    visit.get("user_name") or "Unknown",
                    visit.get("user_email") or "N/A",
                    visit.get("shop_name") or "N/A",
                    _date(visit.get("created_at")),
                    _time(visit.get("created_at")),
                    visit.get("location") or "No location",
                    visit.get("notes") or "No notes",
                ]
            )
    line()
    line("=== SUMMARY ===")
    line(f"Total Employees: {len(employees)}")
    line(f"Total Attendance Records: {len(attendance)}")
    line(f"Total Shop Visits: {len(shop_visits)}")
    buffer.write(f"Total Photos: {photo_count}")
    return buffer.getvalue()
