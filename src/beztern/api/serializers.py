"""JSON shapes for domain objects returned by the API."""

from beztern.domain.models import Profile, UserPreferences
from beztern.domain.records import AttendanceRecord, ShopVisitRecord


def serialize_profile(profile: Profile) -> dict[str, object]:
    return {
        "id": profile.id,
        "role": profile.role.value,
        "email": profile.email,
        "full_name": profile.full_name,
        "username": profile.username,
        "phone": profile.phone,
        "active": profile.active,
        "bio": profile.bio,
        "avatar_url": profile.avatar_url,
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
        "display_name": profile.display_name(),
    }


def serialize_preferences(preferences: UserPreferences) -> dict[str, object]:
    return {
        "email_notifications": preferences.email_notifications,
        "dark_mode": preferences.dark_mode,
        "language": preferences.language,
    }


def serialize_attendance(record: AttendanceRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "user_id": record.user_id,
        "type": record.type.value,
        "type_label": record.type.label,
        "location": record.location,
        "coordinates": record.coordinates.as_dict() if record.coordinates else None,
        "photo_url": record.photo_url,
        "notes": record.notes,
        "created_at": record.created_at.isoformat(),
    }


def serialize_shop_visit(record: ShopVisitRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "user_id": record.user_id,
        "shop_name": record.shop_name,
        "location": record.location,
        "coordinates": record.coordinates.as_dict() if record.coordinates else None,
        "photos": list(record.photos),
        "notes": record.notes,
        "visit_date": record.visit_date.isoformat(),
        "created_at": record.created_at.isoformat(),
    }
