"""Request form models with field-level validation messages."""

import math
import re
from typing import Literal, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

from beztern.domain.errors import FormValidationError
from beztern.domain.location import Coordinates

FormT = TypeVar("FormT", bound=BaseModel)

_LOOSE_EMAIL = re.compile(r"\S+@\S+\.\S+")
_STRICT_EMAIL = re.compile(r"^\S+@\S+\.\S+$")
_PHONE = re.compile(r"^\+?[0-9]{10,15}$")
MIN_LOGIN_PASSWORD = 6
MIN_PASSWORD = 8


def _fail(message: str) -> PydanticCustomError:
    return PydanticCustomError("form", message)


def _blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class _Form(BaseModel):
    model_config = ConfigDict(validate_default=True, str_strip_whitespace=False)


class LocationInput(BaseModel):
    latitude: float
    longitude: float

    def to_coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


class AttendanceForm(_Form):
    """Daily check-in: selfie, position and odometer reading."""

    photo: str | None = None
    location: LocationInput | None = None
    kilometers: str | None = None

    @field_validator("photo")
    @classmethod
    def _photo_required(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Please take a photo")
        return value

    @field_validator("location")
    @classmethod
    def _location_required(cls, value: LocationInput | None) -> LocationInput:
        if value is None:
            raise _fail("Please capture your current location")
        return value

    @field_validator("kilometers", mode="before")
    @classmethod
    def _kilometers(cls, value: object) -> str:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if _blank(value):
            raise _fail("Please enter bike kilometer reading")
        try:
            reading = float(value)
        except (TypeError, ValueError):
            raise _fail("Please enter a valid kilometer reading") from None
        if math.isnan(reading) or math.isinf(reading) or reading < 0:
            raise _fail("Please enter a valid kilometer reading")
        return value


class ShopVisitForm(_Form):
    """Field visit to a shop with owner contact details."""

    photo: str | None = None
    location: LocationInput | None = None
    shop_name: str | None = None
    owner_name: str | None = None
    owner_email: str | None = None
    visit_successful: Literal["yes", "no"] | None = None
    notes: str = ""

    @field_validator("photo")
    @classmethod
    def _photo_required(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Please take a photo of the shop")
        return value

    @field_validator("location")
    @classmethod
    def _location_required(cls, value: LocationInput | None) -> LocationInput:
        if value is None:
            raise _fail("Please capture your current location")
        return value

    @field_validator("shop_name")
    @classmethod
    def _shop_name(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Shop name is required")
        return value

    @field_validator("owner_name")
    @classmethod
    def _owner_name(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Shop owner name is required")
        return value

    @field_validator("owner_email")
    @classmethod
    def _owner_email(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Shop owner email is required")
        if not _LOOSE_EMAIL.search(value):
            raise _fail("Please enter a valid email address")
        return value

    @field_validator("visit_successful", mode="before")
    @classmethod
    def _visit_successful(cls, value: object) -> object:
        if value not in {"yes", "no"}:
            raise _fail("Please select an option")
        return value


class LoginForm(_Form):
    identifier: str | None = None
    password: str | None = None

    @field_validator("identifier")
    @classmethod
    def _identifier(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Email, phone number, or username is required")
        return value.strip()

    @field_validator("password")
    @classmethod
    def _password(cls, value: str | None) -> str:
        if not value:
            raise _fail("Password is required")
        if len(value) < MIN_LOGIN_PASSWORD:
            raise _fail("Password must be at least 6 characters")
        return value


class SignUpForm(_Form):
    full_name: str | None = None
    email: str | None = None
    phone: str = ""
    password: str | None = None
    confirm_password: str | None = None

    @field_validator("full_name")
    @classmethod
    def _full_name(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Full name is required")
        return value

    @field_validator("email")
    @classmethod
    def _email(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Email is required")
        if not _STRICT_EMAIL.match(value):
            raise _fail("Please enter a valid email address")
        return value

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        if value.strip() and not _PHONE.match(value):
            raise _fail("Please enter a valid phone number")
        return value

    @field_validator("password")
    @classmethod
    def _password(cls, value: str | None) -> str:
        if not value:
            raise _fail("Password is required")
        if len(value) < MIN_PASSWORD:
            raise _fail("Password must be at least 8 characters")
        return value

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, value: str | None, info: ValidationInfo) -> str:
        if not value:
            raise _fail("Please confirm your password")
        password = info.data.get("password")
        if password is not None and value != password:
            raise _fail("Passwords do not match")
        return value


class ForgotPasswordForm(_Form):
    identifier: str | None = None

    @field_validator("identifier")
    @classmethod
    def _identifier(cls, value: str | None) -> str:
        if _blank(value):
            raise _fail("Email, phone number, or username is required")
        return value.strip()


class PasswordChangeForm(_Form):
    """Password change from the profile page."""

    current_password: str | None = None
    new_password: str | None = None
    confirm_password: str | None = None

    @field_validator("current_password")
    @classmethod
    def _current(cls, value: str | None) -> str:
        if not value:
            raise _fail("Current password is required")
        return value

    @field_validator("new_password")
    @classmethod
    def _new(cls, value: str | None) -> str:
        if not value or len(value) < MIN_PASSWORD:
            raise _fail("Password must be at least 8 characters")
        return value

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, value: str | None, info: ValidationInfo) -> str | None:
        new_password = info.data.get("new_password")
        if new_password is not None and value != new_password:
            raise _fail("New passwords do not match")
        return value


class ResetPasswordForm(_Form):
    """New password chosen after following a reset link."""

    password: str | None = None
    confirm_password: str | None = None

    @field_validator("password")
    @classmethod
    def _password(cls, value: str | None) -> str:
        if not value:
            raise _fail("Password is required")
        if len(value) < MIN_PASSWORD:
            raise _fail("Password must be at least 8 characters")
        return value

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, value: str | None, info: ValidationInfo) -> str:
        if not value:
            raise _fail("Please confirm your password")
        password = info.data.get("password")
        if password is not None and value != password:
            raise _fail("Passwords do not match")
        return value


class ProfileUpdateForm(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    username: str | None = None
    bio: str | None = None
    email: str | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, value: str | None) -> str | None:
        if value is not None and not _STRICT_EMAIL.match(value):
            raise _fail("Please enter a valid email address")
        return value


class PreferencesForm(BaseModel):
    email_notifications: bool = True
    dark_mode: bool = False
    language: str = "english"


def parse_form(form_type: type[FormT], payload: object) -> FormT:
    """Validate ``payload`` into ``form_type`` or raise ``FormValidationError``.

    Only the first message per field is kept.
    """
    try:
        return form_type.model_validate(payload)
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for error in exc.errors(include_url=False):
            field_name = str(error["loc"][0]) if error["loc"] else "form"
            errors.setdefault(field_name, error["msg"])
        raise FormValidationError(errors) from None
