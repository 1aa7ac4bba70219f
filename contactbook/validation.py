"""Input validation for contacts and credentials.

Each ``validate_*`` function is pure: it takes the raw request payload and
returns the validated fields, or raises :class:`~contactbook.errors.ValidationError`
carrying a ``field -> [messages]`` map that covers every failing field.
"""

from dataclasses import dataclass
from typing import Any, Mapping

import pydantic

from . import schemas
from .errors import ValidationError

#: Accepted photo content types and the file extension each one is stored with.
PHOTO_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/pjpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
}

PHOTO_MAX_KB = 2048

#: Leading bytes of each accepted image format.
PHOTO_SIGNATURES = {
    b"\xff\xd8\xff": "jpg",
    b"\x89PNG": "png",
    b"GIF8": "gif",
}


@dataclass
class PhotoUpload:
    """An uploaded photo, fully read into memory."""

    content: bytes
    content_type: str | None
    filename: str | None = None

    @property
    def extension(self) -> str | None:
        return PHOTO_CONTENT_TYPES.get((self.content_type or "").lower())

    def sniff(self) -> str | None:
        """Image format the content actually starts with, if any."""
        for signature, kind in PHOTO_SIGNATURES.items():
            if self.content.startswith(signature):
                return kind
        return None


@dataclass
class ContactFields:
    """Validated contact input.

    ``values`` only holds the fields that were present in the request, so
    an update can tell an omitted field from one set to ``None``.
    """

    values: dict[str, Any]
    photo: PhotoUpload | None = None


def _field_errors(exc: pydantic.ValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "__root__"
        errors.setdefault(field, []).append(error["msg"])
    return errors


def _normalize(data: Mapping[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    """Keep known fields only, treating empty strings as ``None``."""
    cleaned = {}
    for field in fields:
        if field not in data:
            continue
        value = data[field]
        if isinstance(value, str) and value.strip() == "":
            value = None
        cleaned[field] = value
    return cleaned


def validate_photo(photo: Any, max_kb: int = PHOTO_MAX_KB) -> list[str]:
    """Return the error messages for an uploaded photo (empty when valid)."""
    if not isinstance(photo, PhotoUpload):
        return ["The photo must be an image."]
    messages = []
    kind = photo.sniff()
    if kind is None or (photo.extension and kind != photo.extension):
        messages.append("The photo must be an image.")
    if photo.extension is None:
        messages.append("The photo must be a file of type: jpeg, jpg, png, gif.")
    if len(photo.content) > max_kb * 1024:
        messages.append(f"The photo must not be greater than {max_kb} kilobytes.")
    return messages


def validate_contact(
    data: Mapping[str, Any],
    photo: Any = None,
    partial: bool = False,
    max_photo_kb: int = PHOTO_MAX_KB,
) -> ContactFields:
    """
    Validate contact input for creation or (with ``partial``) update.

    Args:
        data (Mapping): Raw fields (``name``, ``phone``, ``email``).
        photo: Uploaded photo, or ``None`` when absent.
        partial (bool): Validate only the fields present in ``data``.
        max_photo_kb (int): Photo size limit in kilobytes.

    Raises:
        ValidationError: If any field is invalid.

    Returns:
        ContactFields: Validated values and photo.
    """
    cleaned = _normalize(data, ("name", "phone", "email"))
    model = schemas.ContactUpdate if partial else schemas.ContactCreate

    errors: dict[str, list[str]] = {}
    values: dict[str, Any] = {}
    try:
        parsed = model(**cleaned)
        values = parsed.model_dump(exclude_unset=partial)
    except pydantic.ValidationError as exc:
        errors.update(_field_errors(exc))

    if photo is not None:
        photo_errors = validate_photo(photo, max_photo_kb)
        if photo_errors:
            errors["photo"] = photo_errors

    if errors:
        raise ValidationError(errors)
    return ContactFields(values=values, photo=photo)


def validate_registration(data: Mapping[str, Any]) -> schemas.UserCreate:
    """Validate a registration payload, including password confirmation."""
    cleaned = _normalize(
        data, ("name", "email", "password", "password_confirmation")
    )
    errors: dict[str, list[str]] = {}
    user_in = None
    try:
        user_in = schemas.UserCreate(**cleaned)
    except pydantic.ValidationError as exc:
        errors.update(_field_errors(exc))

    password = cleaned.get("password")
    if password is not None and cleaned.get("password_confirmation") != password:
        errors.setdefault("password", []).append(
            "The password field confirmation does not match."
        )

    if errors:
        raise ValidationError(errors)
    return user_in


def validate_login(data: Mapping[str, Any]) -> schemas.LoginRequest:
    """Validate login credentials format (not their correctness)."""
    try:
        return schemas.LoginRequest(**_normalize(data, ("email", "password")))
    except pydantic.ValidationError as exc:
        raise ValidationError(_field_errors(exc))
