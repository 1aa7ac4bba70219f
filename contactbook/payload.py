"""Request body parsing shared by the auth and contact routes.

JSON, urlencoded and multipart bodies are all accepted and flattened into
``(fields, files)``. Validation is left to :mod:`contactbook.validation`.
"""

import json
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from .errors import ValidationError
from .validation import PhotoUpload


async def read_payload(request: Request) -> tuple[dict[str, Any], dict[str, UploadFile]]:
    """
    Read the request body into plain fields and uploaded files.

    Args:
        request (Request): Incoming request.

    Raises:
        ValidationError: If a JSON body cannot be decoded or is not an object.

    Returns:
        tuple[dict, dict]: Field values and uploaded files, keyed by name.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        raw = await request.body()
        if not raw:
            return {}, {}
        try:
            body = json.loads(raw)
        except ValueError:
            raise ValidationError({"body": ["The request body is not valid JSON."]})
        if not isinstance(body, dict):
            raise ValidationError({"body": ["The request body must be a JSON object."]})
        return body, {}

    if content_type.startswith(
        ("multipart/form-data", "application/x-www-form-urlencoded")
    ):
        form = await request.form()
        fields: dict[str, Any] = {}
        files: dict[str, UploadFile] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                files[key] = value
            else:
                fields[key] = value
        return fields, files

    return {}, {}


async def read_photo(
    fields: dict[str, Any], files: dict[str, UploadFile], name: str = "photo"
) -> Any:
    """
    Extract the photo from a parsed body.

    Returns a :class:`PhotoUpload` for a real upload, ``None`` when the
    field is absent or empty, and the raw value otherwise so validation can
    report it as "not an image".
    """
    upload = files.get(name)
    if upload is not None:
        content = await upload.read()
        if not content and not upload.filename:
            return None
        return PhotoUpload(
            content=content,
            content_type=upload.content_type,
            filename=upload.filename,
        )
    value = fields.get(name)
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    return value
