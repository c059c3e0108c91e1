"""uploads.py — Presigned S3 PUT URLs for media uploads (admin only)."""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List

from . import config
from .auth import user_info
from .aws_clients import Services
from .content_keys import media_key
from .errors import ValidationError
from .http_utils import _json_body, _origin, _success
from .schemas import (
    MAX_IMAGE_SIZE,
    MAX_VIDEO_SIZE,
    UPLOAD_ALLOWED_EXTENSIONS,
    UPLOAD_SCHEMA_BASE,
    validate_payload,
)
from .serialization import _emit_structured_log

__all__ = ["file_type", "handle_upload_url", "upload_errors"]


def file_type(content_type: str) -> str:
    if content_type.startswith("image/"):
        return "image"
    if content_type.startswith("video/"):
        return "video"
    return "unknown"


def upload_errors(filename: str, content_type: str, file_size: float) -> List[Dict[str, str]]:
    """Checks that depend on more than one field of an upload request."""
    errors: List[Dict[str, str]] = []

    if not filename.lower().endswith(UPLOAD_ALLOWED_EXTENSIONS):
        errors.append({
            "field": "filename",
            "message": f"Invalid file extension. Allowed: {', '.join(UPLOAD_ALLOWED_EXTENSIONS)}",
        })

    kind = file_type(content_type)
    limit = MAX_VIDEO_SIZE if kind == "video" else MAX_IMAGE_SIZE
    if file_size > limit:
        errors.append({
            "field": "fileSize",
            "message": f"File size exceeds {kind} limit of {limit // (1024 * 1024)}MB",
        })

    if ".." in filename or "/" in filename or "\\" in filename:
        errors.append({"field": "filename", "message": "Filename cannot contain path traversal characters"})
    return errors


def handle_upload_url(event: Dict[str, Any], services: Services, claims: Dict[str, Any]) -> Dict[str, Any]:
    try:
        body = _json_body(event)
    except ValueError as exc:
        raise ValidationError(str(exc), [{"field": "body", "message": str(exc)}]) from exc

    payload, errors = validate_payload(UPLOAD_SCHEMA_BASE, body)
    section = body.get("section") if isinstance(body, dict) else None
    if section not in config.UPLOAD_SECTIONS:
        errors.append({"field": "section", "message": f"Must be one of: {', '.join(config.UPLOAD_SECTIONS)}"})

    filename = payload.get("filename")
    content_type = payload.get("contentType")
    file_size = payload.get("fileSize")
    if isinstance(filename, str) and isinstance(content_type, str) and isinstance(file_size, (int, float)):
        errors.extend(upload_errors(filename, content_type, file_size))
    elif isinstance(filename, str) and (".." in filename or "/" in filename or "\\" in filename):
        errors.append({"field": "filename", "message": "Filename cannot contain path traversal characters"})
    if errors:
        raise ValidationError("Validation Error", errors)

    slug = payload["slug"]
    key = media_key(section, slug, filename)
    url = services.store.presign_put(key, content_type, config.PRESIGNED_URL_TTL_SECONDS)
    expires_at = dt.datetime.now(dt.timezone.utc) + dt.timedelta(seconds=config.PRESIGNED_URL_TTL_SECONDS)

    user = user_info(claims)
    _emit_structured_log(event="upload_url_issued", status_code=200, key=key, user=user["username"])
    return _success(
        {
            "url": url,
            "key": key,
            "expiresAt": expires_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "message": "Pre-signed URL generated successfully",
            "requestedBy": user["username"],
            "fileInfo": {
                "filename": filename,
                "contentType": content_type,
                "fileSize": file_size,
                "section": section,
                "slug": slug,
                "type": file_type(content_type),
            },
        },
        200,
        _origin(event),
    )
