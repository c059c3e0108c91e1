"""schemas.py — Declarative payload validation.

A schema is a ``{field_name: Rule}`` mapping. ``validate_payload`` walks it and
returns ``(cleaned, errors)`` where ``errors`` is a list of
``{"field": "media.0.src", "message": "..."}`` pairs, one per violated
constraint. Unknown fields are dropped from ``cleaned``.

Content-kind schemas live in ``content_kinds``; the contact and upload
schemas are defined here.
"""
from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from .config import SLUG_MAX_LENGTH, SLUG_PATTERN

__all__ = [
    "CONTACT_SCHEMA",
    "Rule",
    "UPLOAD_ALLOWED_EXTENSIONS",
    "UPLOAD_ALLOWED_MIME_TYPES",
    "UPLOAD_SCHEMA_BASE",
    "date_value",
    "email",
    "enum",
    "nested",
    "nested_list",
    "number",
    "slug",
    "string_list",
    "text",
    "url",
    "validate_payload",
]

Errors = List[Dict[str, str]]

_SLUG_RE = re.compile(SLUG_PATTERN)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _path(parent: str, name: Any) -> str:
    return f"{parent}.{name}" if parent else str(name)


class Rule:
    """Base rule. Subclasses implement ``_check``."""

    def __init__(self, required: bool = True) -> None:
        self.required = required

    def check(self, value: Any, path: str, errors: Errors) -> Any:
        return self._check(value, path, errors)

    def _check(self, value: Any, path: str, errors: Errors) -> Any:
        raise NotImplementedError


class _Text(Rule):
    def __init__(
        self,
        max_len: int,
        min_len: int = 0,
        required: bool = True,
        pattern: Optional[re.Pattern] = None,
        pattern_message: str = "Invalid format",
        empty_message: Optional[str] = None,
    ) -> None:
        super().__init__(required)
        self.max_len = max_len
        self.min_len = min_len
        self.pattern = pattern
        self.pattern_message = pattern_message
        self.empty_message = empty_message

    def _check(self, value, path, errors):
        if not isinstance(value, str):
            errors.append({"field": path, "message": "Expected a string"})
            return value
        if len(value) < self.min_len:
            if not value and self.empty_message:
                message = self.empty_message
            else:
                message = f"Must be at least {self.min_len} characters"
            errors.append({"field": path, "message": message})
        if len(value) > self.max_len:
            errors.append({"field": path, "message": f"Must be at most {self.max_len} characters"})
        if value and self.pattern is not None and not self.pattern.fullmatch(value):
            errors.append({"field": path, "message": self.pattern_message})
        return value


class _Enum(Rule):
    def __init__(self, choices: Sequence[str], required: bool = True) -> None:
        super().__init__(required)
        self.choices = tuple(choices)

    def _check(self, value, path, errors):
        if value not in self.choices:
            errors.append({"field": path, "message": f"Must be one of: {', '.join(self.choices)}"})
        return value


class _Date(Rule):
    def _check(self, value, path, errors):
        if value == "present":
            return value
        if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
            errors.append({"field": path, "message": "Must be a date (YYYY-MM-DD) or 'present'"})
            return value
        try:
            dt.date.fromisoformat(value)
        except ValueError:
            errors.append({"field": path, "message": "Must be a valid calendar date"})
        return value


class _Url(Rule):
    def __init__(self, max_len: int = 500, required: bool = False) -> None:
        super().__init__(required)
        self.max_len = max_len

    def _check(self, value, path, errors):
        if not isinstance(value, str):
            errors.append({"field": path, "message": "Expected a string"})
            return value
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append({"field": path, "message": "Invalid url"})
        if len(value) > self.max_len:
            errors.append({"field": path, "message": f"Must be at most {self.max_len} characters"})
        return value


class _Email(Rule):
    def __init__(self, max_len: int = 255, required: bool = True) -> None:
        super().__init__(required)
        self.max_len = max_len

    def _check(self, value, path, errors):
        if not isinstance(value, str):
            errors.append({"field": path, "message": "Expected a string"})
            return value
        if not _EMAIL_RE.fullmatch(value):
            errors.append({"field": path, "message": "Invalid email address"})
        if len(value) > self.max_len:
            errors.append({"field": path, "message": "Email is too long"})
        return value


class _Number(Rule):
    def __init__(self, maximum: Optional[float] = None, positive: bool = False, required: bool = True) -> None:
        super().__init__(required)
        self.maximum = maximum
        self.positive = positive

    def _check(self, value, path, errors):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors.append({"field": path, "message": "Expected a number"})
            return value
        if self.positive and value <= 0:
            errors.append({"field": path, "message": "Must be positive"})
        if self.maximum is not None and value > self.maximum:
            errors.append({"field": path, "message": f"Must be at most {int(self.maximum)}"})
        return value


class _StringList(Rule):
    def __init__(self, max_items: int, item_max: int, min_items: int = 0, required: bool = True) -> None:
        super().__init__(required)
        self.max_items = max_items
        self.min_items = min_items
        self.item_rule = _Text(item_max)

    def _check(self, value, path, errors):
        if not isinstance(value, list):
            errors.append({"field": path, "message": "Expected an array"})
            return value
        if len(value) < self.min_items:
            errors.append({"field": path, "message": f"Must contain at least {self.min_items} item(s)"})
        if len(value) > self.max_items:
            errors.append({"field": path, "message": f"Must contain at most {self.max_items} items"})
        return [self.item_rule.check(item, _path(path, i), errors) for i, item in enumerate(value)]


class _Nested(Rule):
    def __init__(self, schema: Dict[str, Rule], required: bool = False) -> None:
        super().__init__(required)
        self.schema = schema

    def _check(self, value, path, errors):
        cleaned, nested_errors = validate_payload(self.schema, value, parent=path)
        errors.extend(nested_errors)
        return cleaned


class _NestedList(Rule):
    def __init__(self, schema: Dict[str, Rule], max_items: int, required: bool = True) -> None:
        super().__init__(required)
        self.schema = schema
        self.max_items = max_items

    def _check(self, value, path, errors):
        if not isinstance(value, list):
            errors.append({"field": path, "message": "Expected an array"})
            return value
        if len(value) > self.max_items:
            errors.append({"field": path, "message": f"Must contain at most {self.max_items} items"})
        out = []
        for i, item in enumerate(value):
            cleaned, item_errors = validate_payload(self.schema, item, parent=_path(path, i))
            errors.extend(item_errors)
            out.append(cleaned)
        return out


# Public constructors keep schema tables readable.

def text(max_len: int, min_len: int = 0, required: bool = True, empty_message: Optional[str] = None) -> Rule:
    return _Text(max_len, min_len=min_len, required=required, empty_message=empty_message)


def slug(required: bool = True) -> Rule:
    return _Text(
        SLUG_MAX_LENGTH,
        min_len=1,
        required=required,
        pattern=_SLUG_RE,
        pattern_message="Slug must contain only lowercase letters, numbers, and hyphens",
        empty_message="Slug is required",
    )


def enum(choices: Sequence[str], required: bool = True) -> Rule:
    return _Enum(choices, required=required)


def date_value(required: bool = True) -> Rule:
    return _Date(required=required)


def url(required: bool = False) -> Rule:
    return _Url(required=required)


def email(max_len: int = 255) -> Rule:
    return _Email(max_len)


def number(maximum: Optional[float] = None, positive: bool = False) -> Rule:
    return _Number(maximum=maximum, positive=positive)


def string_list(max_items: int, item_max: int, min_items: int = 0, required: bool = True) -> Rule:
    return _StringList(max_items, item_max, min_items=min_items, required=required)


def nested(schema: Dict[str, Rule], required: bool = False) -> Rule:
    return _Nested(schema, required=required)


def nested_list(schema: Dict[str, Rule], max_items: int, required: bool = True) -> Rule:
    return _NestedList(schema, max_items, required=required)


def validate_payload(
    schema: Dict[str, Rule],
    payload: Any,
    *,
    partial: bool = False,
    parent: str = "",
) -> Tuple[Dict[str, Any], Errors]:
    """Validate ``payload`` against ``schema``.

    With ``partial=True`` every top-level field is optional (edit payloads);
    nested objects keep their own required fields.
    """
    errors: Errors = []
    if not isinstance(payload, dict):
        errors.append({"field": parent or "body", "message": "Expected a JSON object"})
        return {}, errors

    cleaned: Dict[str, Any] = {}
    for name, rule in schema.items():
        path = _path(parent, name)
        if name not in payload or payload[name] is None:
            if rule.required and not partial:
                errors.append({"field": path, "message": "Required"})
            continue
        cleaned[name] = rule.check(payload[name], path, errors)
    return cleaned, errors


# ---------------------------------------------------------------------------
# Contact form
# ---------------------------------------------------------------------------

CONTACT_SCHEMA: Dict[str, Rule] = {
    "name": text(100, min_len=1, empty_message="Name is required"),
    "email": email(255),
    "message": text(2000, min_len=10),
}

# ---------------------------------------------------------------------------
# Upload requests
# ---------------------------------------------------------------------------

UPLOAD_ALLOWED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".avif")
UPLOAD_ALLOWED_VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".avi")
UPLOAD_ALLOWED_EXTENSIONS = UPLOAD_ALLOWED_IMAGE_EXTENSIONS + UPLOAD_ALLOWED_VIDEO_EXTENSIONS
UPLOAD_ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/avif",
    "video/mp4",
    "video/webm",
    "video/quicktime",
    "video/x-msvideo",
)
MAX_IMAGE_SIZE = 10 * 1024 * 1024
MAX_VIDEO_SIZE = 100 * 1024 * 1024

# ``section`` is checked against config.UPLOAD_SECTIONS at request time.
UPLOAD_SCHEMA_BASE: Dict[str, Rule] = {
    "slug": slug(),
    "filename": _Text(
        255,
        min_len=1,
        pattern=re.compile(r"^[a-zA-Z0-9._-]+$"),
        pattern_message="Filename contains invalid characters",
        empty_message="Filename is required",
    ),
    "contentType": enum(UPLOAD_ALLOWED_MIME_TYPES),
    "fileSize": number(maximum=max(MAX_IMAGE_SIZE, MAX_VIDEO_SIZE), positive=True),
}
