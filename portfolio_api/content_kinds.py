"""content_kinds.py — The closed set of content kinds (experience / projects / education).

Each ``ContentKind`` bundles everything that varies by section: its create
schema, the public field allowlist, the index-entry projection and the merge
applied by edits. Callers resolve a kind once with ``get_kind(section)`` and
never branch on the section name themselves.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from . import schemas as s
from .config import CONTENT_SECTIONS, SCHEMA_VERSION, logger
from .errors import ValidationError

__all__ = [
    "CONTENT_KINDS",
    "ContentKind",
    "INDEX_ENTRY_FIELDS",
    "RENAMED_TO_FIELD",
    "get_kind",
    "renamed_to",
]

INDEX_ENTRY_FIELDS = ("title", "summary", "cover", "tags", "year", "slug")
MAX_INDEX_TAGS = 10

# Set on the record left behind at the old key by a slug rename.
RENAMED_TO_FIELD = "renamedTo"

EMPLOYMENT_TYPES = ("full-time", "part-time", "internship", "freelance", "contract")

_MEDIA_ITEM = {
    "type": s.enum(("image", "video")),
    "src": s.text(255, min_len=1, empty_message="Media source is required"),
    "alt": s.text(255, required=False),
    "caption": s.text(500, required=False),
}

_URLS = {
    "github": s.url(),
    "live": s.url(),
    "demo": s.url(),
    "linkedin": s.url(),
    "other": s.url(),
}

_DEPLOYMENT = {
    "platform": s.text(200, required=False),
    "storage": s.text(200, required=False),
    "ci_cd": s.text(200, required=False),
    "testing": s.text(200, required=False),
    "performance": s.text(200, required=False),
}


def _base_schema(max_media: int) -> Dict[str, s.Rule]:
    return {
        "slug": s.slug(),
        "title": s.text(200, min_len=1, empty_message="Title is required"),
        "summary": s.text(1000, min_len=1, empty_message="Summary is required"),
        "description": s.text(5000, required=False),
        "tech": s.string_list(20, 50),
        "start_date": s.date_value(),
        "end_date": s.date_value(),
        "media": s.nested_list(_MEDIA_ITEM, max_media, required=False),
        "urls": s.nested(_URLS),
    }


_BASE_PUBLIC_FIELDS = (
    "title",
    "summary",
    "description",
    "tech",
    "start_date",
    "end_date",
    "media",
    "urls",
)
_META_PUBLIC_FIELDS = ("createdAt", "updatedAt")


def _year_of(start_date: Any) -> int:
    if isinstance(start_date, str) and len(start_date) >= 4 and start_date[:4].isdigit():
        return int(start_date[:4])
    return dt.datetime.now(dt.timezone.utc).year


@dataclass(frozen=True)
class ContentKind:
    section: str
    schema: Dict[str, s.Rule]
    public_fields: Tuple[str, ...]

    # -- validation --------------------------------------------------------

    def validate_create(self, payload: Any) -> Dict[str, Any]:
        cleaned, errors = s.validate_payload(self.schema, payload)
        if errors:
            raise ValidationError("Validation Error", errors)
        return cleaned

    def validate_edit(self, payload: Any) -> Dict[str, Any]:
        cleaned, errors = s.validate_payload(self.schema, payload, partial=True)
        if errors:
            raise ValidationError("Validation Error", errors)
        return cleaned

    # -- record shaping ----------------------------------------------------

    def build_record(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Content fields of a new record: the parsed payload minus its slug."""
        record = {k: v for k, v in payload.items() if k != "slug"}
        record.setdefault("media", [])
        return record

    def project_index_entry(self, record: Dict[str, Any], slug: str) -> Dict[str, Any]:
        media = record.get("media") or []
        cover = media[0].get("src", "") if media and isinstance(media[0], dict) else ""
        return {
            "title": record.get("title", ""),
            "summary": record.get("summary", ""),
            "cover": cover,
            "tags": list(record.get("tech") or [])[:MAX_INDEX_TAGS],
            "year": _year_of(record.get("start_date")),
            "slug": slug,
        }

    def public_view(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return {field: record[field] for field in self.public_fields if field in record}

    def upgrade(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Bring a stored record to the current schema version."""
        version = record.get("schemaVersion")
        if version is None:
            # Records written before the version tag existed are v1.
            return {**record, "schemaVersion": 1}
        if int(version) > SCHEMA_VERSION:
            logger.warning(
                "record schemaVersion %s is newer than supported %s (section=%s)",
                version, SCHEMA_VERSION, self.section,
            )
        return record

    def merge(self, existing: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge edit fields over a stored record."""
        merged = dict(self.upgrade(existing))
        for key, value in updates.items():
            if key == "slug":
                continue
            merged[key] = value
        return merged

    def content_fields(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Schema-governed fields of a stored record (for re-validation)."""
        return {k: v for k, v in record.items() if k in self.schema}


def _experience() -> ContentKind:
    schema = _base_schema(max_media=50)
    schema.update({
        "company": s.text(200, min_len=1),
        "role": s.text(200, min_len=1),
        "employment_type": s.enum(EMPLOYMENT_TYPES),
        "location": s.text(200, min_len=1),
        "team": s.text(200, required=False),
        "responsibilities": s.string_list(20, 500, min_items=1),
        "achievements": s.string_list(20, 500),
    })
    return ContentKind(
        section="experience",
        schema=schema,
        public_fields=_BASE_PUBLIC_FIELDS + ("company", "role", "location") + _META_PUBLIC_FIELDS,
    )


def _projects() -> ContentKind:
    schema = _base_schema(max_media=50)
    schema.update({
        "role": s.text(200, required=False),
        "features": s.string_list(20, 500, min_items=1),
        "deployment": s.nested(_DEPLOYMENT),
        "achievements": s.string_list(20, 500),
    })
    return ContentKind(
        section="projects",
        schema=schema,
        public_fields=_BASE_PUBLIC_FIELDS + ("role", "features", "deployment") + _META_PUBLIC_FIELDS,
    )


def _education() -> ContentKind:
    schema = _base_schema(max_media=20)
    schema.update({
        "institution": s.text(200, min_len=1),
        "degree": s.text(200, min_len=1),
        "location": s.text(200, min_len=1),
        "coursework": s.string_list(50, 500, required=False),
        "achievements": s.string_list(20, 500, required=False),
    })
    return ContentKind(
        section="education",
        schema=schema,
        public_fields=_BASE_PUBLIC_FIELDS + ("institution", "degree", "location") + _META_PUBLIC_FIELDS,
    )


CONTENT_KINDS: Dict[str, ContentKind] = {
    kind.section: kind for kind in (_experience(), _projects(), _education())
}


def get_kind(section: str) -> ContentKind:
    kind = CONTENT_KINDS.get(section)
    if kind is None:
        raise ValidationError(
            f"Invalid section. Must be one of: {', '.join(CONTENT_SECTIONS)}",
            [{"field": "section", "message": f"Must be one of: {', '.join(CONTENT_SECTIONS)}"}],
        )
    return kind


def renamed_to(record: Any) -> Optional[str]:
    """Slug a record was renamed to, or None for a live record."""
    if isinstance(record, dict):
        target = record.get(RENAMED_TO_FIELD)
        if isinstance(target, str) and target:
            return target
    return None
