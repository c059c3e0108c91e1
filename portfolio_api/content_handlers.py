"""content_handlers.py — Create, edit, list and get handlers for content records.

Each content write is one logical upsert in two phases:

    1. write the record blob  content/{section}/{slug}/desc.json
    2. update the section index  content/{section}/index.json

The phases are independent S3 writes. When phase 1 succeeds and phase 2
fails the handler raises ``PartialWriteError`` naming both keys; the index is
then repaired with ``portfolio-reindex --section <section> --write``.

A slug rename writes the record under the new slug and marks the old
record with ``renamedTo``. Marked records read as missing and are left out
of rebuilt indexes.

Handlers are called by ``lambda_function`` after authentication and receive
the verified claims (None on public routes).
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .aws_clients import Services
from .auth import user_info
from .config import SCHEMA_VERSION, SLUG_MAX_LENGTH, SLUG_PATTERN, logger
from .content_keys import desc_key, record_prefix, section_index_key
from .content_kinds import INDEX_ENTRY_FIELDS, RENAMED_TO_FIELD, ContentKind, get_kind, renamed_to
from .errors import (
    ConflictError,
    NotFoundError,
    PartialWriteError,
    SectionIndexMissing,
    ValidationError,
)
from .http_utils import _json_body, _origin, _success
from .section_index import SectionIndexMaintainer, sort_entries
from .serialization import _emit_structured_log, _now_iso
from .storage import ObjectStore

__all__ = [
    "handle_create",
    "handle_edit",
    "handle_get",
    "handle_list",
]

_SLUG_RE = re.compile(SLUG_PATTERN)

# Failures of the index phase that leave the record written.
_INDEX_WRITE_ERRORS = (BotoCoreError, ClientError, ValueError, SectionIndexMissing)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def _require_slug_param(slug: Optional[str]) -> str:
    if not slug:
        raise ValidationError("Validation Error", [{"field": "slug", "message": "Slug is required"}])
    if len(slug) > SLUG_MAX_LENGTH or not _SLUG_RE.fullmatch(slug):
        raise ValidationError(
            "Validation Error",
            [{"field": "slug", "message": "Slug must contain only lowercase letters, numbers, and hyphens"}],
        )
    return slug


def _resolve_kind(section: Optional[str]) -> ContentKind:
    if not section:
        raise ValidationError("Validation Error", [{"field": "section", "message": "Section is required"}])
    return get_kind(section)


def _body(event: Dict[str, Any]) -> Any:
    try:
        return _json_body(event)
    except ValueError as exc:
        raise ValidationError(str(exc), [{"field": "body", "message": str(exc)}]) from exc


def _slug_taken(store: ObjectStore, section: str, slug: str) -> bool:
    """True when a live record sits at the slug. A renamed-away record does not count."""
    key = desc_key(section, slug)
    if not store.exists(key):
        return False
    try:
        return renamed_to(store.get_json(key)) is None
    except ValueError:
        return True


def _partial_write(section: str, slug: str, exc: Exception) -> PartialWriteError:
    logger.error(
        "section index update failed after record write: section=%s slug=%s error=%s",
        section, slug, exc,
    )
    return PartialWriteError(
        "Content saved but the section index was not updated",
        details={
            "recordKey": desc_key(section, slug),
            "indexKey": section_index_key(section),
            "recovery": f"portfolio-reindex --section {section} --write",
        },
    )


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def handle_create(
    event: Dict[str, Any],
    services: Services,
    claims: Dict[str, Any],
    section: Optional[str],
    slug: Optional[str],
) -> Dict[str, Any]:
    slug = _require_slug_param(slug)
    kind = _resolve_kind(section)
    section = kind.section

    payload = kind.validate_create(_body(event))
    if payload["slug"] != slug:
        raise ValidationError(
            "Validation Error",
            [{"field": "slug", "message": f"Slug in body must match the path slug '{slug}'"}],
        )

    store = services.store
    key = desc_key(section, slug)
    if _slug_taken(store, section, slug):
        raise ConflictError(f"Content '{slug}' already exists in section '{section}'")

    now = _now_iso()
    record = kind.build_record(payload)
    record["indexEntry"] = kind.project_index_entry(record, slug)
    record["createdAt"] = now
    record["updatedAt"] = now
    record["schemaVersion"] = SCHEMA_VERSION

    store.ensure_record_directory(section, slug)
    store.put_json(key, record)
    logger.info("content record written: section=%s slug=%s", section, slug)

    try:
        SectionIndexMaintainer(store).add_entry(section, record["indexEntry"])
    except _INDEX_WRITE_ERRORS as exc:
        raise _partial_write(section, slug, exc) from exc

    user = user_info(claims)
    _emit_structured_log(event="content_created", status_code=201, section=section, slug=slug, user=user["username"])
    return _success(
        {
            "slug": slug,
            "s3Prefix": record_prefix(section, slug),
            "message": "Content created successfully",
            "createdBy": user["username"],
            "contentType": section,
        },
        201,
        _origin(event),
    )


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------


def handle_edit(
    event: Dict[str, Any],
    services: Services,
    claims: Dict[str, Any],
    section: Optional[str],
    slug: Optional[str],
) -> Dict[str, Any]:
    slug = _require_slug_param(slug)
    kind = _resolve_kind(section)
    section = kind.section

    updates = kind.validate_edit(_body(event))

    store = services.store
    key = desc_key(section, slug)
    if not store.exists(key):
        raise NotFoundError(f"Content '{slug}' not found in section '{section}'")
    try:
        existing = store.get_json(key)
    except ValueError:
        logger.warning("stored record is not valid JSON: %s", key)
        existing = None
    if not isinstance(existing, dict):
        raise NotFoundError(f"Content description not found for '{slug}'")
    target = renamed_to(existing)
    if target:
        raise NotFoundError(f"Content '{slug}' was renamed to '{target}'")

    new_slug = updates.get("slug") or slug
    merged = kind.merge(existing, updates)
    # The merged record must still satisfy the create rules.
    kind.validate_create({**kind.content_fields(merged), "slug": new_slug})
    merged["indexEntry"] = kind.project_index_entry(merged, new_slug)

    if new_slug != slug:
        new_key = desc_key(section, new_slug)
        if _slug_taken(store, section, new_slug):
            raise ConflictError(f"Content with slug '{new_slug}' already exists")
        store.ensure_record_directory(section, new_slug)
        store.copy(key, new_key)
        for item in merged.get("media") or []:
            # TODO: copy media objects to the renamed prefix; they stay under the old slug for now.
            logger.warning(
                "media file not moved on slug rename: %s%s -> %s",
                record_prefix(section, slug), item.get("src"), record_prefix(section, new_slug),
            )
        logger.info("content slug renamed: section=%s %s -> %s", section, slug, new_slug)

    updated_at = _now_iso()
    merged["updatedAt"] = updated_at
    merged["schemaVersion"] = SCHEMA_VERSION
    store.put_json(desc_key(section, new_slug), merged)
    logger.info("content record updated: section=%s slug=%s", section, new_slug)
    if new_slug != slug:
        store.put_json(key, {**existing, RENAMED_TO_FIELD: new_slug, "updatedAt": updated_at})

    try:
        SectionIndexMaintainer(store).replace_entry(section, merged["indexEntry"], match_slug=slug)
    except _INDEX_WRITE_ERRORS as exc:
        raise _partial_write(section, new_slug, exc) from exc

    user = user_info(claims)
    _emit_structured_log(
        event="content_updated", status_code=200,
        section=section, slug=new_slug, previous_slug=slug if new_slug != slug else None,
        user=user["username"],
    )
    return _success(
        {
            "updated": True,
            "slug": new_slug,
            "message": "Content updated successfully",
            "updatedBy": user["username"],
            "updatedAt": updated_at,
        },
        200,
        _origin(event),
    )


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


def handle_list(
    event: Dict[str, Any],
    services: Services,
    claims: Optional[Dict[str, Any]],
    section: Optional[str],
) -> Dict[str, Any]:
    kind = _resolve_kind(section)
    index = SectionIndexMaintainer(services.store).read(kind.section)
    if index is None:
        entries, last_updated = [], None
    else:
        entries = [e for e in index["entries"] if isinstance(e, dict)]
        last_updated = index.get("lastUpdated")

    if claims is None:
        entries = [{f: e[f] for f in INDEX_ENTRY_FIELDS if f in e} for e in entries]
    entries = sort_entries(entries)

    return _success(
        {
            "section": kind.section,
            "entries": entries,
            "total": len(entries),
            "lastUpdated": last_updated,
        },
        200,
        _origin(event),
    )


def handle_get(
    event: Dict[str, Any],
    services: Services,
    claims: Optional[Dict[str, Any]],
    section: Optional[str],
    slug: Optional[str],
) -> Dict[str, Any]:
    slug = _require_slug_param(slug)
    kind = _resolve_kind(section)

    record = services.store.get_json(desc_key(kind.section, slug))
    if not isinstance(record, dict) or renamed_to(record):
        raise NotFoundError(f"Content '{slug}' not found in section '{kind.section}'")

    record = kind.upgrade(record)
    content = record if claims is not None else kind.public_view(record)
    return _success({"section": kind.section, "slug": slug, "content": content}, 200, _origin(event))
