"""content_keys.py — Canonical S3 keys for content records, indexes and media.

Inputs are already-validated section/slug strings; nothing here touches S3.
"""
from __future__ import annotations

__all__ = [
    "CONTENT_ROOT",
    "desc_key",
    "media_key",
    "record_prefix",
    "section_index_key",
    "section_prefix",
]

CONTENT_ROOT = "content"


def section_prefix(section: str) -> str:
    return f"{CONTENT_ROOT}/{section}/"


def record_prefix(section: str, slug: str) -> str:
    return f"{CONTENT_ROOT}/{section}/{slug}/"


def desc_key(section: str, slug: str) -> str:
    return f"{CONTENT_ROOT}/{section}/{slug}/desc.json"


def section_index_key(section: str) -> str:
    return f"{CONTENT_ROOT}/{section}/index.json"


def media_key(section: str, slug: str, filename: str) -> str:
    return f"{CONTENT_ROOT}/{section}/{slug}/{filename}"
