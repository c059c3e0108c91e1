"""section_index.py — Maintenance of content/{section}/index.json.

The index is a denormalized list of index entries, one per content record.
Every mutation is a read-modify-write of the whole blob with no
compare-and-swap: two concurrent writers can lose one update. A lost or
stale entry is repaired by ``rebuild``, which re-derives the index from the
records themselves.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .content_keys import desc_key, section_index_key, section_prefix
from .content_kinds import get_kind, renamed_to
from .config import logger
from .errors import SectionIndexMissing
from .serialization import _now_iso
from .storage import INDEX_CACHE_CONTROL, ObjectStore

__all__ = [
    "SectionIndexMaintainer",
    "sort_entries",
]


def _sort_key(entry: Dict[str, Any]):
    year = entry.get("year")
    year = year if isinstance(year, (int, float)) and not isinstance(year, bool) else 0
    return (-year, str(entry.get("title") or "").casefold())


def sort_entries(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Newest year first, then title A→Z."""
    return sorted(entries, key=_sort_key)


class SectionIndexMaintainer:
    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def read(self, section: str) -> Optional[Dict[str, Any]]:
        index = self.store.get_json(section_index_key(section))
        if index is None:
            return None
        if not isinstance(index, dict) or not isinstance(index.get("entries"), list):
            raise ValueError(f"Malformed section index for '{section}'")
        return index

    def _write(self, section: str, index: Dict[str, Any]) -> Dict[str, Any]:
        index["lastUpdated"] = _now_iso()
        self.store.put_json(section_index_key(section), index, cache_control=INDEX_CACHE_CONTROL)
        return index

    def add_entry(self, section: str, entry: Dict[str, Any]) -> Dict[str, Any]:
        index = self.read(section) or {"entries": []}
        index["entries"] = list(index["entries"]) + [entry]
        logger.info("section index add: section=%s slug=%s", section, entry.get("slug"))
        return self._write(section, index)

    def replace_entry(
        self,
        section: str,
        entry: Dict[str, Any],
        match_slug: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Overwrite the entry matching ``match_slug`` (or ``entry['slug']``) in place.

        Appends when nothing matches. Raises ``SectionIndexMissing`` when the
        section has no index at all.
        """
        index = self.read(section)
        if index is None:
            raise SectionIndexMissing(section, section_index_key(section))

        target = match_slug or entry.get("slug")
        entries = list(index["entries"])
        for pos, existing in enumerate(entries):
            if isinstance(existing, dict) and existing.get("slug") == target:
                entries[pos] = entry
                logger.info("section index replace: section=%s slug=%s position=%d", section, target, pos)
                break
        else:
            entries.append(entry)
            logger.warning(
                "section index replace found no entry for slug=%s in section=%s; appended",
                target, section,
            )
        index["entries"] = entries
        return self._write(section, index)

    def rebuild(
        self,
        section: str,
        *,
        write: bool = True,
        renamed: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Re-derive the index from every live ``desc.json`` under the section.

        Records marked ``renamedTo`` by a slug rename are skipped; their slugs
        are appended to ``renamed`` when a list is given.
        """
        kind = get_kind(section)
        prefix = section_prefix(section)
        entries: List[Dict[str, Any]] = []
        for key in self.store.iter_keys(prefix):
            rest = key[len(prefix):]
            parts = rest.split("/")
            if len(parts) != 2 or parts[1] != "desc.json" or not parts[0]:
                continue
            slug = parts[0]
            record = self.store.get_json(desc_key(section, slug))
            if not isinstance(record, dict):
                logger.warning("rebuild skipped unreadable record: %s", key)
                continue
            if renamed_to(record):
                if renamed is not None:
                    renamed.append(slug)
                continue
            entries.append(kind.project_index_entry(record, slug))

        index = {"entries": sort_entries(entries)}
        if write:
            index = self._write(section, index)
        logger.info("section index rebuilt: section=%s entries=%d write=%s", section, len(entries), write)
        return index
