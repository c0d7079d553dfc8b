"""
Pure merge logic for the persisted collection.

Two dedup policies are supported:
- "name"  (default): one entry per case-insensitive name, last one wins
- "exact": only byte-identical serialized entries collapse

Both end with the collection sorted by locale collation of `name`.
"""

from __future__ import annotations

import enum
import json
import locale
import logging
from typing import Iterable

from .schemas import Entry

logger = logging.getLogger(__name__)


class DedupMode(str, enum.Enum):
    NAME = "name"
    EXACT = "exact"

    @classmethod
    def parse(cls, raw: str | None) -> "DedupMode":
        value = (raw or "").strip().lower()
        try:
            return cls(value or cls.NAME.value)
        except ValueError:
            logger.warning("unknown_dedup_mode value=%r fallback=name", raw)
            return cls.NAME


def serialize_entry(entry: Entry) -> str:
    return json.dumps(entry.model_dump(), ensure_ascii=False)


def name_key(entry: Entry) -> str:
    return entry.name.strip().casefold()


def _dedup_by_name(entries: Iterable[Entry]) -> list[Entry]:
    latest: dict[str, Entry] = {}
    for entry in entries:
        latest[name_key(entry)] = entry
    return list(latest.values())


def _dedup_exact(entries: Iterable[Entry]) -> list[Entry]:
    seen: set[str] = set()
    out: list[Entry] = []
    for entry in entries:
        key = serialize_entry(entry)
        if key in seen:
            continue
        seen.add(key)
        out.append(entry)
    return out


def configure_collation(name: str = "") -> str:
    """
    Set LC_COLLATE for name sorting. An empty name means "use the process
    environment". Returns the locale actually in effect.
    """
    try:
        return locale.setlocale(locale.LC_COLLATE, name)
    except locale.Error:
        current = locale.setlocale(locale.LC_COLLATE)
        logger.warning("collation_locale_unavailable requested=%r using=%r", name, current)
        return current


def collation_key(entry: Entry) -> tuple[str, str]:
    return locale.strxfrm(entry.name), entry.name


def sort_entries(entries: Iterable[Entry]) -> list[Entry]:
    return sorted(entries, key=collation_key)


def merge_entries(
    existing: Iterable[Entry],
    new: Iterable[Entry],
    *,
    mode: DedupMode = DedupMode.NAME,
) -> list[Entry]:
    combined = [*existing, *new]
    if mode is DedupMode.EXACT:
        deduped = _dedup_exact(combined)
    else:
        deduped = _dedup_by_name(combined)
    return sort_entries(deduped)
