"""
Turn raw words into entries using the reference dictionary.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .dictionary import DictionaryResolver, shard_letter
from .schemas import Entry

SENTINEL_NOT_FOUND = "未找到翻译"

logger = logging.getLogger(__name__)


def normalize_word(word: str) -> str:
    return (word or "").strip().lower()


def _translations(record: dict[str, Any]) -> list[str]:
    trans = record.get("trans")
    if isinstance(trans, str):
        trans = [trans]
    if not isinstance(trans, list):
        return []
    return [str(t) for t in trans if t is not None and str(t).strip()]


def _phone(record: dict[str, Any], key: str) -> str:
    value = record.get(key)
    return str(value) if value is not None else ""


def build_entry(name: str, record: dict[str, Any] | None) -> Entry:
    if record is None:
        return Entry(name=name, trans=[SENTINEL_NOT_FOUND])
    return Entry(
        name=name,
        trans=_translations(record) or [SENTINEL_NOT_FOUND],
        usphone=_phone(record, "usphone"),
        ukphone=_phone(record, "ukphone"),
    )


def is_not_found(entry: Entry) -> bool:
    return entry.trans == [SENTINEL_NOT_FOUND]


async def enrich(words: Iterable[str], resolver: DictionaryResolver) -> list[Entry]:
    """
    One entry per input word, in input order. Duplicates are kept; the merge
    step collapses them. Misses get the sentinel translation.
    """
    names = [normalize_word(w) for w in words]
    names = [n for n in names if n]

    # Shards are independent, so fetch them all up front.
    await resolver.prefetch(shard_letter(n) for n in names)

    entries: list[Entry] = []
    for name in names:
        shard = await resolver.resolve_shard(shard_letter(name))
        entries.append(build_entry(name, shard.lookup(name)))

    missing = sum(1 for e in entries if is_not_found(e))
    logger.info(
        "enrichment_complete words=%s not_found=%s degraded_letters=%s",
        len(entries),
        missing,
        ",".join(resolver.degraded_letters) or "-",
    )
    return entries
