"""
Reference dictionary lookups.

The dictionary is split into one JSON file per first letter
(`dictionary_a.json`, `dictionary_b.json`, ...) stored in a GitHub repo.
A shard that cannot be fetched resolves to an empty mapping with a
non-"ok" status; it never raises. Words in that shard simply miss.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from core import github, settings

logger = logging.getLogger(__name__)

SHARD_OK = "ok"
SHARD_MISSING = "missing"
SHARD_FAILED = "failed"


@dataclass(frozen=True)
class Shard:
    letter: str
    entries: dict[str, dict[str, Any]] = field(default_factory=dict)
    status: str = SHARD_OK

    @property
    def degraded(self) -> bool:
        return self.status == SHARD_FAILED

    def lookup(self, word: str) -> dict[str, Any] | None:
        return self.entries.get(word)


def shard_letter(word: str) -> str:
    word = (word or "").strip().lower()
    return word[:1]


def _index_records(payload: Any) -> dict[str, dict[str, Any]]:
    """
    Build a lowercase word -> record mapping.

    Shards are either an array of entry-like records or an object keyed by word.
    """
    index: dict[str, dict[str, Any]] = {}
    if isinstance(payload, list):
        for record in payload:
            if not isinstance(record, dict):
                continue
            name = str(record.get("name") or "").strip().lower()
            if name:
                index[name] = record
    elif isinstance(payload, dict):
        for word, record in payload.items():
            key = str(word).strip().lower()
            if key and isinstance(record, dict):
                index[key] = record
    else:
        raise ValueError("shard is neither an array nor an object")
    return index


class DictionaryResolver:
    """
    Per-request shard cache.

    Each distinct letter is fetched at most once; concurrent lookups for the
    same letter await the same in-flight fetch.
    """

    def __init__(
        self,
        *,
        location: settings.RepoLocation | None = None,
        path_template: str | None = None,
    ) -> None:
        self.location = location or settings.dictionary_location()
        self.path_template = path_template or settings.dictionary_path_template()
        self._shards: dict[str, asyncio.Task[Shard]] = {}

    def shard_path(self, letter: str) -> str:
        return self.path_template.format(letter=letter)

    async def resolve_shard(self, letter: str) -> Shard:
        letter = (letter or "").lower()[:1]
        task = self._shards.get(letter)
        if task is None:
            task = asyncio.ensure_future(self._fetch(letter))
            self._shards[letter] = task
        return await task

    async def prefetch(self, letters: Iterable[str]) -> list[Shard]:
        distinct = sorted({(letter or "").lower()[:1] for letter in letters})
        return list(await asyncio.gather(*(self.resolve_shard(letter) for letter in distinct)))

    @property
    def degraded_letters(self) -> list[str]:
        return sorted(
            letter
            for letter, task in self._shards.items()
            if task.done() and task.result().degraded
        )

    async def _fetch(self, letter: str) -> Shard:
        # Only plain letters/digits map to shard files.
        if not letter or not letter.isalnum():
            return Shard(letter=letter, status=SHARD_MISSING)

        path = self.shard_path(letter)
        try:
            remote = await github.get_file(self.location, path)
        except github.GitHubNotFound:
            logger.info("shard_missing letter=%s path=%s", letter, path)
            return Shard(letter=letter, status=SHARD_MISSING)
        except github.GitHubError as e:
            logger.warning("shard_fetch_failed letter=%s path=%s error=%s", letter, path, e)
            return Shard(letter=letter, status=SHARD_FAILED)

        try:
            entries = _index_records(json.loads(remote.content.decode("utf-8-sig")))
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning("shard_decode_failed letter=%s path=%s error=%s", letter, path, e)
            return Shard(letter=letter, status=SHARD_FAILED)

        logger.debug("shard_loaded letter=%s words=%s", letter, len(entries))
        return Shard(letter=letter, entries=entries)
