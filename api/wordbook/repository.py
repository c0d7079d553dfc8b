"""
Wordbook persistence.

The collection is a single JSON file in a GitHub repo. Reads return the blob
sha; writes send it back so GitHub rejects the write if someone else
committed in between.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from core import github, settings

from . import validation
from .errors import ConcurrentModificationError, StoreReadError, StoreWriteError
from .schemas import Entry

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_MESSAGE = "Update wordbook via web app"
ARCHIVE_COMMIT_MESSAGE = "File uploaded via web app"


@dataclass(frozen=True)
class StoredCollection:
    entries: list[Entry] = field(default_factory=list)
    # None means the file does not exist yet (create on write).
    sha: str | None = None


def encode_collection(entries: list[Entry]) -> bytes:
    payload = [e.model_dump() for e in entries]
    return (json.dumps(payload, ensure_ascii=False, indent=2) + "\n").encode("utf-8")


def decode_collection(data: bytes) -> list[Entry]:
    problem = validation.find_problem(data)
    if problem is not None:
        raise StoreReadError(f"Persisted wordbook is malformed: {problem}.")
    payload = json.loads(data.decode("utf-8-sig"))
    return [Entry.from_record(item) for item in payload]


async def read_collection(
    *,
    location: settings.RepoLocation | None = None,
    path: str | None = None,
) -> StoredCollection:
    location = location or settings.wordbook_location()
    path = path or settings.wordbook_path()
    try:
        remote = await github.get_file(location, path)
    except github.GitHubNotFound:
        logger.info("wordbook_missing path=%s action=create", path)
        return StoredCollection()
    except github.GitHubError as e:
        raise StoreReadError(f"Could not read wordbook: {e}") from e

    if not remote.content.strip():
        return StoredCollection(sha=remote.sha)
    return StoredCollection(entries=decode_collection(remote.content), sha=remote.sha)


async def write_collection(
    entries: list[Entry],
    *,
    sha: str | None,
    message: str = DEFAULT_COMMIT_MESSAGE,
    location: settings.RepoLocation | None = None,
    path: str | None = None,
) -> str:
    """
    Write the full collection conditioned on `sha`. Returns the new sha.
    """
    location = location or settings.wordbook_location()
    path = path or settings.wordbook_path()
    try:
        return await github.put_file(
            location,
            path,
            content=encode_collection(entries),
            message=message,
            sha=sha,
        )
    except github.GitHubConflict as e:
        raise ConcurrentModificationError(f"Wordbook was modified concurrently: {e}") from e
    except github.GitHubError as e:
        raise StoreWriteError(f"Could not write wordbook: {e}") from e


async def archive_file(filename: str, data: bytes) -> tuple[str, str, bool]:
    """
    Store an uploaded file unchanged under UPLOAD_DIR, replacing any previous
    file with the same name.

    Returns (path, new_sha, created).
    """
    location = settings.wordbook_location()
    path = f"{settings.upload_dir()}/{filename}".strip("/")

    sha: str | None = None
    try:
        sha = (await github.get_file(location, path)).sha
    except github.GitHubNotFound:
        sha = None
    except github.GitHubError as e:
        raise StoreReadError(f"Could not check existing upload: {e}") from e

    try:
        new_sha = await github.put_file(
            location,
            path,
            content=data,
            message=ARCHIVE_COMMIT_MESSAGE,
            sha=sha,
        )
    except github.GitHubConflict as e:
        raise ConcurrentModificationError(f"Upload target was modified concurrently: {e}") from e
    except github.GitHubError as e:
        raise StoreWriteError(f"Could not store upload: {e}") from e

    return path, new_sha, sha is None
