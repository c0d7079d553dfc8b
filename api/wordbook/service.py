"""
Wordbook "service layer".

This file contains logic that is independent of FastAPI's routing layer:
- Validate uploads and read file bytes with a size limit
- Convert an upload into entries (parse -> enrich)
- Merge entries into the stored collection (read -> merge -> validate -> write)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from fastapi import HTTPException, UploadFile

from core import settings

from . import enrichment, parsing, repository, validation
from .dictionary import DictionaryResolver
from .errors import ConcurrentModificationError
from .merge import DedupMode, merge_entries
from .schemas import Entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str | None
    size_bytes: int
    format: str
    data: bytes


@dataclass(frozen=True)
class Conversion:
    format: str
    parsed: int
    entries: list[Entry]
    not_found: int = 0
    degraded_letters: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MergeOutcome:
    entries: list[Entry]
    added: int
    sha: str

    @property
    def count(self) -> int:
        return len(self.entries)


def safe_filename(filename: str) -> str:
    # Drop any directory part a client may have sent; "." and ".." are not names.
    name = Path((filename or "").replace("\\", "/")).name
    return "" if name in {".", ".."} else name


def validate_upload(file: UploadFile) -> str:
    """
    Return the parser format tag if this upload is acceptable.

    We go by filename extension because `content_type` is often missing or
    wrong for .xlsx and .json.
    """
    if not file.filename or not safe_filename(file.filename):
        raise HTTPException(status_code=400, detail="Missing filename.")
    return parsing.format_for_filename(file.filename)


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024  # 1 MiB
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Max is {max_bytes} bytes.",
            )

    return bytes(buf)


async def receive_upload(file: UploadFile, *, require_format: bool = True) -> UploadedFile:
    if require_format:
        format_tag = validate_upload(file)
    elif not file.filename or not safe_filename(file.filename):
        raise HTTPException(status_code=400, detail="Missing filename.")
    else:
        format_tag = parsing.FORMAT_BY_EXTENSION.get(Path(file.filename).suffix.lower(), "raw")
    data = await read_upload_bytes(file, max_bytes=settings.max_upload_bytes())
    return UploadedFile(
        filename=safe_filename(file.filename or ""),
        content_type=file.content_type,
        size_bytes=len(data),
        format=format_tag,
        data=data,
    )


async def convert(
    data: bytes,
    format_tag: str,
    *,
    resolver: DictionaryResolver | None = None,
) -> Conversion:
    """
    Parse an upload and, for word lists, look every word up in the dictionary.
    """
    parsed = parsing.parse(data, format_tag)
    if parsed.is_structured:
        return Conversion(format=parsed.format, parsed=parsed.size, entries=list(parsed.entries or []))

    resolver = resolver or DictionaryResolver()
    entries = await enrichment.enrich(parsed.words, resolver)
    return Conversion(
        format=parsed.format,
        parsed=parsed.size,
        entries=entries,
        not_found=sum(1 for e in entries if enrichment.is_not_found(e)),
        degraded_letters=resolver.degraded_letters,
    )


async def _merge_once(new_entries: list[Entry], *, mode: DedupMode, message: str) -> MergeOutcome:
    stored = await repository.read_collection()
    merged = merge_entries(stored.entries, new_entries, mode=mode)

    # Nothing reaches the store without passing the shape check.
    validation.ensure_valid([e.model_dump() for e in merged])

    sha = await repository.write_collection(merged, sha=stored.sha, message=message)
    return MergeOutcome(entries=merged, added=max(0, len(merged) - len(stored.entries)), sha=sha)


async def merge_and_persist(
    new_entries: list[Entry],
    *,
    mode: DedupMode | None = None,
    retries: int | None = None,
    message: str = repository.DEFAULT_COMMIT_MESSAGE,
) -> MergeOutcome:
    """
    Read the stored collection, merge `new_entries`, and write it back
    conditioned on the sha that was read.

    On a concurrent write the whole sequence is repeated up to `retries`
    extra times before the ConcurrentModificationError is raised.
    """
    validation.ensure_valid([e.model_dump() for e in new_entries])

    mode = mode or DedupMode.parse(settings.dedup_mode())
    attempts = 1 + (settings.write_retries() if retries is None else max(0, retries))

    attempt = 0
    while True:
        attempt += 1
        try:
            outcome = await _merge_once(new_entries, mode=mode, message=message)
        except ConcurrentModificationError:
            logger.warning("wordbook_conflict attempt=%s of=%s", attempt, attempts)
            if attempt >= attempts:
                raise
            continue

        logger.info(
            "wordbook_written total=%s added=%s mode=%s sha=%s",
            outcome.count,
            outcome.added,
            mode.value,
            outcome.sha,
        )
        return outcome


async def import_upload(upload: UploadedFile) -> tuple[Conversion, MergeOutcome]:
    """
    High-level pipeline for one uploaded file.

    This is what the FastAPI router should call.
    """
    conversion = await convert(upload.data, upload.format)
    outcome = await merge_and_persist(
        conversion.entries,
        message=f"Import {upload.filename} via web app",
    )
    return conversion, outcome


async def current_collection() -> list[Entry]:
    return (await repository.read_collection()).entries


async def archive_upload(upload: UploadedFile) -> tuple[str, str, bool]:
    return await repository.archive_file(upload.filename, upload.data)
