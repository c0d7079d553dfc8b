"""
Upload parsers.

Each supported format maps to one parser with the same contract:
bytes in, either raw words (`lines`, `tabular`) or ready entries
(`structured`) out. Parsers are pure; they never touch the network.
"""

from __future__ import annotations

import io
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from openpyxl import load_workbook

from . import validation
from .errors import FormatError, UnsupportedFormatError
from .schemas import Entry

FORMAT_BY_EXTENSION = {
    ".txt": "lines",
    ".xlsx": "tabular",
    ".json": "structured",
}


@dataclass(frozen=True)
class ParsedUpload:
    format: str
    words: list[str] = field(default_factory=list)
    # Only set for `structured` uploads, which skip enrichment.
    entries: list[Entry] | None = None

    @property
    def is_structured(self) -> bool:
        return self.entries is not None

    @property
    def size(self) -> int:
        return len(self.entries) if self.entries is not None else len(self.words)


def format_for_filename(filename: str) -> str:
    ext = Path(filename or "").suffix.lower()
    try:
        return FORMAT_BY_EXTENSION[ext]
    except KeyError:
        raise UnsupportedFormatError(
            f"Unsupported file type '{ext}'. Allowed: {sorted(FORMAT_BY_EXTENSION)}"
        ) from None


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError("Text upload is not valid UTF-8.") from e


def parse_lines(data: bytes) -> ParsedUpload:
    text = _decode_text(data)
    words = [line.strip() for line in text.splitlines() if line.strip()]
    return ParsedUpload(format="lines", words=words)


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    # Integral floats come back from Excel as 3.0; keep them readable.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_tabular(data: bytes) -> ParsedUpload:
    """
    Flatten the first worksheet in row-major order, dropping blank cells.
    """
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise FormatError("Could not read spreadsheet (file may be corrupted or not .xlsx).") from e

    try:
        if not workbook.worksheets:
            return ParsedUpload(format="tabular")
        sheet = workbook.worksheets[0]
        words: list[str] = []
        for row in sheet.iter_rows(values_only=True):
            for value in row:
                text = _cell_text(value)
                if text:
                    words.append(text)
    except Exception as e:
        # Read-only workbooks parse rows lazily, so corruption can surface here.
        raise FormatError("Could not read spreadsheet rows (file may be corrupted).") from e
    finally:
        workbook.close()

    return ParsedUpload(format="tabular", words=words)


def parse_structured(data: bytes) -> ParsedUpload:
    try:
        payload = json.loads(_decode_text(data))
    except json.JSONDecodeError as e:
        raise FormatError(f"JSON upload could not be parsed: {e.msg} (line {e.lineno}).") from e

    problem = validation.find_problem(payload)
    if problem is not None:
        raise FormatError(f"JSON upload is not an entry list: {problem}.")

    entries = [Entry.from_record(item) for item in payload]
    for i, entry in enumerate(entries):
        if not entry.name:
            raise FormatError(f"JSON upload entry {i} has an empty name.")
        if not entry.trans:
            raise FormatError(f"JSON upload entry {i} ({entry.name!r}) has no translations.")
    return ParsedUpload(format="structured", entries=entries)


PARSERS: dict[str, Callable[[bytes], ParsedUpload]] = {
    "lines": parse_lines,
    "tabular": parse_tabular,
    "structured": parse_structured,
}


def parse(data: bytes, format_tag: str) -> ParsedUpload:
    parser = PARSERS.get(format_tag)
    if parser is None:
        raise UnsupportedFormatError(f"Unsupported format '{format_tag}'. Allowed: {sorted(PARSERS)}")
    return parser(data)
