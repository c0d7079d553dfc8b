"""
Wordbook error taxonomy.

Every error carries a machine-readable `code` and the HTTP status the router
should answer with. Dictionary lookups never raise; they degrade to the
"not found" translation instead.
"""

from __future__ import annotations


class WordbookError(RuntimeError):
    code = "wordbook_error"
    status_code = 500


class UnsupportedFormatError(WordbookError):
    code = "unsupported_format"
    status_code = 400


class FormatError(WordbookError):
    code = "format_error"
    status_code = 422


class SchemaValidationError(WordbookError):
    code = "schema_invalid"
    status_code = 422


class StoreReadError(WordbookError):
    code = "store_read_failed"
    status_code = 502


class ConcurrentModificationError(WordbookError):
    code = "concurrent_modification"
    status_code = 409


class StoreWriteError(WordbookError):
    code = "store_write_failed"
    status_code = 502
