"""
Pydantic schemas for the wordbook (entries + API responses).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Entry(BaseModel):
    name: str
    trans: list[str]
    usphone: str = ""
    ukphone: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "Entry":
        """
        Build an entry from an already shape-checked record; phone fields may
        be missing or null on older records. Names are trimmed.
        """
        return cls(
            name=record["name"].strip(),
            trans=list(record["trans"]),
            usphone=str(record.get("usphone") or ""),
            ukphone=str(record.get("ukphone") or ""),
        )


class UploadResponse(BaseModel):
    success: bool = True
    message: str
    filename: str
    format: str
    parsed: int
    entries: int
    added: int
    total: int
    not_found: int
    degraded_letters: list[str] = Field(default_factory=list)


class CollectionResponse(BaseModel):
    entries: list[Entry]
    count: int


class ArchiveResponse(BaseModel):
    success: bool = True
    message: str
    path: str
    sha: str
    created: bool
