"""
FastAPI router for wordbook endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, File, HTTPException, UploadFile

from . import schemas, service
from .errors import WordbookError

router = APIRouter()


def _http_error(exc: WordbookError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={"success": False, "error": exc.code, "message": str(exc)},
    )


@router.post("/wordbook/upload", response_model=schemas.UploadResponse)
async def upload_wordbook(file: UploadFile = File(...)) -> schemas.UploadResponse:
    """
    Upload a word list (.txt), spreadsheet (.xlsx) or entry list (.json),
    convert it to entries and merge them into the stored wordbook.
    """
    try:
        upload = await service.receive_upload(file)
        conversion, outcome = await service.import_upload(upload)
    except WordbookError as exc:
        raise _http_error(exc) from exc

    return schemas.UploadResponse(
        message=f"Imported {len(conversion.entries)} entries from {upload.filename}.",
        filename=upload.filename,
        format=conversion.format,
        parsed=conversion.parsed,
        entries=len(conversion.entries),
        added=outcome.added,
        total=outcome.count,
        not_found=conversion.not_found,
        degraded_letters=conversion.degraded_letters,
    )


@router.get("/wordbook", response_model=schemas.CollectionResponse)
async def get_wordbook() -> schemas.CollectionResponse:
    try:
        entries = await service.current_collection()
    except WordbookError as exc:
        raise _http_error(exc) from exc
    return schemas.CollectionResponse(entries=entries, count=len(entries))


@router.post("/uploads", response_model=schemas.ArchiveResponse)
async def archive_upload(file: UploadFile = File(...)) -> schemas.ArchiveResponse:
    """
    Store the uploaded file unchanged in the upload folder of the repo.
    """
    try:
        upload = await service.receive_upload(file, require_format=False)
        path, sha, created = await service.archive_upload(upload)
    except WordbookError as exc:
        raise _http_error(exc) from exc

    return schemas.ArchiveResponse(
        message=f"Stored {upload.filename} at {path}.",
        path=path,
        sha=sha,
        created=created,
    )
