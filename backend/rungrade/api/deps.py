from typing import Optional

from fastapi import HTTPException, Request, UploadFile

from rungrade.core.config import settings
from rungrade.core.constants import UPLOAD_CHUNK_BYTES
from rungrade.models.batch_job import UploadedFile
from rungrade.services.batch import BatchRegistry


def get_registry(request: Request) -> BatchRegistry:
    return request.app.state.batch_registry


def resolve_bin_length(bin_length: Optional[float]) -> float:
    if bin_length is None:
        return settings.default_bin_length
    if bin_length <= 0:
        raise HTTPException(status_code=422, detail="bin_length must be > 0")
    return float(bin_length)


async def read_uploads(files: Optional[list[UploadFile]]) -> list[UploadedFile]:
    """Read every upload into memory, enforcing count and size limits."""
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")
    if len(files) > settings.max_upload_files:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files: {len(files)} (max {settings.max_upload_files})",
        )
    uploads = []
    for f in files:
        data = await _read_limited(f, settings.max_upload_bytes)
        uploads.append(UploadedFile(filename=f.filename or "upload", data=data))
    return uploads


async def _read_limited(f: UploadFile, limit: int) -> bytes:
    chunks = []
    size = 0
    while True:
        chunk = await f.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise HTTPException(status_code=413, detail=f"{f.filename} exceeds the upload size limit")
        chunks.append(chunk)
    return b"".join(chunks)
