import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse

from rungrade.api.deps import get_registry, read_uploads, resolve_bin_length
from rungrade.core.errors import BatchJobNotFoundError, BatchJobStateError
from rungrade.schemas.batch import BatchSubmitResponse, sse_frame
from rungrade.services.batch import BatchRegistry

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["batch"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Nginx buffers by default; progress events must go out as produced
    "X-Accel-Buffering": "no",
}


def _event_stream(registry: BatchRegistry, batch_id: str, request: Request) -> StreamingResponse:
    try:
        events = registry.subscribe(batch_id, is_disconnected=request.is_disconnected)
    except BatchJobNotFoundError:
        raise HTTPException(status_code=404, detail="Batch not found")
    except BatchJobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    async def _gen():
        try:
            async for event in events:
                yield sse_frame(event)
        finally:
            # runs the stream's cleanup now, not at garbage collection
            await events.aclose()

    return StreamingResponse(_gen(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/analyze-batch")
async def analyze_batch(
    request: Request,
    files: list[UploadFile] = File(...),
    bin_length: Optional[float] = Form(None),
    registry: BatchRegistry = Depends(get_registry),
):
    """Upload and stream progress in one request (SSE)."""
    length = resolve_bin_length(bin_length)
    uploads = await read_uploads(files)
    batch_id = registry.submit(uploads, length)
    return _event_stream(registry, batch_id, request)


@router.post("/upload-batch", response_model=BatchSubmitResponse)
async def upload_batch(
    files: list[UploadFile] = File(...),
    bin_length: Optional[float] = Form(None),
    registry: BatchRegistry = Depends(get_registry),
):
    """Store a batch and return its id; stream it with GET /process-batch/{id}."""
    length = resolve_bin_length(bin_length)
    uploads = await read_uploads(files)
    batch_id = registry.submit(uploads, length)
    return BatchSubmitResponse(batch_id=batch_id, file_count=len(uploads))


@router.get("/process-batch/{batch_id}")
def process_batch(
    batch_id: str,
    request: Request,
    registry: BatchRegistry = Depends(get_registry),
):
    return _event_stream(registry, batch_id, request)
