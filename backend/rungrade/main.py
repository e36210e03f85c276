import asyncio
import contextlib
import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rungrade.api.analysis import router as analysis_router
from rungrade.api.batch import router as batch_router
from rungrade.core.config import settings
from rungrade.core.logging_utils import setup_logging
from rungrade.services.batch import BatchRegistry

setup_logging(settings.log_level)
log = logging.getLogger(__name__)

SUPPORTED_FORMATS = ["GPX", "FIT"]


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    # Evict batches nobody came back to stream
    evictor = asyncio.create_task(app.state.batch_registry.run_eviction_loop())
    log.info("RunGrade backend started")
    try:
        yield
    finally:
        evictor.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await evictor


app = FastAPI(title="RunGrade", lifespan=lifespan)
app.state.batch_registry = BatchRegistry()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analysis_router)
app.include_router(batch_router)


@app.get("/")
def root():
    return {
        "message": "RunGrade GPX & FIT analysis backend",
        "endpoints": [
            "GET /api/health",
            "POST /api/analyze-with-bins",
            "POST /api/advanced-analysis",
            "POST /api/analyze-with-filters-json",
            "POST /api/analyze-batch",
            "POST /api/upload-batch",
            "GET /api/process-batch/{batch_id}",
        ],
        "supported_formats": SUPPORTED_FORMATS,
    }


@app.get("/api/health")
def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "supported_formats": SUPPORTED_FORMATS,
    }
