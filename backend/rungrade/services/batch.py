"""Batch orchestration.

Activities in a batch are processed strictly one at a time, in upload
order. A failing file is recorded as a ``FileError`` and the batch moves
on. After every file a progress event is produced; after the last one a
single terminal event.

Two modes share the same per-file step:

* ``run_batch``: synchronous, returns one ``BatchReport``;
* ``BatchRegistry.submit`` + ``BatchRegistry.subscribe``: returns a job id
  immediately, then streams the events for that id. The job is dropped
  from the registry as soon as it reaches a terminal state, when its
  consumer goes away, or when it sits idle past the TTL with nobody streaming it.
"""

import asyncio
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Awaitable, Callable, Optional, Sequence

from rungrade.core.config import settings
from rungrade.core.errors import ActivityError, BatchJobNotFoundError, BatchJobStateError
from rungrade.models.batch_job import (
    COMPLETED,
    CREATED,
    FAILED,
    PROCESSING,
    BatchJob,
    UploadedFile,
)
from rungrade.schemas.activity import FileError, RunResult
from rungrade.schemas.batch import (
    BatchReport,
    BatchSummary,
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
)
from rungrade.services.activity_io import load_activity
from rungrade.services.binning import bin_points, summarize
from rungrade.services.stats import round_half_up

log = logging.getLogger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


def process_activity(upload: UploadedFile, bin_length: float, file_index: int = 0) -> RunResult:
    """Parse, bin and summarize one activity. Raises ActivityError."""
    parsed = load_activity(upload.filename, upload.data)
    bins = bin_points(parsed.points, bin_length)
    return RunResult(
        **parsed.stats.model_dump(),
        bin_length=bin_length,
        bins=bins,
        bin_summary=summarize(bins),
        route_point_count=len(parsed.points),
        has_heart_rate_data=any(b.avg_heart_rate is not None for b in bins),
        file_index=file_index,
    )


def process_next(job: BatchJob) -> ProgressEvent:
    """Process the job's next pending file and report progress.

    File-level failures never escape: they land in ``job.errors``.
    """
    if job.done:
        raise BatchJobStateError(f"Batch {job.id} has no pending files")
    i = job.processed
    upload = job.files[i]
    log.info("Batch %s: processing file %d/%d: %s", job.id, i + 1, job.total, upload.filename)
    try:
        result = process_activity(upload, job.bin_length, file_index=i)
    except ActivityError as e:
        log.warning("Batch %s: %s failed: %s", job.id, upload.filename, e.message)
        job.errors.append(FileError(filename=upload.filename, error=e.message))
    except Exception as e:  # a broken file must not take the batch down
        log.exception("Batch %s: unexpected error processing %s", job.id, upload.filename)
        job.errors.append(FileError(filename=upload.filename, error=str(e) or type(e).__name__))
    else:
        job.results.append(result)
    job.processed += 1
    job.touch()

    return ProgressEvent(
        file_index=job.processed,
        total_files=job.total,
        progress_percent=round_half_up(job.processed / job.total * 100),
        files_processed=len(job.results) + len(job.errors),
        current_file=upload.filename,
        results_so_far=list(job.results),
        errors_so_far=list(job.errors),
    )


def complete_event(job: BatchJob) -> CompleteEvent:
    return CompleteEvent(
        total_files=job.total,
        successful_files=len(job.results),
        failed_files=len(job.errors),
        results=list(job.results),
        errors=list(job.errors),
    )


def build_report(total_files: int, bin_length: float, results: list[RunResult], errors: list[FileError]) -> BatchReport:
    total_bins = sum(len(r.bins) for r in results)
    avg_bins = total_bins / len(results) if results else 0.0
    return BatchReport(
        summary=BatchSummary(
            total_files=total_files,
            successful_files=len(results),
            failed_files=len(errors),
            bin_length=bin_length,
            total_bins=total_bins,
            avg_bins_per_file=round(avg_bins, 1),
            files_with_heart_rate=sum(1 for r in results if r.has_heart_rate_data),
        ),
        results=results,
        errors=errors,
    )


def run_batch(
    files: Sequence[UploadedFile],
    bin_length: float,
    on_progress: Optional[Callable[[ProgressEvent], None]] = None,
) -> BatchReport:
    """Process a whole batch synchronously and return the aggregate report."""
    job = BatchJob(files=list(files), bin_length=bin_length)
    job.touch(PROCESSING)
    while not job.done:
        event = process_next(job)
        if on_progress is not None:
            on_progress(event)
    job.touch(COMPLETED)
    report = build_report(job.total, bin_length, job.results, job.errors)
    job.release()
    log.info(
        "Batch complete: %d ok, %d failed, %d bins",
        report.summary.successful_files, report.summary.failed_files, report.summary.total_bins,
    )
    return report


class BatchRegistry:
    """Owns every pending/streaming batch job, keyed by a uuid4 hex id."""

    def __init__(self, ttl_seconds: Optional[int] = None, progress_delay: Optional[float] = None):
        self.ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else settings.batch_job_ttl_seconds)
        self.progress_delay = (
            progress_delay if progress_delay is not None else settings.progress_delay_seconds
        )
        self._jobs: dict[str, BatchJob] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def submit(self, files: Sequence[UploadedFile], bin_length: float) -> str:
        job = BatchJob(files=list(files), bin_length=bin_length)
        with self._lock:
            self._jobs[job.id] = job
        log.info("Batch %s: queued %d files (bin length %sm)", job.id, job.total, bin_length)
        return job.id

    def _claim(self, job_id: str) -> BatchJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise BatchJobNotFoundError(f"Batch {job_id} not found")
            if job.status != CREATED:
                raise BatchJobStateError(f"Batch {job_id} is already {job.status}")
            job.touch(PROCESSING)
            return job

    def discard(self, job_id: str) -> None:
        with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is not None:
            job.release()

    def subscribe(
        self,
        job_id: str,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> AsyncGenerator:
        """Claim the job and return its event stream.

        Raises BatchJobNotFoundError / BatchJobStateError right away, before
        any event is produced.
        """
        job = self._claim(job_id)
        return self._stream(job, is_disconnected)

    async def _stream(self, job: BatchJob, is_disconnected: Optional[DisconnectCheck]):
        with self._lock:
            expired = self._jobs.get(job.id) is not job
            job.streaming = not expired
        if expired:
            log.warning("Batch %s expired before its stream started", job.id)
            yield ErrorEvent(message=f"Batch {job.id} expired")
            return
        try:
            while not job.done:
                if is_disconnected is not None and await is_disconnected():
                    log.warning(
                        "Batch %s: consumer disconnected after %d/%d files, stopping",
                        job.id, job.processed, job.total,
                    )
                    job.touch(FAILED)
                    return
                event = await asyncio.to_thread(process_next, job)
                yield event
                if self.progress_delay > 0:
                    await asyncio.sleep(self.progress_delay)
            job.touch(COMPLETED)
            log.info(
                "Batch %s complete: %d ok, %d failed",
                job.id, len(job.results), len(job.errors),
            )
            yield complete_event(job)
        except Exception as e:
            log.exception("Batch %s failed", job.id)
            job.touch(FAILED)
            yield ErrorEvent(message=str(e) or type(e).__name__)
        finally:
            self.discard(job.id)

    def evict_expired(self, now: Optional[datetime] = None) -> int:
        """Drop jobs idle for longer than the TTL.

        Covers batches that were uploaded but never streamed, and streams
        that were claimed but never iterated. A stream being consumed owns
        its job and removes it itself.
        """
        now = now or datetime.now(timezone.utc)
        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items()
                if not job.streaming and now - job.updated_at > self.ttl
            ]
            jobs = [self._jobs.pop(job_id) for job_id in expired]
        for job in jobs:
            job.release()
        if expired:
            log.info("Evicted %d expired batch jobs", len(expired))
        return len(expired)

    async def run_eviction_loop(self, interval_seconds: Optional[float] = None) -> None:
        interval = interval_seconds or settings.eviction_interval_seconds
        while True:
            await asyncio.sleep(interval)
            self.evict_expired()
