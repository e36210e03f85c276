import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from rungrade.core.errors import BatchJobNotFoundError, BatchJobStateError
from rungrade.models.batch_job import BatchJob, UploadedFile
from rungrade.services.batch import BatchRegistry, process_next, run_batch

from track_factory import CORRUPT_GPX, gpx_bytes


def three_files():
    return [
        UploadedFile("one.gpx", gpx_bytes(n=12, heart_rate=130)),
        UploadedFile("broken.gpx", CORRUPT_GPX),
        UploadedFile("three.gpx", gpx_bytes(n=20)),
    ]


def collect(stream):
    async def _drain():
        return [event async for event in stream]
    return asyncio.run(_drain())


def test_run_batch_keeps_going_after_a_bad_file():
    progress = []
    report = run_batch(three_files(), 50.0, on_progress=progress.append)

    assert report.summary.total_files == 3
    assert report.summary.successful_files == 2
    assert report.summary.failed_files == 1
    assert report.summary.files_with_heart_rate == 1
    assert [r.filename for r in report.results] == ["one.gpx", "three.gpx"]
    assert [r.file_index for r in report.results] == [0, 2]
    assert report.errors[0].filename == "broken.gpx"

    assert [e.progress_percent for e in progress] == [33, 67, 100]
    assert [e.current_file for e in progress] == ["one.gpx", "broken.gpx", "three.gpx"]
    assert len(progress[1].errors_so_far) == 1
    assert len(progress[0].results_so_far) == 1


def test_run_batch_result_carries_bins():
    report = run_batch([UploadedFile("one.gpx", gpx_bytes(n=12))], 100.0)
    result = report.results[0]

    assert result.bin_length == 100.0
    assert result.route_point_count == 12
    assert result.bins
    assert result.bin_summary.total_bins == len(result.bins)
    assert report.summary.total_bins == len(result.bins)


def test_stream_emits_progress_then_complete_and_drops_job():
    registry = BatchRegistry(ttl_seconds=60, progress_delay=0)
    job_id = registry.submit(three_files(), 50.0)
    assert job_id in registry

    events = collect(registry.subscribe(job_id))

    assert [e.type for e in events] == ["progress", "progress", "progress", "complete"]
    assert [e.file_index for e in events[:3]] == [1, 2, 3]
    complete = events[-1]
    assert complete.successful_files == 2
    assert complete.failed_files == 1
    assert job_id not in registry


def test_unknown_batch_id():
    registry = BatchRegistry(progress_delay=0)
    with pytest.raises(BatchJobNotFoundError):
        registry.subscribe("does-not-exist")


def test_batch_can_only_be_streamed_once():
    registry = BatchRegistry(progress_delay=0)
    job_id = registry.submit(three_files(), 50.0)
    registry.subscribe(job_id)

    with pytest.raises(BatchJobStateError):
        registry.subscribe(job_id)


def test_disconnect_stops_processing():
    registry = BatchRegistry(progress_delay=0)
    job_id = registry.submit(three_files(), 50.0)
    checks = []

    async def gone():
        checks.append(True)
        return len(checks) > 1

    events = collect(registry.subscribe(job_id, is_disconnected=gone))

    assert [e.type for e in events] == ["progress"]
    assert job_id not in registry


def test_expired_jobs_are_evicted():
    registry = BatchRegistry(ttl_seconds=60, progress_delay=0)
    registry.submit(three_files(), 50.0)
    registry.submit(three_files(), 50.0)

    assert registry.evict_expired() == 0
    later = datetime.now(timezone.utc) + timedelta(seconds=61)
    assert registry.evict_expired(now=later) == 2
    assert len(registry) == 0


def test_progress_percent_rounds_half_up():
    job = BatchJob(files=[UploadedFile(f"{i}.txt", b"") for i in range(8)], bin_length=50.0)
    assert process_next(job).progress_percent == 13


def test_eviction_leaves_a_live_stream_alone():
    registry = BatchRegistry(ttl_seconds=60, progress_delay=0)
    job_id = registry.submit(three_files(), 50.0)
    later = datetime.now(timezone.utc) + timedelta(seconds=61)

    async def _run():
        stream = registry.subscribe(job_id)
        first = await stream.__anext__()
        evicted = registry.evict_expired(now=later)
        rest = [event async for event in stream]
        return first, evicted, rest

    first, evicted, rest = asyncio.run(_run())

    assert first.type == "progress"
    assert evicted == 0
    complete = rest[-1]
    assert complete.type == "complete"
    assert complete.total_files == 3
    assert complete.successful_files == 2
    assert complete.failed_files == 1
    assert job_id not in registry


def test_stream_of_an_evicted_job_reports_an_error():
    registry = BatchRegistry(ttl_seconds=60, progress_delay=0)
    job_id = registry.submit(three_files(), 50.0)
    stream = registry.subscribe(job_id)

    later = datetime.now(timezone.utc) + timedelta(seconds=61)
    assert registry.evict_expired(now=later) == 1

    events = collect(stream)
    assert [e.type for e in events] == ["error"]
    assert "expired" in events[0].message
