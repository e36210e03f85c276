import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from rungrade.schemas.activity import FileError, RunResult

CREATED = "created"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UploadedFile:
    filename: str
    data: bytes


@dataclass
class BatchJob:
    """In-memory state of one batch; dropped right after its terminal event."""

    files: list[UploadedFile]
    bin_length: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: str = CREATED
    processed: int = 0
    # set once a consumer starts iterating the event stream
    streaming: bool = False
    results: list[RunResult] = field(default_factory=list)
    errors: list[FileError] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def total(self) -> int:
        return len(self.files)

    @property
    def done(self) -> bool:
        return self.processed >= self.total

    def touch(self, status: str | None = None) -> None:
        if status is not None:
            self.status = status
        self.updated_at = _now()

    def release(self) -> None:
        # raw upload buffers are the bulk of a job's memory
        self.files = []
