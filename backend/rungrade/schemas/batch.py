from typing import Literal

from pydantic import BaseModel

from rungrade.schemas.activity import FileError, RunResult


class BatchSummary(BaseModel):
    total_files: int
    successful_files: int
    failed_files: int
    bin_length: float
    total_bins: int
    avg_bins_per_file: float
    files_with_heart_rate: int


class BatchReport(BaseModel):
    success: bool = True
    summary: BatchSummary
    results: list[RunResult]
    errors: list[FileError]


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    file_index: int
    total_files: int
    progress_percent: int
    files_processed: int
    current_file: str
    results_so_far: list[RunResult]
    errors_so_far: list[FileError]


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    total_files: int
    successful_files: int
    failed_files: int
    results: list[RunResult]
    errors: list[FileError]


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


class BatchSubmitResponse(BaseModel):
    success: bool = True
    batch_id: str
    file_count: int


def sse_frame(event: BaseModel) -> str:
    return f"data: {event.model_dump_json()}\n\n"
