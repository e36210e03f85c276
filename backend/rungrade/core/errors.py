"""Error hierarchy.

File-level problems (``ActivityError``) are caught per file by the batch
orchestrator and reported next to the successful results. The remaining
errors are request-level and surface as a single failure.
"""


class RunGradeError(Exception):
    pass


class ActivityError(RunGradeError):
    """A single uploaded activity could not be turned into points."""

    def __init__(self, filename: str, message: str):
        super().__init__(message)
        self.filename = filename
        self.message = message


class UnsupportedFileTypeError(ActivityError):
    pass


class ActivityParseError(ActivityError):
    pass


class EmptyTrackError(ActivityError):
    pass


class AnalysisInputError(RunGradeError):
    pass


class BatchJobNotFoundError(RunGradeError):
    pass


class BatchJobStateError(RunGradeError):
    pass
