"""
Error taxonomy for the generation core.

Every error carries an ``http_status`` so the HTTP layer can render it as one
descriptive message without inspecting the type.
"""

from __future__ import annotations
from typing import Any, Optional


class PipelineError(RuntimeError):
    http_status = 502

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SubmissionError(PipelineError):
    """The vendor rejected job creation. Not retried by the core."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class PollTimeoutError(PipelineError):
    """No terminal status within the poll ceiling or wall-clock budget."""
    http_status = 504

    def __init__(self, job_id: str, polls: int, elapsed: float, last_status: str):
        super().__init__(
            f"Job {job_id} still {last_status} after {polls} polls ({elapsed:.1f}s)"
        )
        self.job_id = job_id
        self.polls = polls
        self.elapsed = elapsed
        self.last_status = last_status


class JobFailedError(PipelineError):
    """The vendor reported failed or canceled."""

    def __init__(self, job_id: str, status: str, error: Any):
        super().__init__(f"Job {job_id} {status}: {error}")
        self.job_id = job_id
        self.status = status
        self.error = error


class MalformedSuccessError(PipelineError):
    def __init__(self, job_id: str, output: Any):
        super().__init__(f"Job {job_id} succeeded without a usable output: {output!r}")
        self.job_id = job_id
        self.output = output


class ValidationExhaustedError(PipelineError):
    def __init__(self, attempts: int, last_reason: str):
        super().__init__(
            f"Model output failed validation after {attempts} attempts: {last_reason}"
        )
        self.attempts = attempts
        self.last_reason = last_reason


class NoImageProducedError(PipelineError):
    def __init__(self, message: str = "No image generated in response"):
        super().__init__(message)


class PipelineStageError(PipelineError):
    """A named stage failed. ``cause`` is the underlying exception."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"Stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause
        if isinstance(cause, PipelineError):
            self.http_status = cause.http_status


class InvalidRequestError(ValueError):
    """Caller input the pipeline cannot act on. Rendered as HTTP 400."""
