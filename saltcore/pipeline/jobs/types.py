from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from saltcore.models.providers.base import JobSnapshot, ModelError


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELED})

# vendor vocabulary -> canonical status; keys are lowercased before lookup
STATUS_ALIASES: Dict[str, JobStatus] = {
    "starting": JobStatus.PENDING,
    "pending": JobStatus.PENDING,
    "processing": JobStatus.RUNNING,
    "running": JobStatus.RUNNING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.CANCELED,
}

_RANK = {JobStatus.PENDING: 0, JobStatus.RUNNING: 1}


def normalize_status(vendor_status: Any) -> JobStatus:
    if isinstance(vendor_status, JobStatus):
        return vendor_status
    if not isinstance(vendor_status, str):
        raise ModelError(f"Vendor reported a non-string job status: {vendor_status!r}")
    try:
        return STATUS_ALIASES[vendor_status.strip().lower()]
    except KeyError:
        raise ModelError(f"Unrecognised vendor job status: {vendor_status!r}") from None


@dataclass(frozen=True)
class PollOptions:
    interval: float = 1.0 #seconds between status fetches
    max_polls: int = 60
    timeout: float = 300.0 #wall-clock seconds

    def merged(self, **overrides: Any) -> "PollOptions":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


@dataclass(frozen=True)
class TaskHandle:
    """A single vendor-side asynchronous job."""
    id: str
    status: JobStatus
    status_url: Optional[str] = None
    raw_output: Any = None
    error: Any = None
    output: Optional[str] = None #primary output reference, set once resolved
    polls: int = 0

    @classmethod
    def from_snapshot(cls, snapshot: JobSnapshot) -> "TaskHandle":
        return cls(
            id=snapshot.id,
            status=normalize_status(snapshot.status),
            status_url=snapshot.status_url,
            raw_output=snapshot.output,
            error=snapshot.error,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def advance(self, snapshot: JobSnapshot) -> "TaskHandle":
        """Return the handle after one status fetch.

        Terminal handles are returned unchanged, and a running job that the
        vendor briefly reports as pending again stays running.
        """
        if self.is_terminal:
            return self
        status = normalize_status(snapshot.status)
        if not status.is_terminal and _RANK[status] < _RANK[self.status]:
            status = self.status
        return replace(
            self,
            status=status,
            raw_output=snapshot.output,
            error=snapshot.error,
            status_url=snapshot.status_url or self.status_url,
            polls=self.polls + 1,
        )
