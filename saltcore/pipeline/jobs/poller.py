"""
Create-then-poll driver for vendor jobs.

The engine never sleeps on its own: the wait between polls and the clock used
for the wall-clock budget are injected, so the policy can be exercised in tests
without real time passing.
"""

from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional

from saltcore.models.providers.base import JobProvider, JobRequest, ModelError
from ..errors import SubmissionError, PollTimeoutError, JobFailedError, MalformedSuccessError
from .types import JobStatus, PollOptions, TaskHandle

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]

OUTPUT_RECORD_KEYS = ("url", "uri", "image", "video")


def primary_output(output: Any) -> Optional[str]:
    """First usable reference out of a vendor output, or None."""
    if isinstance(output, (list, tuple)):
        if not output:
            return None
        output = output[0]
    if isinstance(output, dict):
        for key in OUTPUT_RECORD_KEYS:
            if isinstance(output.get(key), str):
                output = output[key]
                break
        else:
            return None
    if isinstance(output, str) and output.strip():
        return output
    return None


class PollEngine:
    def __init__(
        self,
        provider: JobProvider,
        options: Optional[PollOptions] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ):
        self.provider = provider
        self.options = options or PollOptions()
        self._sleep = sleep
        self._clock = clock

    async def submit(self, request: JobRequest) -> TaskHandle:
        try:
            snapshot = await self.provider.submit(request)
        except ModelError as e:
            raise SubmissionError(
                f"Job creation rejected for {request.model}: {e}",
                status_code=e.status_code,
                payload=e.payload,
            ) from e

        if snapshot.error:
            raise SubmissionError(
                f"Job creation rejected for {request.model}: {snapshot.error}",
                payload=snapshot.error,
            )

        handle = TaskHandle.from_snapshot(snapshot)
        logger.info(f"Job {handle.id} created ({request.kind}, {request.model}), status {handle.status.value}")
        return handle

    async def await_completion(self, handle: TaskHandle, options: Optional[PollOptions] = None) -> TaskHandle:
        opts = options or self.options
        started = self._clock()
        current = handle

        while not current.is_terminal:
            elapsed = self._clock() - started
            if current.polls - handle.polls >= opts.max_polls or elapsed >= opts.timeout:
                raise PollTimeoutError(current.id, current.polls - handle.polls, elapsed, current.status.value)

            # never sleep past the deadline, and never fetch once it has passed
            await self._sleep(min(opts.interval, opts.timeout - elapsed))
            elapsed = self._clock() - started
            if elapsed >= opts.timeout:
                raise PollTimeoutError(current.id, current.polls - handle.polls, elapsed, current.status.value)

            snapshot = await self.provider.fetch(current.id)
            previous = current.status
            current = current.advance(snapshot)
            if current.status is not previous:
                logger.info(f"Job {current.id}: {previous.value} -> {current.status.value}")

        return self._resolve(current)

    async def run(self, request: JobRequest, options: Optional[PollOptions] = None) -> TaskHandle:
        handle = await self.submit(request)
        return await self.await_completion(handle, options)

    def _resolve(self, handle: TaskHandle) -> TaskHandle:
        if handle.status in (JobStatus.FAILED, JobStatus.CANCELED):
            logger.error(f"Job {handle.id} {handle.status.value}: {handle.error}")
            raise JobFailedError(handle.id, handle.status.value, handle.error)

        reference = primary_output(handle.raw_output)
        if reference is None:
            raise MalformedSuccessError(handle.id, handle.raw_output)
        return replace(handle, output=reference)
