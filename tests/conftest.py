"""
Shared fixtures: a fake clock for the poll engine, a scriptable vendor that
speaks both chat and jobs, and a ModelManager wired to them.
"""

import asyncio
from typing import Any, List, Union

import httpx
import pytest

from saltcore.models.manager import ModelManager
from saltcore.models.providers.base import (
    ChatProvider, JobProvider, ChatRequest, ModelResponse, JobRequest, JobSnapshot,
)


class FakeClock:
    """Monotonic clock that only moves when the engine sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


class StubVendor(ChatProvider, JobProvider):
    """Replays scripted chat replies and job snapshots.

    ``snapshots[0]`` answers ``submit``; the rest answer ``fetch`` in order,
    the last one repeating forever. Exceptions in either script are raised.
    """

    def __init__(self, replies: List[Union[str, Exception]] = (), snapshots: List[Union[JobSnapshot, Exception]] = ()):
        self.replies = list(replies)
        self.snapshots = list(snapshots)
        self.chat_requests: List[ChatRequest] = []
        self.job_requests: List[JobRequest] = []
        self.fetches = 0
        self.closed = False

    async def chat(self, req: ChatRequest) -> ModelResponse:
        self.chat_requests.append(req)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ModelResponse(content=reply, raw=None, meta={"model": req.model})

    async def submit(self, req: JobRequest) -> JobSnapshot:
        self.job_requests.append(req)
        return self._next()

    async def fetch(self, job_id: str) -> JobSnapshot:
        self.fetches += 1
        return self._next()

    def _next(self) -> Any:
        item = self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def stub_vendor():
    """The StubVendor class, for building scripted vendors inside tests."""
    return StubVendor


@pytest.fixture
def snapshot():
    """Shorthand factory for vendor job snapshots."""
    def make(status: str, output: Any = None, error: Any = None, job_id: str = "job-1") -> JobSnapshot:
        return JobSnapshot(id=job_id, status=status, output=output, error=error)
    return make


@pytest.fixture
def downloads():
    """URL -> bytes, an httpx.Response or an exception, served by the manager's HTTP client."""
    return {}


@pytest.fixture
def make_manager(fake_clock, downloads):
    """Build a ModelManager on the shipped config with stubbed vendors."""
    created = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = downloads.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        if isinstance(body, Exception):
            raise body
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, content=body)

    def make(**providers) -> ModelManager:
        manager = ModelManager(
            sleep=fake_clock.sleep,
            clock=fake_clock,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        manager._providers.update(providers)
        created.append(manager)
        return manager

    yield make

    for manager in created:
        asyncio.run(manager.aclose())
