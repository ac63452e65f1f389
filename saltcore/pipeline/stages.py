from __future__ import annotations
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from .artifacts import FailurePolicy
from .errors import PipelineStageError

logger = logging.getLogger(__name__)

R = TypeVar("R")


class StageRun:
    """Runs the stages of one pipeline invocation strictly in order.

    Stage failures are re-raised as ``PipelineStageError`` naming the stage.
    Under ``FailurePolicy.DEGRADE`` an ``optional`` stage that fails yields
    ``None`` instead.
    """

    def __init__(self, pipeline: str, policy: FailurePolicy = FailurePolicy.FAIL_FAST):
        self.pipeline = pipeline
        self.policy = policy
        self._completed: List[str] = []
        self.timings: dict[str, float] = {}

    @property
    def stages(self) -> Tuple[str, ...]:
        return tuple(self._completed)

    async def run(self, name: str, step: Callable[..., Awaitable[R]], *args: Any, **kwargs: Any) -> R:
        logger.info(f"[{self.pipeline}] stage '{name}' started")
        t0 = time.perf_counter()
        try:
            result = await step(*args, **kwargs)
        except PipelineStageError:
            raise
        except Exception as e:
            logger.error(f"[{self.pipeline}] stage '{name}' failed: {e}")
            raise PipelineStageError(name, e) from e
        self.timings[name] = time.perf_counter() - t0
        self._completed.append(name)
        logger.info(f"[{self.pipeline}] stage '{name}' finished in {self.timings[name]:.2f}s")
        return result

    async def optional(self, name: str, step: Callable[..., Awaitable[R]], *args: Any, **kwargs: Any) -> Optional[R]:
        try:
            return await self.run(name, step, *args, **kwargs)
        except PipelineStageError:
            if self.policy is FailurePolicy.FAIL_FAST:
                raise
            logger.exception(f"[{self.pipeline}] optional stage '{name}' degraded to no result")
            return None
