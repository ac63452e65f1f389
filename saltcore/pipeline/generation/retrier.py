"""
Generate-and-validate loop for model calls that must return structured data.

Each attempt asks the model the same way again; nothing about the previous
failure is fed back. A value is returned only if it validates completely
against the declared shape.
"""

from __future__ import annotations
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import ValidationExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)
_EMBEDDED_FENCE = re.compile(r"```[\w+-]*[ \t]*\n(.*?)\n[ \t]*```", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove one ``` fence (with optional language tag) if present.

    A reply that is entirely fenced is unwrapped as a whole. Otherwise the
    first fenced block is taken out of surrounding prose, unless the reply
    already starts as bare JSON.
    """
    stripped = text.strip()
    match = _FENCE.match(stripped)
    if match:
        return match.group(1)
    if stripped.startswith(("{", "[")):
        return stripped
    match = _EMBEDDED_FENCE.search(stripped)
    return match.group(1).strip() if match else stripped


def describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"{location}: {first.get('msg', 'invalid')}"


@dataclass
class GenerationAttempt:
    number: int
    raw_text: str
    parsed: Any = None
    reason: Optional[str] = None #None when the attempt validated

    @property
    def passed(self) -> bool:
        return self.reason is None


@dataclass
class Validated(Generic[T]):
    value: T
    attempts_used: int
    history: List[GenerationAttempt] = field(default_factory=list, repr=False)


class ValidatedRetrier(Generic[T]):
    def __init__(self, shape: Type[T], max_attempts: int = 3):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.shape = shape
        self.max_attempts = max_attempts

    def check(self, number: int, raw_text: str) -> tuple[GenerationAttempt, Optional[T]]:
        attempt = GenerationAttempt(number=number, raw_text=raw_text)
        try:
            attempt.parsed = json.loads(strip_code_fence(raw_text))
        except (json.JSONDecodeError, TypeError) as e:
            attempt.reason = f"unparseable JSON: {e}"
            return attempt, None
        try:
            value = self.shape.model_validate(attempt.parsed)
        except ValidationError as e:
            attempt.reason = describe_validation_error(e)
            return attempt, None
        return attempt, value

    async def generate(
        self,
        call: Callable[[], Awaitable[str]],
        shape: Optional[Type[T]] = None,
        max_attempts: Optional[int] = None,
    ) -> Validated[T]:
        """Run ``call`` until its output validates, up to the attempt budget.

        Transport errors raised by ``call`` are not retried here.
        """
        retrier = self if shape is None and max_attempts is None else ValidatedRetrier(
            shape or self.shape, max_attempts or self.max_attempts
        )
        history: List[GenerationAttempt] = []

        for number in range(1, retrier.max_attempts + 1):
            raw_text = await call()
            attempt, value = retrier.check(number, raw_text)
            history.append(attempt)
            if value is not None:
                logger.info(f"{retrier.shape.__name__} validated on attempt {number}/{retrier.max_attempts}")
                return Validated(value=value, attempts_used=number, history=history)
            logger.warning(f"Attempt {number}/{retrier.max_attempts} rejected: {attempt.reason}")

        raise ValidationExhaustedError(retrier.max_attempts, history[-1].reason)
