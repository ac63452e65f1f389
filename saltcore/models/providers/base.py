from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Optional, List, Type, Union
from pydantic import BaseModel

#unified model errors
class ModelError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload #vendor error body, verbatim

class ModelTimeout(ModelError): ...
class ModelRetryable(ModelError): ...

RETRYABLE_STATUS = {408, 409, 429, 500, 502, 503, 504}

@dataclass(frozen=True)
class ChatRequest:
    model: str
    messages: List[Dict[str, Any]]
    params: Dict[str, Any] | None = None
    schema: Optional[Type[BaseModel]] = None #pydantic model -> json schema
    extra_body: Optional[Dict[str, Any]] = None #openrouter only args
    images: Optional[List[Union[str, bytes]]] = None #images to include in the chat

@dataclass(frozen=True)
class ModelResponse:
    content: str
    raw: Any #provider-native response obj/dict
    meta: Dict[str, Any] #timings, token counts, model, created_at, etc.
    parsed: Optional[BaseModel] = None #populated if schema was provided

@dataclass(frozen=True)
class JobRequest:
    kind: str #e.g. "image-edit", "text-to-image", "image-to-video"
    model: str
    input: Dict[str, Any]
    params: Dict[str, Any] | None = None

@dataclass(frozen=True)
class JobSnapshot:
    """One vendor-side view of an asynchronous job, before status normalization."""
    id: str
    status: str #vendor vocabulary
    output: Any = None
    error: Any = None
    status_url: Optional[str] = None
    raw: Any = None


class ChatProvider(ABC):
    @abstractmethod
    async def chat(self, req: ChatRequest) -> ModelResponse:
        raise NotImplementedError

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class JobProvider(ABC):
    """Vendor that runs generation work as create-then-poll jobs."""

    @abstractmethod
    async def submit(self, req: JobRequest) -> JobSnapshot:
        raise NotImplementedError

    @abstractmethod
    async def fetch(self, job_id: str) -> JobSnapshot:
        raise NotImplementedError

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None
