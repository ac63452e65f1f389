from __future__ import annotations
from typing import Dict, Any, Optional, List
import time
import uuid
from os import getenv
from pathlib import Path
from pydantic import ValidationError

from openai import AsyncOpenAI
from openai import APIError, APIStatusError, APITimeoutError, APIConnectionError
from tenacity import retry, stop_after_attempt, wait_exponential_jitter, retry_if_exception

from .base import (
    ChatProvider, JobProvider, ChatRequest, ModelResponse, JobRequest, JobSnapshot,
    ModelError, ModelRetryable, ModelTimeout, RETRYABLE_STATUS,
)
from ...utils.image_converter import to_base64

# Define retryable OpenAI exceptions
def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (APITimeoutError, APIConnectionError)):
        return True
    if isinstance(exc, APIStatusError) and exc.status_code in RETRYABLE_STATUS:
        return True
    return isinstance(exc, ModelRetryable)


def _wrap(exc: Exception, what: str) -> ModelError:
    if isinstance(exc, APITimeoutError):
        return ModelTimeout(f"OpenAI timeout during {what}: {exc}")
    if isinstance(exc, APIStatusError):
        cls = ModelRetryable if _is_retryable(exc) else ModelError
        return cls(f"OpenAI API error during {what}: {exc}", status_code=exc.status_code, payload=exc.body)
    if isinstance(exc, APIError):
        cls = ModelRetryable if _is_retryable(exc) else ModelError
        return cls(f"OpenAI API error during {what}: {exc}", payload=getattr(exc, "body", None))
    return ModelError(f"OpenAI provider error during {what}: {exc}")


class OpenAIProvider(ChatProvider, JobProvider):
    """Chat completions, image edit/generation and the Responses API.

    Image calls return synchronously, so they are exposed as jobs that are
    already terminal when ``submit`` returns.
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, api_key_env: str = "OPENAI_API_KEY", default_headers: Optional[Dict[str, str]] = None, timeout: float = 60.0, **kwargs):
        self.client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key or getenv(api_key_env),
            default_headers=default_headers or {},
            timeout=timeout,
            **kwargs
        )
        self.base_url = base_url
        self.timeout = timeout

    def _format_messages(self, messages: List[Dict[str, Any]], images: List[Any]) -> List[Dict[str, Any]]:
        """Format messages with images for OpenAI - converts to content array format"""
        if not images:
            return messages

        image_contents = []
        for img in images:
            try:
                base64_data = to_base64(img)
            except (ValueError, FileNotFoundError) as e:
                raise ModelError(f"Failed to convert image for OpenAI: {e}") from e
            image_contents.append({
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{base64_data}", "detail": "high"}
            })

        # images go on the first user message only
        processed_messages = []
        images_added = False
        for msg in messages:
            if msg.get("role") == "user" and not images_added:
                processed_msg = msg.copy()
                content_array = [{"type": "text", "text": msg.get("content", "")}]
                content_array.extend(image_contents)
                processed_msg["content"] = content_array
                processed_messages.append(processed_msg)
                images_added = True
            else:
                processed_messages.append(msg)

        return processed_messages

    @retry(reraise=True, wait=wait_exponential_jitter(initial=0.5, max=4), stop=stop_after_attempt(3), retry=retry_if_exception(_is_retryable))
    async def chat(self, req: ChatRequest) -> ModelResponse:
        params = dict(req.params or {})

        if req.schema is not None:
            params["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "response_schema", "schema": req.schema.model_json_schema()}
            }

        completion_params = {
            "model": req.model,
            "messages": self._format_messages(req.messages, req.images or []),
            **params
        }
        # extra_body carries OpenRouter-only parameters
        if req.extra_body:
            completion_params["extra_body"] = req.extra_body

        t0 = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(**completion_params)
        except Exception as e:
            raise _wrap(e, "chat completion") from e
        dt = time.perf_counter() - t0

        try:
            content = response.choices[0].message.content or ""
        except (IndexError, AttributeError) as e:
            raise ModelError(f"Invalid response structure from OpenAI API: {e}") from e

        meta = {
            "provider": "openai",
            "model": getattr(response, 'model', req.model),
            "latency": dt,
            "base_url": self.base_url or "https://api.openai.com/v1",
        }
        if getattr(response, 'usage', None):
            meta["usage"] = response.usage.model_dump()
        meta["finish_reason"] = getattr(response.choices[0], 'finish_reason', None)
        if hasattr(response, 'id'):
            meta["id"] = response.id

        parsed = None
        if req.schema is not None and content:
            try:
                parsed = req.schema.model_validate_json(content)
            except ValidationError as ve:
                # callers that need a guaranteed shape go through ValidatedRetrier
                meta["validation_error"] = str(ve)

        return ModelResponse(content=content, raw=response, meta=meta, parsed=parsed)

    async def submit(self, req: JobRequest) -> JobSnapshot:
        params = dict(req.input)
        prompt = params.pop("prompt")
        try:
            if req.kind == "image-edit":
                image_path = Path(params.pop("image"))
                with open(image_path, "rb") as fh:
                    result = await self.client.images.edit(model=req.model, image=fh, prompt=prompt, **params)
            elif req.kind == "text-to-image":
                result = await self.client.images.generate(model=req.model, prompt=prompt, **params)
            else:
                raise ModelError(f"OpenAI does not run '{req.kind}' jobs")
        except ModelError:
            raise
        except Exception as e:
            raise _wrap(e, req.kind) from e

        job_id = f"openai-{uuid.uuid4().hex[:12]}"
        data = result.data[0] if result.data else None
        output = None
        if data is not None and getattr(data, "b64_json", None):
            output = f"data:image/png;base64,{data.b64_json}"
        elif data is not None and getattr(data, "url", None):
            output = data.url
        return JobSnapshot(id=job_id, status="succeeded", output=output, raw=result)

    async def fetch(self, job_id: str) -> JobSnapshot:
        raise ModelError(f"OpenAI image job {job_id} completes on submission and cannot be polled")

    async def respond(self, model: str, prompt: str, image_base64: Optional[str] = None, tool: Optional[Dict[str, Any]] = None) -> List[str]:
        """Combined vision + image generation call; returns base64 image results."""
        content: List[Dict[str, Any]] = [{"type": "input_text", "text": prompt}]
        if image_base64:
            content.append({"type": "input_image", "image_url": f"data:image/png;base64,{image_base64}"})

        try:
            response = await self.client.responses.create(
                model=model,
                input=[{"role": "user", "content": content}],
                tools=[{"type": "image_generation", **(tool or {})}],
            )
        except Exception as e:
            raise _wrap(e, "responses") from e

        return [
            output.result for output in response.output
            if output.type == "image_generation_call" and output.result
        ]

    async def health_check(self) -> bool:
        try:
            await self.client.models.list()
            return True
        except Exception:
            return False

    async def aclose(self) -> None:
        await self.client.close()
