from __future__ import annotations
from typing import Any, Dict, Optional
from os import getenv
import uuid
import httpx

from .base import JobProvider, JobRequest, JobSnapshot, ModelError, ModelTimeout

API_BASE = "https://api.ideogram.ai/v1"


class IdeogramProvider(JobProvider):
    """Ideogram generate endpoint. Responds synchronously with every image,
    so the job is terminal on submission and ``output`` is the full list."""

    def __init__(self, api_key: Optional[str] = None, api_key_env: str = "IDEOGRAM_API_KEY", base_url: str = API_BASE, request_timeout_s: float = 120.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Api-Key": api_key or getenv(api_key_env) or ""},
            timeout=request_timeout_s,
        )

    async def submit(self, req: JobRequest) -> JobSnapshot:
        # multipart form fields, all sent as strings
        form: Dict[str, Any] = {k: (None, str(v)) for k, v in req.input.items()}
        try:
            response = await self.client.post(f"/{req.model}/generate", files=form)
        except httpx.TimeoutException as e:
            raise ModelTimeout(f"Ideogram request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ModelError(f"Ideogram request failed: {e}") from e

        if response.status_code >= 400:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            raise ModelError(
                f"Ideogram rejected request (HTTP {response.status_code}): {body}",
                status_code=response.status_code,
                payload=body,
            )

        body = response.json()
        images = [item.get("url") for item in body.get("data", []) if item.get("url")]
        return JobSnapshot(
            id=f"ideogram-{uuid.uuid4().hex[:12]}",
            status="succeeded",
            output=images,
            raw=body,
        )

    async def fetch(self, job_id: str) -> JobSnapshot:
        raise ModelError(f"Ideogram job {job_id} completes on submission and cannot be polled")

    async def aclose(self) -> None:
        await self.client.aclose()
