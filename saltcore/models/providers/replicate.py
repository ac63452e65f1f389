from __future__ import annotations
from typing import Any, Dict, Optional
from os import getenv
import httpx
from tenacity import retry, stop_after_attempt, wait_exponential_jitter, retry_if_exception

from .base import JobProvider, JobRequest, JobSnapshot, ModelError, ModelRetryable, ModelTimeout, RETRYABLE_STATUS

API_BASE = "https://api.replicate.com/v1"

def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.ConnectError, httpx.RemoteProtocolError)):
        return True
    return isinstance(exc, ModelRetryable)


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class ReplicateProvider(JobProvider):
    """Replicate predictions over the HTTP API.

    ``model`` is either ``owner/name`` (latest version) or
    ``owner/name:version``.
    """

    def __init__(self, api_token: Optional[str] = None, api_token_env: str = "REPLICATE_API_TOKEN", base_url: str = API_BASE, request_timeout_s: float = 60.0, client: Optional[httpx.AsyncClient] = None):
        token = api_token or getenv(api_token_env) or getenv("REPLICATE_API_KEY")
        self.base_url = base_url.rstrip("/")
        self.request_timeout_s = request_timeout_s
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            timeout=request_timeout_s,
        )

    def _snapshot(self, body: Dict[str, Any]) -> JobSnapshot:
        if not isinstance(body, dict) or "id" not in body:
            raise ModelError(f"Unexpected prediction body from Replicate: {body!r}", payload=body)
        return JobSnapshot(
            id=body["id"],
            status=body.get("status", ""),
            output=body.get("output"),
            error=body.get("error"),
            status_url=(body.get("urls") or {}).get("get"),
            raw=body,
        )

    async def submit(self, req: JobRequest) -> JobSnapshot:
        if ":" in req.model:
            path, payload = "/predictions", {"version": req.model.split(":", 1)[1], "input": req.input}
        else:
            path, payload = f"/models/{req.model}/predictions", {"input": req.input}

        try:
            response = await self.client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise ModelTimeout(f"Replicate submission timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ModelError(f"Replicate submission failed: {e}") from e

        if response.status_code >= 400:
            body = _error_body(response)
            raise ModelError(
                f"Replicate rejected prediction (HTTP {response.status_code}): {body}",
                status_code=response.status_code,
                payload=body,
            )
        return self._snapshot(response.json())

    @retry(reraise=True, wait=wait_exponential_jitter(initial=0.5, max=4), stop=stop_after_attempt(3), retry=retry_if_exception(_is_retryable))
    async def _get_prediction(self, job_id: str) -> httpx.Response:
        response = await self.client.get(f"/predictions/{job_id}")
        if response.status_code in RETRYABLE_STATUS:
            raise ModelRetryable(
                f"Polling failed: HTTP status {response.status_code}",
                status_code=response.status_code,
                payload=_error_body(response),
            )
        return response

    async def fetch(self, job_id: str) -> JobSnapshot:
        try:
            response = await self._get_prediction(job_id)
        except httpx.TimeoutException as e:
            raise ModelTimeout(f"Replicate polling timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ModelError(f"Replicate polling failed: {e}") from e

        if response.status_code >= 400:
            raise ModelError(
                f"Polling failed: HTTP status {response.status_code}",
                status_code=response.status_code,
                payload=_error_body(response),
            )
        return self._snapshot(response.json())

    async def health_check(self) -> bool:
        try:
            response = await self.client.get("/account")
            return response.status_code < 400
        except httpx.HTTPError:
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
