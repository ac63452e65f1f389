from __future__ import annotations
from typing import Optional, Dict, Any, List, Type, TypeVar, Union, Awaitable, Callable
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum
import asyncio
import os
import time
import logging
from contextlib import asynccontextmanager

import httpx
import yaml
from pydantic import BaseModel

from .prompts import PromptManager
from .providers.base import ChatProvider, JobProvider, ChatRequest, ModelResponse, JobRequest, ModelError
from .providers.openai_sdk import OpenAIProvider
from .providers.replicate import ReplicateProvider
from .providers.ideogram import IdeogramProvider
from ..pipeline.generation.retrier import ValidatedRetrier, Validated
from ..pipeline.jobs.poller import PollEngine
from ..pipeline.jobs.types import PollOptions, TaskHandle
from ..utils.image_converter import download_bytes

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_CONFIG_PATH = Path(__file__).parents[1] / "config" / "config.yaml"


class Provider(Enum):
    OPENAI = "openai"
    REPLICATE = "replicate"
    IDEOGRAM = "ideogram"


@dataclass(frozen=True)
class TaskConfig:
    name: str
    provider: str
    model: str
    params: Dict[str, Any] = field(default_factory=dict)
    prompt_ref: Optional[str] = None #e.g. "sermon/angles@v1"
    kind: Optional[str] = None #job kind for job tasks
    poll: Optional[PollOptions] = None
    max_attempts: int = 3


class ModelManager:
    """Registry of vendor providers and the tasks configured against them.

    Every task in the YAML config names a provider and a model. Chat tasks go
    through ``call``/``call_validated``; job tasks go through ``run_job``,
    which drives the vendor job with a ``PollEngine``.
    """

    def __init__(
        self,
        config_path: Union[Path, str, None] = None,
        prompts_dir: Optional[Path] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config_path = Path(config_path or os.getenv("SALTCORE_CONFIG") or DEFAULT_CONFIG_PATH)
        self.config = self._load_config()
        self._providers: Dict[str, Union[ChatProvider, JobProvider]] = {}
        self._stats: Dict[str, Dict[str, Any]] = {} #performance tracking
        self._sleep = sleep
        self._clock = clock
        self._http = http_client

        if prompts_dir:
            self.prompts = PromptManager(prompts_dir)
        else:
            package_root = Path(__file__).parents[1]
            self.prompts = PromptManager(package_root.parent / "prompts")

    def _load_config(self) -> Dict:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config not found: {self.config_path}")
        with open(self.config_path) as f:
            config = yaml.safe_load(f) or {}

        if 'providers' not in config:
            raise ValueError("Config missing 'providers'")
        if 'tasks' not in config:
            raise ValueError("Config missing 'tasks'")

        for task_name, task_cfg in config['tasks'].items():
            if 'provider' not in task_cfg:
                raise ValueError(f"Task '{task_name}' missing provider")
            if 'model' not in task_cfg:
                raise ValueError(f"Task '{task_name}' missing model")
            if task_cfg['provider'] not in config['providers']:
                raise ValueError(f"Task '{task_name}' references unknown provider '{task_cfg['provider']}'")

        return config

    def task(self, name: str) -> TaskConfig:
        if name not in self.config["tasks"]:
            raise ValueError(f"Unknown task: {name}")
        cfg = self.config["tasks"][name]
        poll = PollOptions(**cfg["poll"]) if cfg.get("poll") else None
        return TaskConfig(
            name=name,
            provider=cfg["provider"],
            model=cfg["model"],
            params=dict(cfg.get("params") or {}),
            prompt_ref=cfg.get("prompt"),
            kind=cfg.get("kind"),
            poll=poll,
            max_attempts=int(cfg.get("max_attempts", 3)),
        )

    def _get_provider(self, provider_name: str):
        if provider_name in self._providers:
            return self._providers[provider_name]
        if provider_name not in self.config['providers']:
            raise ValueError(f"Unknown provider: {provider_name}")

        provider_cfg = self.config["providers"][provider_name]
        provider_type = provider_cfg["type"]
        settings = provider_cfg.get("settings") or {}

        if provider_type == Provider.OPENAI.value:
            provider = OpenAIProvider(**settings)
        elif provider_type == Provider.REPLICATE.value:
            provider = ReplicateProvider(**settings)
        elif provider_type == Provider.IDEOGRAM.value:
            provider = IdeogramProvider(**settings)
        else:
            raise ValueError(f"Unknown provider type: {provider_type}")
        self._providers[provider_name] = provider
        logger.info(f"initialized provider: {provider_name}")
        return provider

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=60.0)
        return self._http

    async def call(self, task: str, prompt_ref: Optional[str] = None, variables: Optional[Dict[str, Any]] = None, schema: Optional[Type[BaseModel]] = None, images: Optional[List[bytes]] = None, messages_override: Optional[List[Dict[str, str]]] = None, **params_override) -> ModelResponse:
        start_time = time.perf_counter()
        task_cfg = self.task(task)

        if messages_override:
            rendered = messages_override
            logger.debug(f"Using message override for task '{task}'")
        else:
            prompt_ref = prompt_ref or task_cfg.prompt_ref
            if not prompt_ref:
                raise ValueError(f"Task '{task}' has no prompt configured")
            rendered = self.prompts.render(prompt_ref, variables or {})

        params = {**task_cfg.params, **params_override}
        if prompt_ref and not messages_override:
            stop = self.prompts.load_prompt(prompt_ref).stop_sequences
            if stop:
                params.setdefault("stop", stop)

        provider = self._get_provider(task_cfg.provider)
        if not isinstance(provider, ChatProvider):
            raise ValueError(f"Task '{task}' provider '{task_cfg.provider}' does not support chat")

        request = ChatRequest(model=task_cfg.model, messages=rendered, images=images, params=params, schema=schema)
        try:
            response = await provider.chat(request)
        except ModelError:
            self._track_stats(task, (time.perf_counter() - start_time) * 1000, success=False)
            raise
        self._track_stats(task, (time.perf_counter() - start_time) * 1000, success=True)
        return response

    async def call_validated(self, task: str, shape: Type[T], variables: Optional[Dict[str, Any]] = None, prompt_ref: Optional[str] = None, max_attempts: Optional[int] = None, **params_override) -> Validated[T]:
        """Chat task whose answer must parse and validate as ``shape``."""
        budget = max_attempts or self.task(task).max_attempts

        async def ask() -> str:
            response = await self.call(task, prompt_ref, variables, **params_override)
            return response.content

        return await ValidatedRetrier(shape, budget).generate(ask)

    def poller(self, task: str) -> PollEngine:
        task_cfg = self.task(task)
        provider = self._get_provider(task_cfg.provider)
        if not isinstance(provider, JobProvider):
            raise ValueError(f"Task '{task}' provider '{task_cfg.provider}' does not run jobs")
        return PollEngine(provider, task_cfg.poll, sleep=self._sleep, clock=self._clock)

    def job_request(self, task: str, job_input: Dict[str, Any]) -> JobRequest:
        task_cfg = self.task(task)
        return JobRequest(
            kind=task_cfg.kind or task,
            model=task_cfg.model,
            input={**task_cfg.params, **job_input},
        )

    async def run_job(self, task: str, job_input: Dict[str, Any], **poll_overrides) -> TaskHandle:
        """Submit a job task and wait for its terminal state."""
        start_time = time.perf_counter()
        engine = self.poller(task)
        options = engine.options.merged(**poll_overrides) if poll_overrides else None
        try:
            handle = await engine.run(self.job_request(task, job_input), options)
        except Exception:
            self._track_stats(task, (time.perf_counter() - start_time) * 1000, success=False)
            raise
        self._track_stats(task, (time.perf_counter() - start_time) * 1000, success=True)
        return handle

    async def respond(self, task: str, variables: Dict[str, Any], image_base64: Optional[str] = None, prompt_ref: Optional[str] = None) -> List[str]:
        """Vision + image generation task; returns base64 image results."""
        task_cfg = self.task(task)
        provider = self._get_provider(task_cfg.provider)
        if not isinstance(provider, OpenAIProvider):
            raise ValueError(f"Task '{task}' provider '{task_cfg.provider}' has no vision generation")
        prompt = self.prompts.render_text(prompt_ref or task_cfg.prompt_ref, variables)
        return await provider.respond(task_cfg.model, prompt, image_base64, tool=task_cfg.params.get("tool"))

    async def download(self, url: str) -> bytes:
        try:
            return await download_bytes(self.http, url)
        except httpx.HTTPStatusError as e:
            raise ModelError(f"Download failed with HTTP {e.response.status_code}: {url}", status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            raise ModelError(f"Download failed for {url}: {e}") from e

    def _track_stats(self, task: str, latency_ms: float, success: bool):
        if task not in self._stats:
            self._stats[task] = {
                'total_calls': 0,
                'successful_calls': 0,
                'total_latency_ms': 0
            }

        stats = self._stats[task]
        stats['total_calls'] += 1
        if success:
            stats['successful_calls'] += 1
            stats['total_latency_ms'] += latency_ms

    def get_stats(self, task: Optional[str] = None) -> Dict:
        if task:
            return self._stats.get(task, {})
        return self._stats

    async def aclose(self):
        for name, provider in self._providers.items():
            try:
                await provider.aclose()
                logger.info(f"Cleaned up provider: {name}")
            except Exception as e:
                logger.error(f"Cleanup failed for {name}: {e}")
        self._providers.clear()
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    @asynccontextmanager
    async def session(self):
        try:
            yield self
        finally:
            await self.aclose()
