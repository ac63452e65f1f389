"""
Poster pipeline: typography image + scene description -> composite poster.

Three interchangeable strategies produce the same artifact kind:

- ``edit``       download typography, enhance the description with a chat
                 call, run an image-edit job seeded with the typography.
- ``generate``   text-to-image from the description alone, always inline.
- ``responses``  typography and prompt sent together to a vision+generation
                 call; the first generated image is used.

Any stage failure surfaces as ``PipelineStageError``. There is no fallback
from one strategy to another.
"""

from __future__ import annotations
import base64
import logging
from typing import Optional, Tuple

from saltcore.models.manager import ModelManager
from ..artifacts import ArtifactKind, FailurePolicy, InlineBlob, PipelineArtifact, RemoteRef, Payload, to_payload
from ..errors import NoImageProducedError
from ..stages import StageRun
from ...utils.image_converter import guess_media_type, staged_file
from .types import PosterRequest, PosterStrategy, TYPOGRAPHY_STYLES, DEFAULT_TYPOGRAPHY_STYLE

logger = logging.getLogger(__name__)


def _canvas(size: Optional[str]) -> Tuple[int, int]:
    try:
        width, height = (int(part) for part in str(size).lower().split("x"))
        return width, height
    except (ValueError, TypeError):
        return 1536, 1024


class PosterPipeline:
    def __init__(self, manager: ModelManager):
        self.model_manager = manager
        self._strategies = {
            PosterStrategy.EDIT: self._run_edit,
            PosterStrategy.GENERATE: self._run_generate,
            PosterStrategy.RESPONSES: self._run_responses,
        }

    async def run(self, strategy: Optional[str], typography_ref: str, description: str) -> PipelineArtifact:
        return await self.process(PosterRequest(typography_ref, description, strategy))

    async def process(self, request: PosterRequest) -> PipelineArtifact:
        resolved = PosterStrategy.resolve(request.strategy)
        stages = StageRun(f"poster:{resolved.value}", FailurePolicy.FAIL_FAST)
        logger.info(f"Poster run with strategy '{resolved.value}' (requested: {request.strategy!r})")

        payload = await self._strategies[resolved](stages, request)
        return PipelineArtifact(
            kind=ArtifactKind.COMPOSITE_IMAGE,
            payload=payload,
            stages=stages.stages,
            metadata={"strategy": resolved.value, "requested_strategy": request.strategy},
        )

    # --- strategies ---

    async def _run_edit(self, stages: StageRun, request: PosterRequest) -> Payload:
        typography = await stages.run("typography-download", self._load_typography, request.typography_ref)
        enhanced = await stages.run("prompt-enhancement", self._enhance_description, request.description)
        return await stages.run("composite", self._composite_edit, typography, enhanced)

    async def _run_generate(self, stages: StageRun, request: PosterRequest) -> Payload:
        prompt = await stages.run("composition-prompt", self._compose_prompt, request.description)
        return await stages.run("background-image", self._text_to_image, prompt)

    async def _run_responses(self, stages: StageRun, request: PosterRequest) -> Payload:
        typography = await stages.run("typography-download", self._load_typography, request.typography_ref)
        return await stages.run("vision-generation", self._vision_generate, typography, request.description)

    # --- stages ---

    async def _load_typography(self, typography_ref: str) -> PipelineArtifact:
        payload = to_payload(typography_ref)
        if isinstance(payload, RemoteRef):
            data = await self.model_manager.download(payload.url)
            payload = InlineBlob(data, guess_media_type(data))
        return PipelineArtifact(kind=ArtifactKind.IMAGE_REFERENCE, payload=payload)

    async def _enhance_description(self, description: str) -> PipelineArtifact:
        response = await self.model_manager.call("poster_enhance", variables={"description": description})
        enhanced = response.content.strip()
        if not enhanced:
            raise ValueError("Prompt enhancement returned an empty description")
        return PipelineArtifact(kind=ArtifactKind.ENHANCED_PROMPT, payload=InlineBlob.from_text(enhanced))

    async def _composite_edit(self, typography: PipelineArtifact, enhanced: PipelineArtifact) -> Payload:
        task = self.model_manager.task("poster_edit")
        width, height = _canvas(task.params.get("size"))
        prompt = self.model_manager.prompts.render_text(task.prompt_ref, {
            "enhanced_description": enhanced.payload.text,
            "width": width,
            "height": height,
        })
        # the typography file only lives for the duration of this stage
        with staged_file(typography.payload.data, suffix=".png") as path:
            handle = await self.model_manager.run_job("poster_edit", {"image": str(path), "prompt": prompt})
        return to_payload(handle.output)

    async def _compose_prompt(self, description: str) -> PipelineArtifact:
        task = self.model_manager.task("poster_generate")
        prompt = self.model_manager.prompts.render_text(task.prompt_ref, {"description": description})
        return PipelineArtifact(kind=ArtifactKind.ENHANCED_PROMPT, payload=InlineBlob.from_text(prompt))

    async def _text_to_image(self, prompt: PipelineArtifact) -> InlineBlob:
        handle = await self.model_manager.run_job("poster_generate", {"prompt": prompt.payload.text})
        payload = to_payload(handle.output)
        if isinstance(payload, RemoteRef):
            data = await self.model_manager.download(payload.url)
            payload = InlineBlob(data, guess_media_type(data))
        return payload

    async def _vision_generate(self, typography: PipelineArtifact, description: str) -> InlineBlob:
        results = await self.model_manager.respond(
            "poster_responses",
            {"description": description},
            image_base64=typography.payload.b64,
        )
        if not results:
            raise NoImageProducedError()
        return InlineBlob(base64.b64decode(results[0]), "image/png")

    # --- typography ---

    async def typography(self, headline: str, sub_headline: str, style: Optional[str] = None) -> PipelineArtifact:
        """Generate a set of typography candidates for a headline."""
        stages = StageRun("typography", FailurePolicy.FAIL_FAST)
        style_prompt = TYPOGRAPHY_STYLES.get(style or "", TYPOGRAPHY_STYLES[DEFAULT_TYPOGRAPHY_STYLE])

        async def generate() -> Tuple[Payload, ...]:
            task = self.model_manager.task("typography")
            prompt = self.model_manager.prompts.render_text(task.prompt_ref, {
                "headline": headline,
                "sub_headline": sub_headline,
                "style_prompt": style_prompt,
            })
            handle = await self.model_manager.run_job("typography", {"prompt": prompt})
            candidates = handle.raw_output if isinstance(handle.raw_output, list) else [handle.output]
            return tuple(to_payload(item) for item in candidates)

        payloads = await stages.run("typography", generate)
        return PipelineArtifact(
            kind=ArtifactKind.TYPOGRAPHY_SET,
            payload=payloads[0],
            variants=payloads,
            stages=stages.stages,
            metadata={"style": style if style in TYPOGRAPHY_STYLES else DEFAULT_TYPOGRAPHY_STYLE},
        )
