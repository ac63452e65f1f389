"""
Single-job media operations driven through the poll engine: animation,
background removal, photo generation and prompt-guided image edits.
"""

from __future__ import annotations
import logging
from typing import Optional

from saltcore.models.manager import ModelManager
from ..artifacts import ArtifactKind, FailurePolicy, InlineBlob, PipelineArtifact, RemoteRef, to_payload
from ..stages import StageRun
from ...utils.image_converter import guess_media_type

logger = logging.getLogger(__name__)


class MediaPipeline:
    def __init__(self, manager: ModelManager):
        self.model_manager = manager

    async def animate(self, image: str, prompt: Optional[str] = None) -> PipelineArtifact:
        """Animate an image given as URL, data URL or bare base64."""
        stages = StageRun("animate", FailurePolicy.FAIL_FAST)
        source = await stages.run("image-prepare", self._inline_image, image)
        if prompt is None:
            task = self.model_manager.task("animate")
            prompt = self.model_manager.prompts.render_text(task.prompt_ref, {})

        handle = await stages.run("animation", self.model_manager.run_job, "animate", {
            "image": source.ref,
            "prompt": prompt,
        })
        return PipelineArtifact(ArtifactKind.VIDEO_REFERENCE, to_payload(handle.output, "video/mp4"), stages.stages,
                                metadata={"job_id": handle.id})

    async def remove_background(self, image: str) -> PipelineArtifact:
        stages = StageRun("remove-background", FailurePolicy.FAIL_FAST)
        source = await stages.run("image-prepare", self._inline_image, image)
        handle = await stages.run("background-removal", self.model_manager.run_job, "remove_background", {
            "image": source.ref,
        })
        return PipelineArtifact(ArtifactKind.IMAGE_REFERENCE, to_payload(handle.output), stages.stages,
                                metadata={"job_id": handle.id})

    async def photograph(self, subject: str) -> PipelineArtifact:
        stages = StageRun("photographer", FailurePolicy.FAIL_FAST)
        task = self.model_manager.task("photographer")
        prompt = self.model_manager.prompts.render_text(task.prompt_ref, {"subject": subject})
        handle = await stages.run("photo", self.model_manager.run_job, "photographer", {"prompt": prompt})
        return PipelineArtifact(ArtifactKind.IMAGE_REFERENCE, to_payload(handle.output), stages.stages,
                                metadata={"job_id": handle.id})

    async def edit_image(self, prompt: str, input_image: str) -> PipelineArtifact:
        stages = StageRun("edit-image", FailurePolicy.FAIL_FAST)
        handle = await stages.run("image-edit", self.model_manager.run_job, "edit_image", {
            "prompt": prompt,
            "input_image": input_image,
        })
        return PipelineArtifact(ArtifactKind.IMAGE_REFERENCE, to_payload(handle.output), stages.stages,
                                metadata={"job_id": handle.id})

    async def _inline_image(self, image: str) -> InlineBlob:
        payload = to_payload(image)
        if isinstance(payload, RemoteRef):
            data = await self.model_manager.download(payload.url)
            return InlineBlob(data, guess_media_type(data))
        return payload
