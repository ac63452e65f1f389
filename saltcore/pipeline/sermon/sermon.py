import logging
import re

from saltcore.models.manager import ModelManager
from ..artifacts import FailurePolicy
from ..errors import InvalidRequestError
from ..stages import StageRun
from .types import AnglesResponse, AngleSet, SermonOutline, SermonRequest

logger = logging.getLogger(__name__)

ANGLE_ATTEMPTS = 3

_CYRILLIC = re.compile(r"[\u0400-\u052F\u1C80-\u1C8F\u2DE0-\u2DFF\uA640-\uA69F]")


def scrub_cyrillic(text: str) -> str:
    return _CYRILLIC.sub("", text)


class SermonPipeline:
    """Angle generation, then outline expansion for the angle a person picks.

    The outline comes with a best-effort illustration. With the default
    ``FailurePolicy.DEGRADE`` an illustration failure is logged and reported
    as ``image_url=None``; the outline is still returned.
    """

    def __init__(self, manager: ModelManager, image_policy: FailurePolicy = FailurePolicy.DEGRADE):
        self.model_manager = manager
        self.image_policy = image_policy

    async def process(self, request: SermonRequest):
        if request.chosen_angle:
            return await self.outline(request)
        return await self.angles(request)

    async def angles(self, request: SermonRequest) -> AngleSet:
        result = await self.model_manager.call_validated(
            "sermon_angles",
            AnglesResponse,
            variables=self._variables(request),
            max_attempts=ANGLE_ATTEMPTS,
        )
        logger.info(f"Generated {len(result.value.angles)} angles in {result.attempts_used} attempt(s)")
        return AngleSet(angles=result.value.angles, attempts_used=result.attempts_used)

    async def outline(self, request: SermonRequest) -> SermonOutline:
        if not request.chosen_angle:
            raise InvalidRequestError("An outline needs a chosen angle")

        stages = StageRun("sermon-outline", self.image_policy)
        outline = await stages.run("outline", self._expand_outline, request)

        image_prompt = await stages.optional("image-prompt", self._image_prompt, outline)
        image_url = None
        if image_prompt is not None:
            image_url = await stages.optional("illustration", self._illustrate, image_prompt)

        return SermonOutline(outline=outline, image_url=image_url, image_prompt=image_prompt, stages=list(stages.stages))

    async def _expand_outline(self, request: SermonRequest) -> str:
        response = await self.model_manager.call(
            "sermon_outline",
            variables={**self._variables(request), "angle": request.chosen_angle},
        )
        return scrub_cyrillic(response.content)

    async def _image_prompt(self, outline: str) -> str:
        response = await self.model_manager.call("sermon_image_prompt", variables={"outline": outline})
        prompt = response.content.strip().replace("\n", " ")
        if not prompt:
            raise ValueError("Image prompt generation returned nothing")
        return prompt

    async def _illustrate(self, image_prompt: str) -> str:
        handle = await self.model_manager.run_job("sermon_image", {"prompt": image_prompt})
        if not isinstance(handle.raw_output, str):
            raise ValueError(f"Expected a single image URL, got {type(handle.raw_output).__name__}")
        return handle.output

    @staticmethod
    def _variables(request: SermonRequest) -> dict:
        return {
            "topic": request.topic,
            "scripture": request.scripture,
            "length": request.length,
            "audience": request.audience,
        }
