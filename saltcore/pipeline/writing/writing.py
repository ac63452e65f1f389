import logging
from typing import Annotated, List, Sequence, Union

from pydantic import BaseModel, Field, StringConstraints

from saltcore.models.manager import ModelManager
from ..errors import InvalidRequestError

logger = logging.getLogger(__name__)

COMMUNICATION_TYPES = (
    "social-facebook", "social-twitter", "social-instagram",
    "email-newsletter", "email-thankyou", "email-announcement",
    "event-description",
)


class BackgroundSuggestions(BaseModel):
    suggestions: List[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]] = Field(..., min_length=5, max_length=5)


class WritingPipeline:
    """Single-shot text tasks: research notes, outreach copy, poster ideas."""

    def __init__(self, manager: ModelManager):
        self.model_manager = manager

    async def research(self, topic: str) -> str:
        response = await self.model_manager.call("research", variables={"topic": topic})
        return response.content

    async def communication_draft(self, type: str, topic: str, key_points: Union[str, Sequence[str]], tone: str, audience: str) -> str:
        if type not in COMMUNICATION_TYPES:
            raise InvalidRequestError(f"type must be one of: {', '.join(COMMUNICATION_TYPES)}")
        if not isinstance(key_points, str):
            key_points = ", ".join(key_points)

        response = await self.model_manager.call("communication", variables={
            "type": type,
            "topic": topic,
            "key_points": key_points,
            "tone": tone,
            "audience": audience,
        })
        return response.content

    async def suggest_backgrounds(self, headline: str, sub_headline: str) -> List[str]:
        result = await self.model_manager.call_validated(
            "suggest_backgrounds",
            BackgroundSuggestions,
            variables={"headline": headline, "sub_headline": sub_headline},
        )
        logger.info(f"Background suggestions validated after {result.attempts_used} attempt(s)")
        return result.value.suggestions
