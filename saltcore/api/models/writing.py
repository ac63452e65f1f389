"""
API models for the single-shot writing endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Union

from .common import APIResponse


class DepthRequest(BaseModel):
    research_topic: str = Field(..., min_length=1)


class DepthResponse(APIResponse):
    analysis: str


class AromaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(..., min_length=1, description="Communication type, e.g. email-newsletter")
    topic: str = Field(..., min_length=1)
    key_points: Union[str, List[str]] = Field(..., alias="keyPoints")
    tone: str = Field(..., min_length=1)
    audience: str = Field(..., min_length=1)


class AromaResponse(APIResponse):
    draft: str
