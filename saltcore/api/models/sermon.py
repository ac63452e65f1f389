"""
API models for the sermon ("flavor") endpoint.

Without ``chosenAngle`` the endpoint returns candidate angles; with it, the
outline for that angle plus an optional illustration.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from .common import APIResponse


class FlavorRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(..., min_length=1)
    scripture: str = Field(..., min_length=1)
    length: str = Field(..., min_length=1, description="Sermon length, e.g. '30 minutes'")
    audience: str = Field(..., min_length=1)
    chosen_angle: Optional[str] = Field(None, alias="chosenAngle", description="Title of the chosen angle")


class AngleModel(BaseModel):
    title: str
    summary: str
    journey: str


class AnglesResponse(APIResponse):
    model_config = ConfigDict(populate_by_name=True)

    angles: List[AngleModel]
    attempts_used: int = Field(..., alias="attemptsUsed")


class OutlineResponse(APIResponse):
    model_config = ConfigDict(populate_by_name=True)

    outline: str
    image_url: Optional[str] = Field(None, alias="imageUrl", description="Null when the illustration failed")
