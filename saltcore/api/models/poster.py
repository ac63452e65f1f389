"""
API models for the poster endpoints.

Field aliases keep the camelCase names the web client sends.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional

from .common import APIResponse


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def strip_strings(cls, v):
        return v.strip() if isinstance(v, str) else v


# API Request Models
class GenerateFinalRequest(_Request):
    """Compose the final poster from a typography image and a scene description."""
    typography_url: str = Field(..., alias="typographyUrl", min_length=1, description="Typography image URL or data URL")
    image_description: str = Field(..., alias="imageDescription", min_length=1, description="Background scene description")
    method: Optional[str] = Field("edit", description="Strategy: edit, generate or responses. Unknown values use edit.")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "typographyUrl": "https://ideogram.ai/api/images/ephemeral/typo.png",
                "imageDescription": "a sunset over mountains",
                "method": "edit",
            }
        },
    )


class TypographyRequest(_Request):
    headline: str = Field(..., min_length=1)
    sub_headline: str = Field(..., alias="subHeadline", min_length=1)
    style: str = Field(..., min_length=1, description="focused, trendy, kids or handwritten")


class SuggestBackgroundsRequest(_Request):
    headline: str = Field(..., min_length=1)
    sub_headline: str = Field(..., alias="subHeadline", min_length=1)


# API Response Models
class GenerateFinalResponse(APIResponse):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl", description="URL or data URL of the poster")
    kind: str = Field(..., description="Artifact kind")
    strategy: str = Field(..., description="Strategy that actually ran")
    stages: List[str] = Field(default_factory=list, description="Stages executed, in order")


class TypographyImage(BaseModel):
    url: str


class TypographyResponse(APIResponse):
    images: List[TypographyImage]


class SuggestBackgroundsResponse(APIResponse):
    suggestions: List[str]
