"""
API models for single-job media endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional

from .common import APIResponse


class AnimateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: Optional[str] = Field(None, alias="imageBase64")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    prompt: Optional[str] = None

    @model_validator(mode="after")
    def require_image(self):
        if not (self.image_url or self.image_base64):
            raise ValueError("Missing image data: please provide either imageUrl or imageBase64.")
        return self


class RemoveBackgroundRequest(BaseModel):
    image_base64: str = Field(..., min_length=1)


class EditImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    input_image: str = Field(..., min_length=1, description="URL or data URL of the image to edit")


class PhotographerRequest(BaseModel):
    photo_input: str = Field(..., min_length=1, description="What the photo should capture")


class VideoResponse(APIResponse):
    model_config = ConfigDict(populate_by_name=True)

    video_url: str = Field(..., alias="videoUrl")


class ImageResponse(APIResponse):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl")
