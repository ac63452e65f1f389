"""
Single-job media endpoints. Each one drives one vendor job to completion.
"""

from fastapi import APIRouter, Depends

from ..models.media import (
    AnimateRequest, RemoveBackgroundRequest, EditImageRequest, PhotographerRequest,
    VideoResponse, ImageResponse,
)
from ..dependencies.manager import get_model_manager
from saltcore.models.manager import ModelManager
from saltcore.pipeline.media.media import MediaPipeline

router = APIRouter()


@router.post("/animate", response_model=VideoResponse)
async def animate(request: AnimateRequest, model_manager: ModelManager = Depends(get_model_manager)):
    """Animate a still image into a short video clip."""
    artifact = await MediaPipeline(model_manager).animate(request.image_url or request.image_base64, request.prompt)
    return VideoResponse(video_url=artifact.ref)


@router.post("/remove-background", response_model=ImageResponse)
async def remove_background(request: RemoveBackgroundRequest, model_manager: ModelManager = Depends(get_model_manager)):
    artifact = await MediaPipeline(model_manager).remove_background(request.image_base64)
    return ImageResponse(image_url=artifact.ref)


@router.post("/edit-image", response_model=ImageResponse)
async def edit_image(request: EditImageRequest, model_manager: ModelManager = Depends(get_model_manager)):
    artifact = await MediaPipeline(model_manager).edit_image(request.prompt, request.input_image)
    return ImageResponse(image_url=artifact.ref)


@router.post("/photographer", response_model=ImageResponse)
async def photographer(request: PhotographerRequest, model_manager: ModelManager = Depends(get_model_manager)):
    artifact = await MediaPipeline(model_manager).photograph(request.photo_input)
    return ImageResponse(image_url=artifact.ref)
