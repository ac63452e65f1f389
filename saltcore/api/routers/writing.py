"""
Single-shot writing endpoints: research ("depth") and communication
drafts ("aroma").
"""

from fastapi import APIRouter, Depends

from ..models.writing import DepthRequest, DepthResponse, AromaRequest, AromaResponse
from ..dependencies.manager import get_model_manager
from saltcore.models.manager import ModelManager
from saltcore.pipeline.writing.writing import WritingPipeline

router = APIRouter()


@router.post("/depth", response_model=DepthResponse)
async def depth(request: DepthRequest, model_manager: ModelManager = Depends(get_model_manager)):
    analysis = await WritingPipeline(model_manager).research(request.research_topic)
    return DepthResponse(analysis=analysis)


@router.post("/aroma", response_model=AromaResponse)
async def aroma(request: AromaRequest, model_manager: ModelManager = Depends(get_model_manager)):
    """Draft a church communication of the requested type."""
    draft = await WritingPipeline(model_manager).communication_draft(
        request.type, request.topic, request.key_points, request.tone, request.audience,
    )
    return AromaResponse(draft=draft)
