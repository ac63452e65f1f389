"""
Sermon ("flavor") endpoint. One route serves both phases: angle proposals
when no angle is chosen, the outline once one is.
"""

from typing import Union
from fastapi import APIRouter, Depends

from ..models.sermon import FlavorRequest, AnglesResponse, AngleModel, OutlineResponse
from ..dependencies.manager import get_model_manager
from saltcore.models.manager import ModelManager
from saltcore.pipeline.sermon.sermon import SermonPipeline
from saltcore.pipeline.sermon.types import SermonRequest, AngleSet

router = APIRouter()


@router.post("/flavor", response_model=Union[AnglesResponse, OutlineResponse])
async def flavor(
    request: FlavorRequest,
    model_manager: ModelManager = Depends(get_model_manager)
):
    pipeline = SermonPipeline(model_manager)
    result = await pipeline.process(SermonRequest(
        topic=request.topic,
        scripture=request.scripture,
        length=request.length,
        audience=request.audience,
        chosen_angle=request.chosen_angle,
    ))

    if isinstance(result, AngleSet):
        return AnglesResponse(
            angles=[AngleModel(**angle.model_dump()) for angle in result.angles],
            attempts_used=result.attempts_used,
        )
    return OutlineResponse(outline=result.outline, image_url=result.image_url)
