"""
Poster endpoints: final composition, typography candidates, background
suggestions and an image proxy for canvas-safe loading of remote images.
"""

import logging
import time
from typing import Optional

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import StreamingResponse

from ..models.poster import (
    GenerateFinalRequest, GenerateFinalResponse,
    TypographyRequest, TypographyResponse, TypographyImage,
    SuggestBackgroundsRequest, SuggestBackgroundsResponse,
)
from ..dependencies.manager import get_model_manager
from saltcore.models.manager import ModelManager
from saltcore.models.providers.base import ModelError
from saltcore.pipeline.errors import InvalidRequestError
from saltcore.pipeline.poster.poster import PosterPipeline
from saltcore.pipeline.poster.types import PosterRequest
from saltcore.pipeline.writing.writing import WritingPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-final", response_model=GenerateFinalResponse)
async def generate_final(
    request: GenerateFinalRequest,
    model_manager: ModelManager = Depends(get_model_manager)
):
    """
    Compose the final poster.

    The ``method`` field selects the strategy; unknown names run ``edit``.
    Pipeline failures are rendered by the application error handlers.
    """
    start_time = time.time()
    pipeline = PosterPipeline(model_manager)
    artifact = await pipeline.process(PosterRequest(
        typography_ref=request.typography_url,
        description=request.image_description,
        strategy=request.method,
    ))
    logger.info(f"Poster composed in {time.time() - start_time:.2f}s via {list(artifact.stages)}")

    return GenerateFinalResponse(
        message="Poster generated successfully",
        image_url=artifact.ref,
        kind=artifact.kind.value,
        strategy=artifact.metadata["strategy"],
        stages=list(artifact.stages),
    )


@router.post("/generate-typography", response_model=TypographyResponse)
async def generate_typography(
    request: TypographyRequest,
    model_manager: ModelManager = Depends(get_model_manager)
):
    artifact = await PosterPipeline(model_manager).typography(request.headline, request.sub_headline, request.style)
    return TypographyResponse(images=[TypographyImage(url=variant.ref) for variant in artifact.variants])


@router.post("/suggest-backgrounds", response_model=SuggestBackgroundsResponse)
async def suggest_backgrounds(
    request: SuggestBackgroundsRequest,
    model_manager: ModelManager = Depends(get_model_manager)
):
    suggestions = await WritingPipeline(model_manager).suggest_backgrounds(request.headline, request.sub_headline)
    return SuggestBackgroundsResponse(suggestions=suggestions)


PROXY_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
PROXY_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"


@router.get("/proxy-image")
async def proxy_image(
    url: Optional[str] = None,
    model_manager: ModelManager = Depends(get_model_manager)
):
    """
    Stream a remote image back with its content type and a permissive CORS
    header, so the browser can draw vendor images onto a canvas.
    """
    if not url or not url.strip():
        raise InvalidRequestError("No URL provided")

    client = model_manager.http
    upstream_request = client.build_request("GET", url.strip(), headers={"User-Agent": PROXY_USER_AGENT})
    try:
        upstream = await client.send(upstream_request, stream=True, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.error(f"Error proxying image {url}: {e}")
        raise ModelError(f"Error fetching image: {e}") from e

    if upstream.is_error:
        await upstream.aclose()
        logger.error(f"Error proxying image {url}: HTTP {upstream.status_code}")
        raise ModelError(f"Error fetching image: HTTP {upstream.status_code}", status_code=upstream.status_code)

    cleanup = BackgroundTasks()
    cleanup.add_task(upstream.aclose)
    return StreamingResponse(
        upstream.aiter_bytes(),
        media_type=upstream.headers.get("content-type", "application/octet-stream"),
        headers=PROXY_HEADERS,
        background=cleanup,
    )
