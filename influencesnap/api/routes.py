"""Query endpoints: influencer analytics, image proxy and image labeling."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, Response

from influencesnap.api.schemas import AnalyzeImageRequest, AnalyzeImageResponse, InfluencerRead
from influencesnap.core.aggregation import AggregationResolver
from influencesnap.core.exceptions import ProxyError
from influencesnap.core.image_proxy import ImageProxy
from influencesnap.core.labeler import ImageLabeler
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def get_resolver(request: Request) -> AggregationResolver:
    """Resolver for the stored snapshots, initialising the store if startup could not."""
    state = request.app.state
    if not state.store_ready:
        await state.database.init()
        state.store_ready = True
        logger.info("✅ Store initialised")
    return state.resolver


def get_proxy(request: Request) -> ImageProxy:
    return request.app.state.proxy


def get_labeler(request: Request) -> ImageLabeler:
    return request.app.state.labeler


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/influencers", response_model=List[InfluencerRead])
async def list_influencers(resolver: AggregationResolver = Depends(get_resolver)):
    """Return every stored snapshot with engagement metrics computed now."""
    results = await resolver.list_influencers()
    return [InfluencerRead.from_snapshot(snapshot, metrics) for snapshot, metrics in results]


@router.get("/influencers/{handle}", response_model=InfluencerRead)
async def get_influencer(handle: str, resolver: AggregationResolver = Depends(get_resolver)):
    """Return one snapshot with engagement metrics."""
    result = await resolver.get_influencer(handle)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Influencer not found")
    return InfluencerRead.from_snapshot(*result)


@router.post("/analyze-image", response_model=AnalyzeImageResponse)
async def analyze_image(payload: AnalyzeImageRequest, labeler: ImageLabeler = Depends(get_labeler)):
    """Pass an image URL to the labeling service."""
    label = await labeler.analyze(payload.image_url)
    return AnalyzeImageResponse(label=label)


@router.get("/proxy-image")
async def proxy_image(url: Optional[str] = None, proxy: ImageProxy = Depends(get_proxy)):
    """Relay a remote image so clients can load it from this origin."""
    if not url:
        return PlainTextResponse("Missing url parameter", status_code=status.HTTP_400_BAD_REQUEST)
    
    try:
        image = await proxy.relay(url)
    except ProxyError as e:
        logger.error(f"Proxy image error: {e}")
        return PlainTextResponse("Failed to fetch image", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    
    return Response(content=image.content, media_type=image.content_type)
