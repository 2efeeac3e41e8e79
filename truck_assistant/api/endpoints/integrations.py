"""Third-party integrations: repair videos, vehicle cross-reference, API catalogue."""

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from truck_assistant.api.deps import get_static, get_youtube
from truck_assistant.catalog.static_data import StaticData
from truck_assistant.services.reference import build_cross_reference, validate_vin
from truck_assistant.services.youtube import YouTubeClient, YouTubeError, curated_videos

logger = structlog.get_logger()

router = APIRouter()

DEFAULT_QUERY = "truck repair"


@router.get("/youtube-tutorials")
async def youtube_tutorials(
    q: Optional[str] = Query(None),
    category: str = Query("all"),
    max_results: int = Query(10, alias="maxResults", ge=1, le=50),
    static: StaticData = Depends(get_static),
    youtube: YouTubeClient = Depends(get_youtube),
):
    """Curated videos by category; a live search when a key is set and ``q`` given."""
    catalogue = static.youtube_tutorials()
    body = {
        "success": True,
        "categories": list(catalogue.keys()),
        "query": q or DEFAULT_QUERY,
        "category": category,
    }

    if q and youtube.is_configured:
        try:
            result = await youtube.search_repair_videos(q, max_results)
        except YouTubeError as exc:
            logger.warning("youtube_live_search_fallback", error=str(exc))
        else:
            videos = [v.model_dump(by_alias=True) for v in result.videos]
            return {
                **body,
                "videos": videos,
                "totalVideos": len(videos),
                "totalResults": result.total_results,
                "nextPageToken": result.next_page_token,
                "source": "youtube",
            }

    videos = curated_videos(catalogue, category)
    return {**body, "videos": videos, "totalVideos": len(videos), "source": "curated"}


@router.get("/cross-reference")
def cross_reference(
    vin: Optional[str] = Query(None),
    year: Optional[str] = Query(None),
    make: Optional[str] = Query(None),
    model: Optional[str] = Query(None),
    static: StaticData = Depends(get_static),
):
    if not vin and not (year and make and model):
        raise HTTPException(status_code=400, detail="VIN or year/make/model parameters required")

    validation = None
    if vin:
        validation = validate_vin(vin)
        if not validation.is_valid:
            raise HTTPException(
                status_code=400,
                detail={"error": f"Invalid VIN: {validation.details['error']}", "vinValidation": validation.to_dict()},
            )
        vin = validation.vin

    report = build_cross_reference(static.cross_reference(), vin=vin, year=year, make=make, model=model)
    if validation is not None:
        report["vinValidation"] = validation.to_dict()
    return {"success": True, **report}


@router.get("/public-apis")
def public_apis(static: StaticData = Depends(get_static)):
    apis = static.public_apis()
    return {
        "success": True,
        "apis": apis,
        "totalAPIs": sum(len(group) for group in apis.values()),
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
    }
