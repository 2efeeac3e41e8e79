"""Geocoding and nearby truck-service search (Nominatim)."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from truck_assistant.api.deps import get_geocoder
from truck_assistant.services.geocoding import GeocodingError, NominatimClient, ServiceType, SortBy

logger = structlog.get_logger()

router = APIRouter()


@router.get("/geocode")
async def geocode(
    address: Optional[str] = Query(None),
    geocoder: NominatimClient = Depends(get_geocoder),
):
    if not address or not address.strip():
        raise HTTPException(status_code=400, detail="Address parameter is required")
    try:
        location = await geocoder.geocode(address.strip())
    except GeocodingError as exc:
        raise HTTPException(status_code=500, detail=f"Geocoding failed: {exc}") from exc
    if location is None:
        raise HTTPException(status_code=404, detail="Address not found")
    return {"success": True, "location": location.model_dump(by_alias=True), "address": address}


@router.get("/reverse")
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    geocoder: NominatimClient = Depends(get_geocoder),
):
    try:
        location = await geocoder.reverse(lat, lng)
    except GeocodingError as exc:
        raise HTTPException(status_code=500, detail=f"Reverse geocoding failed: {exc}") from exc
    if location is None:
        raise HTTPException(status_code=404, detail="Location not found")
    return {"success": True, "location": location.model_dump(by_alias=True)}


@router.get("/services")
async def nearby_services(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    service_type: ServiceType = Query("truck_repair", alias="serviceType"),
    radius: float = Query(50, gt=0, le=500, description="Search radius in miles"),
    max_results: int = Query(20, alias="maxResults", ge=1, le=50),
    min_rating: float = Query(0, alias="minRating", ge=0, le=5),
    open_now: bool = Query(False, alias="openNow"),
    sort_by: SortBy = Query("distance", alias="sortBy"),
    geocoder: NominatimClient = Depends(get_geocoder),
):
    services = await geocoder.find_nearby_services(
        lat,
        lng,
        service_type=service_type,
        radius_miles=radius,
        max_results=max_results,
        min_rating=min_rating,
        open_now=open_now,
        sort_by=sort_by,
    )
    return {
        "success": True,
        "services": [s.model_dump(by_alias=True) for s in services],
        "count": len(services),
        "searchParams": {
            "lat": lat,
            "lng": lng,
            "serviceType": service_type,
            "radius": radius,
            "maxResults": max_results,
            "minRating": min_rating,
            "openNow": open_now,
            "sortBy": sort_by,
        },
    }
