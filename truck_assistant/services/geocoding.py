"""Nominatim (OpenStreetMap) geocoding and truck-service search.

Nominatim's usage policy allows about one request per second, so the
per-service-type queries of one search run sequentially with a fixed
delay between them. Results are de-duplicated by name and address and
carry their great-circle distance in miles.
"""

from __future__ import annotations

import asyncio
import math
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

import httpx
import structlog
from pydantic import Field

from truck_assistant.ai.schemas import CamelModel
from truck_assistant.cache.local_cache import LocalCache
from truck_assistant.config import Settings
from truck_assistant.services.geo import bounding_box, haversine_miles

logger = structlog.get_logger()

USER_AGENT = "TruckRepairAssistant/1.0"
RESULTS_TTL_MINUTES = 24 * 60

ServiceType = Literal["truck_repair", "truck_stop", "parts_store", "towing"]
SortBy = Literal["distance", "rating", "relevance"]

SERVICE_QUERIES: Dict[str, List[str]] = {
    "truck_repair": [
        "truck repair service",
        "diesel mechanic",
        "commercial vehicle repair",
        "heavy duty repair",
    ],
    "truck_stop": ["truck stop", "travel center", "truck plaza"],
    "parts_store": ["truck parts store", "heavy duty parts", "commercial vehicle parts"],
    "towing": ["heavy duty towing", "truck towing service", "commercial towing"],
}

# Returned when every Nominatim query fails.
_STATIC_SERVICES: Dict[str, List[dict]] = {
    "truck_repair": [
        {"name": "24/7 Truck Repair", "phone": "(555) 123-4567",
         "services": ["Emergency Repair", "Diagnostics"], "rating": 4.5, "openingHours": "24/7"},
    ],
    "truck_stop": [
        {"name": "Interstate Truck Plaza",
         "services": ["Fuel", "Parking", "Restaurant"], "rating": 4.0, "openingHours": "24/7"},
    ],
    "parts_store": [
        {"name": "Commercial Truck Parts", "phone": "(555) 345-6789",
         "services": ["Parts", "Filters"], "rating": 4.3},
    ],
    "towing": [
        {"name": "Heavy Duty Towing", "phone": "(555) 911-8697",
         "services": ["Towing", "Recovery"], "rating": 4.4, "openingHours": "24/7"},
    ],
}


class GeocodingError(Exception):
    """Nominatim could not be reached or returned an error status."""


class GeoPoint(CamelModel):
    lat: float
    lng: float
    display_name: Optional[str] = None
    address: Optional[Dict[str, Any]] = None


class NearbyService(CamelModel):
    name: str
    address: str
    coordinates: List[float]
    distance: Optional[float] = Field(None, description="Miles from the query point")
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    opening_hours: Optional[str] = None
    services: List[str] = Field(default_factory=list)
    business_status: str = "OPERATIONAL"
    source: str = "nominatim"


# ---------------------------------------------------------------------------
# Result shaping
# ---------------------------------------------------------------------------

def format_address(result: dict) -> str:
    address = result.get("address") or {}
    parts = [
        address.get("house_number"),
        address.get("road"),
        address.get("city") or address.get("town"),
        address.get("state"),
        address.get("postcode"),
    ]
    joined = ", ".join(str(p) for p in parts if p)
    return joined or result.get("display_name") or "Address unavailable"


def extract_services(tags: dict) -> List[str]:
    services = []
    if tags.get("amenity") == "fuel":
        services.append("Fuel")
    if tags.get("service") == "vehicle:repair":
        services.append("Repair")
    if tags.get("shop") == "car_parts":
        services.append("Parts")
    if tags.get("amenity") == "restaurant":
        services.append("Food")
    return services


def estimate_rating(tags: dict) -> float:
    """OSM has no ratings; more complete listings score higher."""
    rating = 3.5
    if tags.get("phone"):
        rating += 0.3
    if tags.get("website"):
        rating += 0.2
    if tags.get("opening_hours"):
        rating += 0.2
    return round(min(5.0, max(1.0, rating)), 1)


def to_service(result: dict, lat: float, lng: float) -> NearbyService:
    r_lat, r_lng = float(result["lat"]), float(result["lon"])
    tags = result.get("extratags") or {}
    display_name = result.get("display_name") or ""
    return NearbyService(
        name=display_name.split(",")[0].strip() or "Service Location",
        address=format_address(result),
        coordinates=[r_lat, r_lng],
        distance=round(haversine_miles(lat, lng, r_lat, r_lng), 2),
        phone=tags.get("phone"),
        website=tags.get("website"),
        opening_hours=tags.get("opening_hours"),
        services=extract_services(tags),
        rating=estimate_rating(tags),
    )


def dedupe(services: List[NearbyService]) -> List[NearbyService]:
    """Keep the closest entry per (name, address)."""
    seen: Dict[str, NearbyService] = {}
    for service in services:
        key = f"{service.name.lower()}-{service.address.lower()}"
        current = seen.get(key)
        if current is None or (current.distance or math.inf) > (service.distance or 0):
            seen[key] = service
    return list(seen.values())


def is_open_now(opening_hours: Optional[str], now: Optional[datetime] = None) -> bool:
    if not opening_hours:
        return False
    if "24" in opening_hours:
        return True
    hour = (now or datetime.now()).hour
    return 6 <= hour <= 22


def sort_services(services: List[NearbyService], sort_by: str) -> List[NearbyService]:
    if sort_by == "rating":
        return sorted(services, key=lambda s: s.rating or 0, reverse=True)
    if sort_by == "relevance":
        return sorted(
            services,
            key=lambda s: (s.rating or 0) * 2 - (s.distance or 0) * 0.1,
            reverse=True,
        )
    return sorted(services, key=lambda s: s.distance or 0)


def static_services(lat: float, lng: float, service_type: str) -> List[NearbyService]:
    """Placeholder listings placed a fixed short offset from the point."""
    services = []
    for index, entry in enumerate(_STATIC_SERVICES.get(service_type, []), start=1):
        s_lat, s_lng = lat + 0.005 * index, lng + 0.005 * index
        services.append(
            NearbyService(
                address=f"Near {lat:.4f}, {lng:.4f}",
                coordinates=[s_lat, s_lng],
                distance=round(haversine_miles(lat, lng, s_lat, s_lng), 2),
                source="static",
                **entry,
            )
        )
    return services


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class NominatimClient:
    """Async Nominatim client reusing one ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        timeout_seconds: float = 10.0,
        query_delay_seconds: float = 1.0,
        cache: Optional[LocalCache] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._delay = query_delay_seconds
        self._cache = cache
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings, cache: Optional[LocalCache] = None) -> "NominatimClient":
        return cls(
            settings.nominatim_url,
            timeout_seconds=settings.geocode_timeout_seconds,
            query_delay_seconds=settings.geocode_delay_seconds,
            cache=cache,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout, headers={"User-Agent": USER_AGENT}
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _get(self, path: str, params: dict) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(f"{self.base_url}{path}", params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("nominatim_request_failed", path=path, error=str(exc))
            raise GeocodingError(str(exc)) from exc

    # -- geocoding ----------------------------------------------------------

    async def geocode(self, address: str) -> Optional[GeoPoint]:
        """First match for *address*, or None when nothing matches."""
        results = await self._get("/search", {"q": address, "format": "json", "limit": 1})
        if not results:
            return None
        first = results[0]
        return GeoPoint(
            lat=float(first["lat"]),
            lng=float(first["lon"]),
            display_name=first.get("display_name"),
        )

    async def reverse(self, lat: float, lng: float) -> Optional[GeoPoint]:
        data = await self._get(
            "/reverse",
            {"lat": lat, "lon": lng, "format": "json", "addressdetails": 1},
        )
        if not data or "error" in data:
            return None
        return GeoPoint(
            lat=float(data["lat"]),
            lng=float(data["lon"]),
            display_name=data.get("display_name"),
            address=data.get("address"),
        )

    # -- service search -----------------------------------------------------

    async def _search_services(
        self, lat: float, lng: float, service_type: str, radius_miles: float, max_results: int
    ) -> Optional[List[NearbyService]]:
        """Run every query for *service_type*; None if all of them failed."""
        queries = SERVICE_QUERIES.get(service_type, SERVICE_QUERIES["truck_repair"])
        viewbox = ",".join(str(round(v, 6)) for v in bounding_box(lat, lng, radius_miles))
        per_query = math.ceil(max_results / len(queries))
        collected: List[NearbyService] = []
        succeeded = 0

        for index, query in enumerate(queries):
            if index:
                await self._sleep(self._delay)
            try:
                results = await self._get(
                    "/search",
                    {
                        "q": query,
                        "format": "json",
                        "bounded": 1,
                        "viewbox": viewbox,
                        "limit": per_query,
                        "addressdetails": 1,
                        "extratags": 1,
                    },
                )
            except GeocodingError:
                continue
            succeeded += 1
            collected.extend(to_service(r, lat, lng) for r in results if "lat" in r and "lon" in r)

        if not succeeded:
            return None
        return dedupe(collected)

    async def find_nearby_services(
        self,
        lat: float,
        lng: float,
        service_type: str = "truck_repair",
        radius_miles: float = 50,
        max_results: int = 20,
        min_rating: float = 0,
        open_now: bool = False,
        sort_by: str = "distance",
    ) -> List[NearbyService]:
        """Truck services near a point, filtered and sorted.

        Falls back to static placeholder listings when Nominatim is
        unreachable for every query.
        """
        cache_key = f"services:{service_type}:{lat:.3f}:{lng:.3f}:{radius_miles}:{max_results}"
        cached = self._cache.get(cache_key) if self._cache is not None else None
        if cached is not None:
            services = [NearbyService.model_validate(s) for s in cached]
        else:
            services = await self._search_services(lat, lng, service_type, radius_miles, max_results)
            if services is None:
                logger.warning("nearby_services_static_fallback", service_type=service_type)
                services = static_services(lat, lng, service_type)
            elif self._cache is not None:
                self._cache.set(
                    cache_key,
                    [s.model_dump(mode="json") for s in services],
                    ttl_minutes=RESULTS_TTL_MINUTES,
                )

        services = [
            s for s in services
            if not (min_rating > 0 and (s.rating is None or s.rating < min_rating))
            and not (open_now and not is_open_now(s.opening_hours))
        ]
        logger.info(
            "nearby_services_found",
            service_type=service_type,
            count=len(services),
        )
        return sort_services(services, sort_by)[:max_results]
