"""Repair video lookup: curated list plus optional YouTube Data API search."""

from __future__ import annotations

import re
from typing import List, Optional

import httpx
import structlog
from pydantic import Field

from truck_assistant.ai.schemas import CamelModel
from truck_assistant.config import Settings

logger = structlog.get_logger()

_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


class YouTubeError(Exception):
    """The YouTube Data API call failed."""


class YouTubeVideo(CamelModel):
    id: str
    title: str
    description: str = ""
    thumbnail: Optional[str] = None
    duration: str = "0:00"
    published_at: Optional[str] = None
    channel_title: Optional[str] = None
    view_count: int = 0
    url: str


class YouTubeSearchResult(CamelModel):
    videos: List[YouTubeVideo] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    total_results: int = 0


def format_duration(iso_duration: str) -> str:
    """ISO 8601 duration (``PT4M13S``) to clock form (``4:13``)."""
    match = _DURATION.fullmatch(iso_duration or "")
    if not match:
        return "0:00"
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def _thumbnail(snippet: dict) -> Optional[str]:
    thumbs = snippet.get("thumbnails") or {}
    chosen = thumbs.get("medium") or thumbs.get("default") or {}
    return chosen.get("url")


class YouTubeClient:
    """Searches truck repair videos through the YouTube Data API v3."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://www.googleapis.com/youtube/v3",
        timeout_seconds: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "YouTubeClient":
        return cls(settings.youtube_api_key, settings.youtube_api_url)

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _get(self, path: str, params: dict) -> dict:
        client = await self._get_client()
        try:
            response = await client.get(
                f"{self.base_url}{path}", params={**params, "key": self._api_key}
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("youtube_request_failed", path=path, error=str(exc))
            raise YouTubeError(str(exc)) from exc

    async def search_repair_videos(self, query: str, max_results: int = 10) -> YouTubeSearchResult:
        """Search, then fetch details for the hits in one batch call.

        Raises:
            YouTubeError: if no key is configured or either call fails.
        """
        if not self._api_key:
            raise YouTubeError("YOUTUBE_API_KEY is not configured")

        search = await self._get(
            "/search",
            {
                "part": "snippet",
                "q": f"{query} truck repair",
                "type": "video",
                "maxResults": max_results,
            },
        )
        video_ids = [
            item["id"]["videoId"]
            for item in search.get("items", [])
            if isinstance(item.get("id"), dict) and item["id"].get("videoId")
        ]
        if not video_ids:
            return YouTubeSearchResult(total_results=0)

        details = await self._get(
            "/videos",
            {"part": "snippet,statistics,contentDetails", "id": ",".join(video_ids)},
        )
        videos = []
        for item in details.get("items", []):
            snippet = item.get("snippet", {})
            videos.append(
                YouTubeVideo(
                    id=item["id"],
                    title=snippet.get("title", ""),
                    description=snippet.get("description", ""),
                    thumbnail=_thumbnail(snippet),
                    duration=format_duration(item.get("contentDetails", {}).get("duration", "")),
                    published_at=snippet.get("publishedAt"),
                    channel_title=snippet.get("channelTitle"),
                    view_count=int(item.get("statistics", {}).get("viewCount", 0) or 0),
                    url=f"https://www.youtube.com/watch?v={item['id']}",
                )
            )
        logger.info("youtube_search_completed", query=query, count=len(videos))
        return YouTubeSearchResult(
            videos=videos,
            next_page_token=search.get("nextPageToken"),
            total_results=search.get("pageInfo", {}).get("totalResults", len(videos)),
        )


def curated_videos(catalogue: dict, category: str = "all") -> List[dict]:
    """Curated videos for *category*, or all of them for ``"all"``."""
    if category == "all":
        return [video for videos in catalogue.values() for video in videos]
    return list(catalogue.get(category, []))
