"""Image search through the Pexels API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from .base import SearchProvider

logger = logging.getLogger(__name__)

PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"


class ImageSearchProvider(SearchProvider):
    source = "image"
    results_key = "photos"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self.api_key = api_key

    async def search(self, query: str, filters: Mapping[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            logger.warning("PEXELS_API_KEY not set, image search returns no results")
            return {"photos": []}
        params = {
            "query": query,
            "per_page": str(filters.get("num") or 12),
            "page": str(filters.get("page") or 1),
        }
        data = await self._get_json(
            PEXELS_SEARCH_URL, params, {"Authorization": self.api_key}
        )
        photos = []
        for photo in data.get("photos") or []:
            src = photo.get("src") or {}
            photographer = photo.get("photographer", "")
            photos.append(
                {
                    "id": str(photo.get("id")),
                    "url": photo.get("url"),
                    "imageUrl": src.get("large"),
                    "thumbnail": src.get("medium"),
                    "photographer": photographer,
                    "title": photo.get("alt") or f"Photo by {photographer}",
                    "width": photo.get("width"),
                    "height": photo.get("height"),
                    "alt": photo.get("alt"),
                }
            )
        logger.info(f"Pexels returned {len(photos)} images for {query!r}")
        return {"photos": photos}
