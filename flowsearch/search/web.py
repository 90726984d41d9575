"""Web search through SerpAPI's Google engine."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import httpx

from ..errors import SearchProviderError
from .base import SearchProvider

SERPAPI_URL = "https://serpapi.com/search"


class WebSearchProvider(SearchProvider):
    source = "web"
    results_key = "results"

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
            raise SearchProviderError(self.source, "missing GOOGLE_SERP_API_KEY")
        params = {
            "engine": "google",
            "q": query,
            "api_key": self.api_key,
            "num": str(filters.get("num") or 10),
        }
        data = await self._get_json(SERPAPI_URL, params)
        results = [
            {
                "id": str(item.get("position", index + 1)),
                "title": item.get("title", ""),
                "url": item.get("link", ""),
                "snippet": item.get("snippet", ""),
                "thumbnail": item.get("thumbnail"),
                "source": item.get("source") or urlparse(item.get("link", "")).hostname,
            }
            for index, item in enumerate(data.get("organic_results") or [])
        ]
        return {"results": results}
