"""Code-repository search through the GitHub REST API."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from .base import SearchProvider

GITHUB_SEARCH_URL = "https://api.github.com/search/repositories"


class CodeRepositorySearchProvider(SearchProvider):
    source = "code-repository"
    results_key = "repos"

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self.token = token

    def _build_query(self, query: str, filters: Mapping[str, Any]) -> str:
        parts = [query]
        if filters.get("language"):
            parts.append(f"language:{filters['language']}")
        if filters.get("stars"):
            parts.append(f"stars:>{filters['stars']}")
        return " ".join(parts)

    async def search(self, query: str, filters: Mapping[str, Any]) -> Dict[str, Any]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        params = {
            "q": self._build_query(query, filters),
            "sort": filters.get("sort") or "stars",
            "order": "desc",
            "per_page": str(filters.get("num") or 10),
        }
        data = await self._get_json(GITHUB_SEARCH_URL, params, headers)
        repos = [
            {
                "id": str(item.get("id")),
                "name": item.get("name"),
                "fullName": item.get("full_name"),
                "description": item.get("description"),
                "url": item.get("html_url"),
                "stars": item.get("stargazers_count", 0),
                "forks": item.get("forks_count", 0),
                "language": item.get("language"),
                "topics": item.get("topics") or [],
                "updatedAt": item.get("updated_at"),
                "owner": (item.get("owner") or {}).get("login"),
            }
            for item in data.get("items") or []
        ]
        return {"repos": repos}
