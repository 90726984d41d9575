"""Base search provider interface."""

from __future__ import annotations

import abc
from typing import Any, Dict, Mapping, Optional

import httpx

from ..errors import SearchProviderError


class SearchProvider(metaclass=abc.ABCMeta):
    """Abstract client for one external search source.

    ``search`` returns the provider's own response document; the list of
    hits lives under ``results_key``.
    """

    source: str = ""
    results_key: str = "results"

    def __init__(
        self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None
    ) -> None:
        self.timeout = timeout
        self._client = client

    @abc.abstractmethod
    async def search(self, query: str, filters: Mapping[str, Any]) -> Dict[str, Any]:
        """Run ``query`` against the provider."""
        raise NotImplementedError

    async def _get_json(
        self,
        url: str,
        params: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise SearchProviderError(
                self.source,
                f"{e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise SearchProviderError(self.source, str(e)) from e
