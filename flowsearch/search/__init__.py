"""Search provider factory and initialization."""

from __future__ import annotations

from typing import Dict, Optional

from ..config import FlowSearchConfig, load_config
from .base import SearchProvider
from .code import CodeRepositorySearchProvider
from .image import ImageSearchProvider
from .web import WebSearchProvider


def get_search_providers(
    config: Optional[FlowSearchConfig] = None,
) -> Dict[str, SearchProvider]:
    """Build the provider for every search source, keyed by source name."""

    config = config or load_config()
    search = config.search
    providers: list[SearchProvider] = [
        WebSearchProvider(search.serpapi_key, timeout=search.timeout),
        CodeRepositorySearchProvider(search.github_token, timeout=search.timeout),
        ImageSearchProvider(search.pexels_api_key, timeout=search.timeout),
    ]
    return {provider.source: provider for provider in providers}


__all__ = [
    "SearchProvider",
    "WebSearchProvider",
    "CodeRepositorySearchProvider",
    "ImageSearchProvider",
    "get_search_providers",
]
