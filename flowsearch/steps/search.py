from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from ..contracts import SearchStep
from ..errors import StepExecutionError
from ..search.base import SearchProvider
from .base import Results, StepHandler

logger = logging.getLogger(__name__)


class SearchStepHandler(StepHandler):
    """Query the provider for the step's source and normalize its hits."""

    step_type = "search"

    def __init__(self, providers: Mapping[str, SearchProvider]) -> None:
        self.providers = dict(providers)

    async def run(self, step: SearchStep, results: Results) -> Dict[str, Any]:
        params = step.params
        provider = self.providers.get(params.source)
        if provider is None:
            raise StepExecutionError(
                f"Unknown search source: {params.source}", step_index=step.index
            )

        filters = {"num": params.num, "sort": params.sort, "language": params.language}
        logger.info(f"Searching {params.source} for {params.query!r}")
        data = await provider.search(params.query, filters)
        hits = list(data.get(provider.results_key) or [])
        return {
            "source": params.source,
            "query": params.query,
            "results": hits,
            "totalResults": len(hits),
        }
