"""Completion-backed step handlers: extract, analyze and aggregate."""

from __future__ import annotations

from typing import Any, Dict, List

from ..constants import AGGREGATE_DATA_LIMIT, ANALYZE_DATA_LIMIT, EXTRACT_DATA_LIMIT
from ..contracts import AggregateStep, AnalyzeStep, ExtractStep
from ..errors import MissingStepDataError
from ..prompts import build_aggregate_prompt, build_analyze_prompt, build_extract_prompt
from .base import AIStepHandler, Results, collect_data, step_data

# Keys holding item lists in search, extract and analyze outputs.
FLATTEN_KEYS = ("results", "extracted", "findings")


class ExtractStepHandler(AIStepHandler):
    step_type = "extract"

    async def run(self, step: ExtractStep, results: Results) -> Dict[str, Any]:
        params = step.params
        source_data = step_data(results, params.from_step)
        if source_data is None:
            raise MissingStepDataError(
                f"No data from step {params.from_step} to extract from",
                step_index=step.index,
            )
        system, user = build_extract_prompt(
            params.extraction_goal, params.fields, source_data, EXTRACT_DATA_LIMIT
        )
        return await self._complete_json(step, system, user)


class AnalyzeStepHandler(AIStepHandler):
    step_type = "analyze"

    async def run(self, step: AnalyzeStep, results: Results) -> Dict[str, Any]:
        params = step.params
        data = [item for _, item in collect_data(results, params.from_steps)]
        if not data:
            raise MissingStepDataError("No data available for analysis", step_index=step.index)
        system, user = build_analyze_prompt(
            params.analysis_type, params.question, data, ANALYZE_DATA_LIMIT
        )
        return await self._complete_json(step, system, user)


def flatten_items(data: Any) -> List[Any]:
    """Return the item list of a step output, or the output itself as one item."""
    if isinstance(data, dict):
        for key in FLATTEN_KEYS:
            if isinstance(data.get(key), list):
                return list(data[key])
    return [data]


class AggregateStepHandler(AIStepHandler):
    """Merge outputs of earlier steps.

    ``combine`` concatenates item lists locally; the other strategies ask the
    completion service to merge.
    """

    step_type = "aggregate"

    async def run(self, step: AggregateStep, results: Results) -> Dict[str, Any]:
        params = step.params
        to_merge = [
            {"stepIndex": index, "data": data}
            for index, data in collect_data(results, params.from_steps)
        ]
        if not to_merge:
            raise MissingStepDataError(
                "No data available for aggregation", step_index=step.index
            )

        if params.merge_strategy == "combine":
            items: List[Any] = []
            for source in to_merge:
                items.extend(flatten_items(source["data"]))
            return {
                "mergeStrategy": params.merge_strategy,
                "totalItems": len(items),
                "sourcesUsed": len(to_merge),
                "aggregatedData": items,
            }

        system, user = build_aggregate_prompt(
            params.merge_strategy, to_merge, AGGREGATE_DATA_LIMIT
        )
        return await self._complete_json(step, system, user)
