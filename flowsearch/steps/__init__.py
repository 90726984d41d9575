"""Step handlers and the dispatcher that routes steps to them."""

from __future__ import annotations

from typing import Mapping

from ..completion import CompletionClient
from ..search.base import SearchProvider
from .ai import AggregateStepHandler, AnalyzeStepHandler, ExtractStepHandler, flatten_items
from .base import AIStepHandler, StepDispatcher, StepHandler, collect_data, step_data
from .report import GenerateReportStepHandler
from .search import SearchStepHandler


def build_step_dispatcher(
    providers: Mapping[str, SearchProvider], completion: CompletionClient
) -> StepDispatcher:
    """Wire one handler per step type."""
    return StepDispatcher(
        [
            SearchStepHandler(providers),
            ExtractStepHandler(completion),
            AnalyzeStepHandler(completion),
            AggregateStepHandler(completion),
            GenerateReportStepHandler(),
        ]
    )


__all__ = [
    "AIStepHandler",
    "AggregateStepHandler",
    "AnalyzeStepHandler",
    "ExtractStepHandler",
    "GenerateReportStepHandler",
    "SearchStepHandler",
    "StepDispatcher",
    "StepHandler",
    "build_step_dispatcher",
    "collect_data",
    "flatten_items",
    "step_data",
]
