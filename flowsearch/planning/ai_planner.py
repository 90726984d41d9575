"""Fallback planner that asks the completion service for a step plan."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from pydantic import ValidationError

from ..completion import CompletionClient, parse_json_response
from ..constants import DEPTH_MAX_STEPS, DEPTH_RESULTS
from ..contracts import (
    GenerateReportParams,
    GenerateReportStep,
    Plan,
    parse_steps,
    reindex_steps,
)
from ..errors import CompletionError, PlanningError
from ..prompts import build_planning_prompt

logger = logging.getLogger(__name__)


class AIPlanner:
    """Plan research goals with a text-completion model."""

    def __init__(self, completion: CompletionClient) -> None:
        self.completion = completion

    async def plan(
        self,
        goal: str,
        sources: Sequence[str],
        depth: str,
        output_format: str,
    ) -> Plan:
        """Ask the model for a plan and validate it.

        Raises:
            PlanningError: If the completion service fails or its response is
                not a usable plan.
        """
        system, user = build_planning_prompt(
            goal=goal,
            sources=sources,
            depth=depth,
            output_format=output_format,
            max_results=DEPTH_RESULTS.get(depth, DEPTH_RESULTS["standard"]),
            max_steps=DEPTH_MAX_STEPS.get(depth, DEPTH_MAX_STEPS["standard"]),
        )
        try:
            response = await self.completion.complete(system, user)
            raw = parse_json_response(response)
        except CompletionError as e:
            raise PlanningError(f"AI planning failed: {e}") from e
        return self.plan_from_response(raw, goal, output_format)

    def plan_from_response(self, raw: Any, goal: str, output_format: str) -> Plan:
        """Validate a decoded model response into a :class:`Plan`."""
        if not isinstance(raw, dict):
            raise PlanningError("AI returned invalid workflow plan: expected a JSON object")
        raw_steps = raw.get("steps")
        if not isinstance(raw_steps, list) or not raw_steps:
            raise PlanningError("AI returned invalid workflow plan: no steps")

        try:
            steps = parse_steps(raw_steps)
        except ValidationError as e:
            raise PlanningError(f"AI returned invalid workflow plan: {e}") from e

        if steps[-1].type != "generate_report":
            logger.info("AI plan did not end with generate_report, appending one")
            steps.append(
                GenerateReportStep(
                    index=len(steps),
                    title="Generate final report",
                    description=f"Create a {output_format} report from all collected data",
                    params=GenerateReportParams(report_format=output_format),
                    depends_on=list(range(len(steps))),
                )
            )

        try:
            return Plan(
                title=str(raw.get("title") or goal),
                description=str(raw.get("description") or ""),
                steps=reindex_steps(steps),
            )
        except ValidationError as e:
            raise PlanningError(f"AI returned invalid workflow plan: {e}") from e
