"""Template-first planner with AI fallback."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..constants import DEFAULT_DEPTH, DEFAULT_OUTPUT_FORMAT, DEFAULT_SOURCES
from ..contracts import DEPTHS, OUTPUT_FORMATS, Plan
from ..errors import PlanningError
from .ai_planner import AIPlanner
from .matcher import TemplateMatcher, build_from_template
from .templates import TemplateRegistry

logger = logging.getLogger(__name__)


class Planner:
    """Turn research goals into step plans.

    Tries the template catalog first and only calls the completion service
    when no template matches. Omitted sources and output format keep the
    template's own defaults; the AI path falls back to ``default_sources``
    and ``default_output_format``.
    """

    def __init__(
        self,
        registry: TemplateRegistry,
        ai_planner: Optional[AIPlanner] = None,
        min_template_confidence: float = 0.0,
        default_sources: Optional[Sequence[str]] = None,
        default_output_format: str = DEFAULT_OUTPUT_FORMAT,
    ) -> None:
        self.registry = registry
        self.matcher = TemplateMatcher(registry)
        self.ai_planner = ai_planner
        self.min_template_confidence = min_template_confidence
        self.default_sources = list(default_sources or DEFAULT_SOURCES)
        self.default_output_format = default_output_format

    async def plan(
        self,
        goal: str,
        sources: Optional[Sequence[str]] = None,
        depth: str = DEFAULT_DEPTH,
        output_format: Optional[str] = None,
        template_id: Optional[str] = None,
    ) -> Plan:
        """Plan ``goal``.

        Args:
            goal: Natural-language research goal.
            sources: Search sources the plan may use.
            depth: quick, standard or deep.
            output_format: Report format for the final step.
            template_id: Force a catalog template; the whole goal is used as
                its topic. Unknown ids fall back to normal matching.

        Raises:
            PlanningError: If depth or format is unknown, or no template
                applies and AI planning fails or is not configured.
        """
        if not goal or not goal.strip():
            raise PlanningError("Missing research goal")
        if depth not in DEPTHS:
            raise PlanningError(f"Unknown depth {depth!r}, expected one of {', '.join(DEPTHS)}")
        if output_format is not None and output_format not in OUTPUT_FORMATS:
            raise PlanningError(
                f"Unknown report format {output_format!r}, "
                f"expected one of {', '.join(OUTPUT_FORMATS)}"
            )

        if template_id:
            template = self.registry.get(template_id)
            if template is not None:
                logger.info(f"Using forced template: {template.name}")
                return build_from_template(
                    template, goal.strip(), depth, sources, output_format
                )
            logger.warning(f"Unknown template id {template_id!r}, matching goal instead")

        match = self.matcher.match(goal)
        if match is not None and match.confidence >= self.min_template_confidence:
            logger.info(
                f"Template matched: {match.template.name} "
                f"(confidence: {match.confidence:.2f}, topic: {match.topic!r})"
            )
            try:
                return build_from_template(
                    match.template, match.topic, depth, sources, output_format
                )
            except PlanningError as e:
                if self.ai_planner is None:
                    raise
                logger.warning(f"{e}; using AI planner instead")

        if self.ai_planner is None:
            raise PlanningError(f"No template matches {goal!r} and AI planning is not configured")
        logger.info(f"No template match, using AI planner for: {goal!r}")
        return await self.ai_planner.plan(
            goal,
            list(sources or self.default_sources),
            depth,
            output_format or self.default_output_format,
        )
