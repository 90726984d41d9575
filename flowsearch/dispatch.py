"""Workflow dispatcher for flowsearch."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import FlowSearchConfig
from .contracts import Plan, Workflow, normalize_source
from .persistence import WorkflowRepository
from .planning import Planner

logger = logging.getLogger(__name__)


class WorkflowDispatcher:
    """Service responsible for planning and registering new workflows."""

    def __init__(
        self,
        planner: Planner,
        repository: WorkflowRepository,
        config: Optional[FlowSearchConfig] = None,
    ) -> None:
        self.planner = planner
        self.repository = repository
        self.config = config or FlowSearchConfig()

    async def plan(
        self,
        goal: str,
        sources: Optional[Sequence[str]] = None,
        depth: Optional[str] = None,
        output_format: Optional[str] = None,
        template_id: Optional[str] = None,
    ) -> Plan:
        """Plan ``goal`` without persisting anything.

        Omitted sources and output format keep a matched template's defaults.
        """
        requested = [normalize_source(source) for source in sources] if sources else None
        return await self.planner.plan(
            goal,
            requested,
            depth or self.config.planner.default_depth,
            output_format,
            template_id,
        )

    def _workflow_sources(self, plan: Plan, sources: Optional[Sequence[str]]) -> List[str]:
        if sources:
            return [normalize_source(source) for source in sources]
        template = self.planner.registry.get(plan.template_id) if plan.template_id else None
        if template is not None:
            return list(template.default_sources)
        return list(self.planner.default_sources)

    async def create_workflow(
        self,
        goal: str,
        sources: Optional[Sequence[str]] = None,
        depth: Optional[str] = None,
        output_format: Optional[str] = None,
        template_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Workflow:
        """Plan ``goal`` and store it as a ``pending`` workflow.

        Args:
            goal: Natural-language research goal.
            sources: Search sources; a matched template's defaults otherwise.
            depth: quick, standard or deep; defaults from configuration.
            output_format: Report format; taken from the plan's final step
                otherwise.
            template_id: Optional catalog template to force.
            user_id: Optional owner recorded on the workflow.

        Returns:
            The persisted workflow.

        Raises:
            PlanningError: If no plan could be produced. Nothing is stored.
        """
        depth = depth or self.config.planner.default_depth
        plan = await self.plan(goal, sources, depth, output_format, template_id)
        workflow = Workflow(
            user_id=user_id,
            query=goal,
            title=plan.title,
            description=plan.description,
            sources=self._workflow_sources(plan, sources),
            depth=depth,
            output_format=output_format or plan.steps[-1].params.report_format,
            steps=plan.steps,
            template_id=plan.template_id,
        )
        await self.repository.create_workflow(workflow)
        origin = f"template {plan.template_id}" if plan.template_id else "AI plan"
        logger.info(f"Created workflow {workflow.id} with {workflow.total_steps} steps ({origin})")
        return workflow
