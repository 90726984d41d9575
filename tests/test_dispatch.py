"""Workflow planning and registration tests."""

import pytest

from flowsearch import WorkflowDispatcher
from flowsearch.config import FlowSearchConfig, PlannerConfig
from flowsearch.errors import PlanningError
from flowsearch.planning import AIPlanner, Planner, default_registry

AI_PLAN = {
    "title": "Quantum error correction",
    "steps": [
        {
            "index": 0,
            "type": "search",
            "title": "Search papers",
            "params": {"source": "web", "query": "quantum error correction"},
        }
    ],
}


def _dispatcher(repository, completion=None, config=None):
    planner = Planner(
        default_registry(),
        ai_planner=AIPlanner(completion) if completion is not None else None,
    )
    return WorkflowDispatcher(planner, repository, config)


@pytest.mark.asyncio
async def test_create_workflow_from_template(repository):
    dispatcher = _dispatcher(repository)

    workflow = await dispatcher.create_workflow("Compare React, Vue, and Angular", user_id="u1")

    stored = await repository.load_workflow(workflow.id)
    assert stored.status == "pending"
    assert stored.current_step == 0
    assert stored.user_id == "u1"
    assert stored.template_id == "tech-comparison"
    assert stored.sources == ["web", "code-repository"]
    assert stored.output_format == "comparison"
    assert stored.depth == "standard"
    assert stored.total_steps == 5


@pytest.mark.asyncio
async def test_create_workflow_honours_requested_sources_and_format(repository):
    dispatcher = _dispatcher(repository)

    workflow = await dispatcher.create_workflow(
        "Compare React, Vue, and Angular", sources=["google"], depth="quick", output_format="summary"
    )

    assert workflow.sources == ["web"]
    assert workflow.output_format == "summary"
    assert [step.type for step in workflow.steps] == ["search", "extract", "analyze", "generate_report"]
    assert workflow.steps[-1].params.report_format == "summary"


@pytest.mark.asyncio
async def test_ai_plan_uses_planner_defaults(repository, completion_factory):
    config = FlowSearchConfig(planner=PlannerConfig(default_depth="deep"))
    dispatcher = _dispatcher(repository, completion_factory([AI_PLAN]), config)

    workflow = await dispatcher.create_workflow("Summarize quantum error correction papers")

    assert workflow.template_id is None
    assert workflow.depth == "deep"
    assert workflow.sources == ["web"]
    assert workflow.output_format == "summary"
    assert workflow.steps[-1].type == "generate_report"


@pytest.mark.asyncio
async def test_planning_failure_stores_nothing(repository):
    dispatcher = _dispatcher(repository)

    with pytest.raises(PlanningError):
        await dispatcher.create_workflow("Summarize quantum error correction papers")
    with pytest.raises(PlanningError, match="Missing research goal"):
        await dispatcher.plan("   ")

    assert await repository.list_workflows() == []
