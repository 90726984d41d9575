"""Planner and AI planner tests."""

import json

import pytest

from flowsearch.contracts import check_plan_invariants
from flowsearch.errors import CompletionError, PlanningError
from flowsearch.planning import AIPlanner, Planner, default_registry

AI_PLAN = {
    "title": "Quantum error correction",
    "description": "Survey of recent work",
    "steps": [
        {
            "index": 0,
            "type": "search",
            "title": "Search papers",
            "params": {"source": "web", "query": "quantum error correction 2025"},
            "dependsOn": [],
        },
        {
            "index": 1,
            "type": "analyze",
            "title": "Analyze",
            "params": {"analysisType": "trend", "fromSteps": [0]},
            "dependsOn": [0, 3],
        },
    ],
}

UNMATCHED_GOAL = "Summarize quantum error correction papers"


@pytest.mark.asyncio
async def test_ai_planner_appends_report_and_prunes_forward_deps(completion_factory):
    completion = completion_factory([AI_PLAN])
    plan = await AIPlanner(completion).plan(UNMATCHED_GOAL, ["web"], "quick", "analysis")

    assert [step.type for step in plan.steps] == ["search", "analyze", "generate_report"]
    assert plan.steps[1].depends_on == [0]
    assert plan.steps[2].depends_on == [0, 1]
    assert plan.steps[2].params.report_format == "analysis"
    assert plan.title == "Quantum error correction"
    assert not plan.is_template

    system, user = completion.calls[0]
    assert "Maximum steps: 3" in system
    assert 'Available sources: ["web"]' in system
    assert UNMATCHED_GOAL in user


@pytest.mark.asyncio
async def test_ai_planner_accepts_fenced_json(completion_factory):
    fenced = "```json\n" + json.dumps(AI_PLAN) + "\n```"
    plan = await AIPlanner(completion_factory([fenced])).plan(
        UNMATCHED_GOAL, ["web"], "standard", "summary"
    )
    assert len(plan.steps) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        "not json at all",
        {"title": "x", "steps": []},
        ["a", "list"],
        {"steps": [{"index": 0, "type": "teleport", "params": {}}]},
        CompletionError("AI API error: 529 - overloaded", status_code=529),
    ],
)
async def test_ai_planner_failures_raise_planning_error(completion_factory, response):
    with pytest.raises(PlanningError):
        await AIPlanner(completion_factory([response])).plan(
            UNMATCHED_GOAL, ["web"], "standard", "summary"
        )


@pytest.mark.asyncio
async def test_planner_prefers_templates(completion_factory):
    completion = completion_factory()
    planner = Planner(default_registry(), AIPlanner(completion))
    plan = await planner.plan("Compare React, Vue, and Angular")
    assert plan.template_id == "tech-comparison"
    assert len(plan.steps) == 5
    assert plan.steps[-1].params.report_format == "comparison"
    assert completion.calls == []


@pytest.mark.asyncio
async def test_planner_applies_caller_sources_and_format():
    planner = Planner(default_registry())
    plan = await planner.plan(
        "Compare React, Vue, and Angular", ["web"], "quick", "summary"
    )
    assert [step.type for step in plan.steps] == [
        "search",
        "extract",
        "analyze",
        "generate_report",
    ]
    assert plan.steps[0].params.num == 5
    assert plan.steps[-1].params.report_format == "summary"


@pytest.mark.asyncio
async def test_forced_template_uses_whole_goal_as_topic():
    planner = Planner(default_registry())
    plan = await planner.plan("Jazz", template_id="trend-timeline")
    assert plan.template_id == "trend-timeline"
    assert plan.title == "Jazz Timeline & Trends"


@pytest.mark.asyncio
async def test_unknown_forced_template_falls_back_to_matching():
    planner = Planner(default_registry())
    plan = await planner.plan("Django vs Flask", template_id="nope")
    assert plan.template_id == "tech-comparison"


@pytest.mark.asyncio
async def test_planner_falls_back_to_ai_with_defaults(completion_factory):
    completion = completion_factory([AI_PLAN])
    planner = Planner(
        default_registry(),
        AIPlanner(completion),
        default_sources=["web", "code-repository"],
        default_output_format="analysis",
    )
    plan = await planner.plan(UNMATCHED_GOAL)
    assert plan.template_id is None
    assert plan.steps[-1].params.report_format == "analysis"
    system, _ = completion.calls[0]
    assert 'Available sources: ["web", "code-repository"]' in system


@pytest.mark.asyncio
async def test_confidence_threshold_routes_to_ai(completion_factory):
    completion = completion_factory([AI_PLAN])
    planner = Planner(default_registry(), AIPlanner(completion), min_template_confidence=0.9)
    plan = await planner.plan("Compare React, Vue, and Angular")
    assert plan.template_id is None
    assert len(completion.calls) == 1


@pytest.mark.asyncio
async def test_planner_errors():
    planner = Planner(default_registry())
    with pytest.raises(PlanningError, match="Missing research goal"):
        await planner.plan("   ")
    with pytest.raises(PlanningError, match="not configured"):
        await planner.plan(UNMATCHED_GOAL)


@pytest.mark.asyncio
async def test_unusable_template_match_falls_back_to_ai(completion_factory):
    completion = completion_factory([AI_PLAN])
    planner = Planner(default_registry(), AIPlanner(completion))
    plan = await planner.plan("Compare React, Vue, and Angular", ["image"])
    assert plan.template_id is None
    assert len(completion.calls) == 1
    check_plan_invariants(plan.steps)

    with pytest.raises(PlanningError, match="cannot run with sources"):
        await Planner(default_registry()).plan("Compare React, Vue, and Angular", ["image"])


@pytest.mark.asyncio
async def test_planner_rejects_unknown_depth_and_format():
    planner = Planner(default_registry())
    with pytest.raises(PlanningError, match="Unknown depth 'bogus'"):
        await planner.plan("Compare React, Vue, and Angular", depth="bogus")
    with pytest.raises(PlanningError, match="Unknown report format 'bogus'"):
        await planner.plan("Compare React, Vue, and Angular", output_format="bogus")
