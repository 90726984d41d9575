"""Report synthesis tests."""

import pytest

from flowsearch.contracts import GenerateReportStep, StepResult, Workflow
from flowsearch.errors import (
    CompletionError,
    InvalidStateError,
    SynthesisError,
    WorkflowNotFoundError,
)
from flowsearch.synthesizer import ReportSynthesizer

DRAFT = {
    "title": "Vector Databases",
    "summary": "Three options compared.",
    "sections": [
        {"id": "intro", "type": "text", "title": "Overview", "content": "..."},
        {
            "type": "table",
            "title": "Matrix",
            "content": {"headers": ["Name", "Stars"], "rows": [["Qdrant", 20000]]},
        },
        {
            "type": "chart",
            "title": "Stars",
            "content": {"chartType": "bar", "labels": ["Qdrant"], "datasets": [{"label": "k", "data": [20]}]},
        },
    ],
}


async def _completed_workflow(repository, **overrides):
    fields = dict(
        query="Vector databases",
        sources=["web", "code-repository"],
        output_format="comparison",
        steps=[GenerateReportStep()],
        status="completed",
        results=[StepResult(step_index=0, data={"readyForReport": True})],
    )
    fields.update(overrides)
    workflow = Workflow(**fields)
    await repository.create_workflow(workflow)
    return workflow


@pytest.mark.asyncio
async def test_synthesize_assigns_missing_section_ids(repository, completion_factory):
    completion = completion_factory([DRAFT])
    synthesizer = ReportSynthesizer(completion, repository)

    draft = await synthesizer.synthesize("Vector databases", [], "comparison", "Custom")

    assert [section.id for section in draft.sections] == ["intro", "section-2", "section-3"]
    assert draft.sections[1].content.rows == [["Qdrant", 20000]]
    system, user = completion.calls[0]
    assert "Create a COMPARISON report" in system
    assert "TITLE: Custom" in user


@pytest.mark.asyncio
async def test_unknown_format_uses_summary_guide(repository, completion_factory):
    completion = completion_factory([DRAFT])
    await ReportSynthesizer(completion, repository).synthesize("goal", [], "poem")
    system, user = completion.calls[0]
    assert "Create a SUMMARY report" in system
    assert "Generate an appropriate title from the goal." in user


@pytest.mark.asyncio
async def test_synthesis_prompt_truncates_results(repository, completion_factory):
    completion = completion_factory([DRAFT])
    results = [StepResult(step_index=0, data={"blob": "y" * 20000})]
    await ReportSynthesizer(completion, repository).synthesize("goal", results, "summary")
    _, user = completion.calls[0]
    assert "... [truncated]" in user
    assert '"stepIndex": 0' in user


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        "no json here",
        {"title": "", "summary": "s", "sections": [{"type": "text", "content": "x"}]},
        {"title": "t", "summary": "s", "sections": []},
        {"title": "t", "summary": "s", "sections": [{"type": "video", "content": "x"}]},
        CompletionError("AI API error: 401 - bad key", status_code=401),
    ],
)
async def test_synthesize_rejects_malformed_output(repository, completion_factory, response):
    synthesizer = ReportSynthesizer(completion_factory([response]), repository)
    with pytest.raises(SynthesisError):
        await synthesizer.synthesize("goal", [], "summary")


@pytest.mark.asyncio
async def test_generate_for_workflow_is_idempotent(repository, completion_factory):
    workflow = await _completed_workflow(repository)
    completion = completion_factory([DRAFT])
    synthesizer = ReportSynthesizer(completion, repository)

    report = await synthesizer.generate_for_workflow(workflow.id)
    again = await synthesizer.generate_for_workflow(workflow.id)

    assert again.id == report.id
    assert len(completion.calls) == 1
    assert report.format == "comparison"
    assert report.workflow_id == workflow.id
    assert report.source_data["sources"] == [{"type": "web"}, {"type": "code-repository"}]
    stored = await repository.load_workflow(workflow.id)
    assert stored.report_id == report.id
    _, user = completion.calls[0]
    assert '"readyForReport": true' in user


@pytest.mark.asyncio
async def test_generate_for_workflow_guards(repository, completion_factory):
    synthesizer = ReportSynthesizer(completion_factory(), repository)
    with pytest.raises(WorkflowNotFoundError):
        await synthesizer.generate_for_workflow("nope")

    running = await _completed_workflow(repository, status="running")
    with pytest.raises(InvalidStateError, match="must be completed"):
        await synthesizer.generate_for_workflow(running.id)


@pytest.mark.asyncio
async def test_generate_from_data(repository, completion_factory):
    synthesizer = ReportSynthesizer(completion_factory([DRAFT]), repository)
    report = await synthesizer.generate_from_data(
        'Analyze and summarize the collection "Databases"',
        [{"stepIndex": 0, "data": {"items": ["a", "b"], "collectionName": "Databases"}}],
        "summary",
        title="Databases Report",
        source_data={"collectionName": "Databases", "itemCount": 2},
        user_id="user-1",
    )
    assert report.workflow_id is None
    assert report.user_id == "user-1"
    assert report.source_data == {"collectionName": "Databases", "itemCount": 2}
    assert await repository.get_report(report.id) == report
