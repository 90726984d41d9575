"""Workflow run loop tests."""

import asyncio

import pytest

from flowsearch.contracts import Workflow, parse_steps
from flowsearch.errors import CompletionError, InvalidStateError, WorkflowNotFoundError
from flowsearch.executor import WorkflowExecutor
from flowsearch.steps import build_step_dispatcher
from flowsearch.synthesizer import ReportSynthesizer

ANALYSIS = {
    "analysisType": "general",
    "findings": [{"insight": "React leads", "evidence": "stars", "confidence": "high"}],
    "summary": "React is most popular",
    "recommendations": ["Pick React"],
}

REPORT = {
    "title": "Framework Report",
    "summary": "React leads the pack.",
    "sections": [
        {"type": "text", "title": "Overview", "content": "React leads."},
        {"type": "list", "title": "Takeaways", "content": {"items": ["React", "Vue"]}},
    ],
}


def _three_step_workflow():
    steps = parse_steps(
        [
            {"index": 0, "type": "search", "title": "Search", "params": {"query": "frameworks"}},
            {
                "index": 1,
                "type": "analyze",
                "title": "Analyze",
                "params": {"fromSteps": [0]},
                "dependsOn": [0],
            },
            {"index": 2, "type": "generate_report", "title": "Report", "dependsOn": [0, 1]},
        ]
    )
    return Workflow(query="Frontend frameworks", sources=["web"], steps=steps)


async def _setup(repository, completion, provider, synthesizer=False, step_timeout=None):
    workflow = _three_step_workflow()
    await repository.create_workflow(workflow)
    executor = WorkflowExecutor(
        repository,
        build_step_dispatcher({"web": provider}, completion),
        synthesizer=ReportSynthesizer(completion, repository) if synthesizer else None,
        step_timeout=step_timeout,
    )
    return workflow, executor


@pytest.mark.asyncio
async def test_run_completes_and_generates_report(repository, completion_factory, provider_factory):
    completion = completion_factory([ANALYSIS, REPORT])
    workflow, executor = await _setup(
        repository, completion, provider_factory(), synthesizer=True
    )

    result = await executor.run(workflow.id)

    assert result.status == "completed"
    assert result.current_step == 3
    assert result.completed_at is not None
    assert [r.step_index for r in result.results] == [0, 1, 2]
    assert result.results[1].data["summary"] == "React is most popular"
    assert result.results[2].data["readyForReport"] is True

    executions = await repository.list_executions(workflow.id)
    assert [(e.step_index, e.status) for e in executions] == [
        (0, "completed"),
        (1, "completed"),
        (2, "completed"),
    ]
    assert executions[0].input["query"] == "frameworks"
    assert all(e.duration_ms is not None and e.completed_at for e in executions)

    report = await repository.find_report_by_workflow(workflow.id)
    assert report is not None
    assert result.report_id == report.id
    assert report.format == "summary"
    assert [section.id for section in report.sections] == ["section-1", "section-2"]
    assert report.source_data == {
        "workflowId": workflow.id,
        "workflowQuery": "Frontend frameworks",
        "sources": [{"type": "web"}],
    }


@pytest.mark.asyncio
async def test_failure_then_retry_resumes_at_failed_step(
    repository, completion_factory, provider_factory
):
    completion = completion_factory([CompletionError("AI API error: 500 - down", status_code=500)])
    provider = provider_factory()
    workflow, executor = await _setup(repository, completion, provider)

    failed = await executor.run(workflow.id)

    assert failed.status == "failed"
    assert failed.failed_step == 1
    assert failed.error_message == "Step 2 failed: AI API error: 500 - down"
    assert len(failed.results) == 1
    first_result = failed.results[0]
    executions = await repository.list_executions(workflow.id)
    assert [(e.step_index, e.status) for e in executions] == [(0, "completed"), (1, "failed")]
    assert "500 - down" in executions[1].error

    completion.responses.append(ANALYSIS)
    retried = await executor.retry(workflow.id)

    assert retried.status == "completed"
    assert retried.error_message is None
    assert retried.failed_step is None
    assert retried.current_step == 3
    assert retried.results[0] == first_result
    assert retried.results[1].data == ANALYSIS
    assert len(provider.queries) == 1

    executions = await repository.list_executions(workflow.id)
    assert [(e.step_index, e.status) for e in executions] == [
        (0, "completed"),
        (1, "failed"),
        (1, "completed"),
        (2, "completed"),
    ]


@pytest.mark.asyncio
async def test_cancel_during_step_resumes_after_it(repository, completion_factory, provider_factory):
    completion = completion_factory([ANALYSIS])
    provider = provider_factory()
    workflow, executor = await _setup(repository, completion, provider)

    original_search = provider.search

    async def cancelling_search(query, filters):
        await executor.cancel(workflow.id)
        return await original_search(query, filters)

    provider.search = cancelling_search

    result = await executor.run(workflow.id)

    assert result.status == "failed"
    assert result.error_message == "Cancelled by user"
    assert result.failed_step == 1
    assert result.results[0].data["totalResults"] == 1
    assert completion.calls == []
    executions = await repository.list_executions(workflow.id)
    assert [(e.step_index, e.status, e.error) for e in executions] == [(0, "completed", None)]

    retried = await executor.retry(workflow.id)

    assert retried.status == "completed"
    assert len(provider.queries) == 1
    assert retried.results[1].data == ANALYSIS
    executions = await repository.list_executions(workflow.id)
    assert [(e.step_index, e.status) for e in executions] == [
        (0, "completed"),
        (1, "completed"),
        (2, "completed"),
    ]


@pytest.mark.asyncio
async def test_cancel_during_last_step_is_honoured(
    repository, completion_factory, provider_factory
):
    completion = completion_factory([ANALYSIS])
    workflow, executor = await _setup(
        repository, completion, provider_factory(), synthesizer=True
    )

    original_dispatch = executor.dispatcher.dispatch

    async def cancelling_dispatch(step, results):
        if step.index == 2:
            await executor.cancel(workflow.id)
        return await original_dispatch(step, results)

    executor.dispatcher.dispatch = cancelling_dispatch

    result = await executor.run(workflow.id)

    assert result.status == "failed"
    assert result.error_message == "Cancelled by user"
    assert result.failed_step == 3
    assert result.completed_at is None
    assert len(result.results) == 3
    assert len(completion.calls) == 1

    completion.responses.append(REPORT)
    retried = await executor.retry(workflow.id)

    assert retried.status == "completed"
    assert retried.error_message is None
    assert retried.failed_step is None
    assert retried.report_id is not None
    assert len(await repository.list_executions(workflow.id)) == 3


@pytest.mark.asyncio
async def test_cancel_fails_running_execution_rows(
    repository, completion_factory, provider_factory
):
    workflow, executor = await _setup(repository, completion_factory(), provider_factory())
    await repository.update_workflow(workflow.id, status="running")
    finished = await repository.create_execution(workflow.id, 0, "search", "Search", {})
    await repository.update_execution(finished, status="completed", output={})
    in_flight = await repository.create_execution(workflow.id, 1, "analyze", "Analyze", {})
    await repository.update_workflow(workflow.id, current_step=1)

    cancelled = await executor.cancel(workflow.id)

    assert cancelled.failed_step == 1
    executions = {e.id: e for e in await repository.list_executions(workflow.id)}
    assert executions[finished].status == "completed"
    assert executions[in_flight].status == "failed"
    assert executions[in_flight].error == "Cancelled by user"
    assert executions[in_flight].completed_at is not None


@pytest.mark.asyncio
async def test_state_transition_guards(repository, completion_factory, provider_factory):
    workflow, executor = await _setup(repository, completion_factory(), provider_factory())

    with pytest.raises(InvalidStateError):
        await executor.retry(workflow.id)

    cancelled = await executor.cancel(workflow.id, reason="Not needed")
    assert cancelled.status == "failed"
    assert cancelled.error_message == "Not needed"
    assert cancelled.failed_step == 0

    with pytest.raises(InvalidStateError):
        await executor.cancel(workflow.id)
    with pytest.raises(InvalidStateError):
        await executor.run(workflow.id)
    assert await repository.list_executions(workflow.id) == []

    with pytest.raises(WorkflowNotFoundError):
        await executor.run("missing")


@pytest.mark.asyncio
async def test_synthesis_failure_keeps_workflow_completed(
    repository, completion_factory, provider_factory
):
    completion = completion_factory([ANALYSIS, "this is not a report"])
    workflow, executor = await _setup(
        repository, completion, provider_factory(), synthesizer=True
    )

    result = await executor.run(workflow.id)

    assert result.status == "completed"
    assert result.report_id is None
    assert await repository.find_report_by_workflow(workflow.id) is None


@pytest.mark.asyncio
async def test_step_timeout_fails_step(repository, completion_factory, provider_factory):
    provider = provider_factory()

    async def slow_search(query, filters):
        await asyncio.sleep(5)
        return {"results": []}

    provider.search = slow_search
    workflow, executor = await _setup(
        repository, completion_factory(), provider, step_timeout=0.01
    )

    result = await executor.run(workflow.id)

    assert result.status == "failed"
    assert result.failed_step == 0
    assert result.error_message.startswith("Step 1 failed: Timed out")
    assert result.results == []
    executions = await repository.list_executions(workflow.id)
    assert executions[0].status == "failed"
