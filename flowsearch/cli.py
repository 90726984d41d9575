"""Command line interface for planning and running research workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional

import typer

from .completion import CompletionClient, get_completion_client
from .config import FlowSearchConfig, load_config
from .contracts import Plan, Workflow
from .dispatch import WorkflowDispatcher
from .errors import FlowSearchError
from .executor import WorkflowExecutor
from .persistence import WorkflowRepository, get_repository
from .planning import AIPlanner, Planner, default_registry
from .search import get_search_providers
from .steps import StepDispatcher, build_step_dispatcher
from .synthesizer import ReportSynthesizer

logger = logging.getLogger(__name__)

app = typer.Typer(help="CLI for FlowSearch research workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for managing workflows")
report_app = typer.Typer(help="Commands for reading reports")
template_app = typer.Typer(help="Commands for the template catalog")

app.add_typer(workflow_app, name="workflow")
app.add_typer(report_app, name="report")
app.add_typer(template_app, name="template")

SourceOption = typer.Option(
    None, "--source", "-s", help="Search source (web, code-repository, image); repeatable"
)
DepthOption = typer.Option(None, "--depth", "-d", help="quick, standard or deep")
FormatOption = typer.Option(
    None, "--format", "-f", help="comparison, analysis, timeline or summary"
)
TemplateOption = typer.Option(None, "--template", "-t", help="Force a catalog template id")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """FlowSearch CLI entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _completion_or_none(config: FlowSearchConfig) -> Optional[CompletionClient]:
    try:
        return get_completion_client(config)
    except RuntimeError as e:
        logger.warning(f"AI completion unavailable: {e}")
        return None


def _require_completion(config: FlowSearchConfig) -> CompletionClient:
    completion = _completion_or_none(config)
    if completion is None:
        typer.echo("Error: no AI model configured. Set ANTHROPIC_API_KEY or OPENAI_API_KEY")
        raise typer.Exit(code=1)
    return completion


def _build_dispatcher(
    config: FlowSearchConfig,
    repository: WorkflowRepository,
    completion: Optional[CompletionClient],
) -> WorkflowDispatcher:
    planner = Planner(
        default_registry(),
        ai_planner=AIPlanner(completion) if completion is not None else None,
        min_template_confidence=config.planner.min_template_confidence,
        default_sources=config.planner.default_sources,
        default_output_format=config.planner.default_output_format,
    )
    return WorkflowDispatcher(planner, repository, config)


def _build_executor(
    config: FlowSearchConfig,
    repository: WorkflowRepository,
    completion: CompletionClient,
) -> WorkflowExecutor:
    return WorkflowExecutor(
        repository,
        build_step_dispatcher(get_search_providers(config), completion),
        synthesizer=ReportSynthesizer(completion, repository),
        step_timeout=config.executor.step_timeout,
    )


def _echo_plan(plan: Plan) -> None:
    typer.echo(f"Plan: {plan.title}")
    if plan.template_id:
        typer.echo(f"Template: {plan.template_id}")
    for step in plan.steps:
        typer.echo(f"  {step.index + 1}. [{step.type}] {step.title}")


def _echo_outcome(workflow: Workflow) -> None:
    typer.echo(f"Workflow {workflow.id}: {workflow.status}")
    if workflow.error_message:
        typer.echo(f"Error: {workflow.error_message}")
    if workflow.report_id:
        typer.echo(f"Report: {workflow.report_id}")


@app.command("plan")
def plan_command(
    goal: str,
    source: Optional[List[str]] = SourceOption,
    depth: Optional[str] = DepthOption,
    output_format: Optional[str] = FormatOption,
    template: Optional[str] = TemplateOption,
) -> None:
    """Show the step plan for GOAL without running it."""
    config = load_config()
    dispatcher = _build_dispatcher(config, get_repository(), _completion_or_none(config))
    try:
        plan = asyncio.run(dispatcher.plan(goal, source, depth, output_format, template))
    except FlowSearchError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(code=1)
    _echo_plan(plan)


@app.command("run")
def run_command(
    goal: str,
    source: Optional[List[str]] = SourceOption,
    depth: Optional[str] = DepthOption,
    output_format: Optional[str] = FormatOption,
    template: Optional[str] = TemplateOption,
) -> None:
    """
    Plan GOAL, execute every step and generate the report.

    Example:
        flowsearch run "Compare React, Vue, and Angular"
        flowsearch run "Trending Rust projects" -s code-repository --depth quick
    """
    config = load_config()
    repository = get_repository()
    completion = _require_completion(config)
    dispatcher = _build_dispatcher(config, repository, completion)
    executor = _build_executor(config, repository, completion)

    async def _run() -> Workflow:
        workflow = await dispatcher.create_workflow(
            goal, source, depth, output_format, template
        )
        typer.echo(f"Created workflow {workflow.id} ({workflow.total_steps} steps)")
        return await executor.run(workflow.id)

    try:
        workflow = asyncio.run(_run())
    except FlowSearchError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(code=1)
    _echo_outcome(workflow)
    if workflow.status != "completed":
        raise typer.Exit(code=1)


@workflow_app.command("list")
def workflow_list() -> None:
    """List stored workflows."""
    repository = get_repository()
    workflows = asyncio.run(repository.list_workflows())
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.status}\t{wf.title or wf.query}")


@workflow_app.command("show")
def workflow_show(workflow_id: str) -> None:
    """Show a workflow's steps, results and execution history."""
    repository = get_repository()

    async def _load():
        wf = await repository.load_workflow(workflow_id)
        executions = await repository.list_executions(workflow_id) if wf else []
        return wf, executions

    wf, executions = asyncio.run(_load())
    if wf is None:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    typer.echo(f"Workflow {wf.id}: {wf.status}")
    typer.echo(f"Query: {wf.query}")
    if wf.title:
        typer.echo(f"Title: {wf.title}")
    typer.echo(f"Progress: {min(wf.current_step, wf.total_steps)}/{wf.total_steps}")
    if wf.error_message:
        typer.echo(f"Error: {wf.error_message}")
    for step in wf.steps:
        done = "x" if wf.result_data(step.index) is not None else " "
        typer.echo(f"  [{done}] {step.index + 1}. [{step.type}] {step.title}")
    if executions:
        typer.echo("Executions:")
        for ex in executions:
            duration = f" {ex.duration_ms}ms" if ex.duration_ms is not None else ""
            error = f" - {ex.error}" if ex.error else ""
            typer.echo(f"  step {ex.step_index + 1} {ex.status}{duration}{error}")


@workflow_app.command("retry")
def workflow_retry(workflow_id: str) -> None:
    """Resume a failed workflow from the step that failed."""
    config = load_config()
    repository = get_repository()
    executor = _build_executor(config, repository, _require_completion(config))
    try:
        workflow = asyncio.run(executor.retry(workflow_id))
    except FlowSearchError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(code=1)
    _echo_outcome(workflow)


@workflow_app.command("cancel")
def workflow_cancel(
    workflow_id: str,
    reason: Optional[str] = typer.Option(None, help="Message recorded on the workflow"),
) -> None:
    """Cancel a pending or running workflow."""
    executor = WorkflowExecutor(get_repository(), StepDispatcher([]))
    try:
        if reason:
            workflow = asyncio.run(executor.cancel(workflow_id, reason))
        else:
            workflow = asyncio.run(executor.cancel(workflow_id))
    except FlowSearchError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(code=1)
    _echo_outcome(workflow)


@report_app.command("show")
def report_show(
    workflow_id: str,
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Show the report generated for a workflow."""
    repository = get_repository()
    report = asyncio.run(repository.find_report_by_workflow(workflow_id))
    if report is None:
        typer.echo("Report not found")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(report.to_wire(), indent=2))
        return

    typer.echo(report.title)
    typer.echo("")
    typer.echo(report.summary)
    for section in report.sections:
        typer.echo("")
        typer.echo(f"## {section.title}")
        if section.type == "text":
            typer.echo(section.content)
        elif section.type == "list":
            for item in section.content.items:
                typer.echo(f"- {item}")
        elif section.type == "table":
            typer.echo(" | ".join(section.content.headers))
            for row in section.content.rows:
                typer.echo(" | ".join(str(cell) for cell in row))
        else:
            typer.echo(f"({section.content.chart_type} chart: {', '.join(section.content.labels)})")


@template_app.command("list")
def template_list() -> None:
    """List the workflow templates."""
    for template in default_registry():
        typer.echo(f"{template.id}\t{template.name} - {template.description}")
