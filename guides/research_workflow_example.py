"""Example showing how to plan, run and report a research workflow in-process."""

import asyncio
import sys

from flowsearch import (
    Planner,
    ReportSynthesizer,
    WorkflowDispatcher,
    WorkflowExecutor,
    default_registry,
    get_repository,
)
from flowsearch.completion import get_completion_client
from flowsearch.config import load_config
from flowsearch.planning import AIPlanner
from flowsearch.search import get_search_providers
from flowsearch.steps import build_step_dispatcher


async def main():
    goal = sys.argv[1] if len(sys.argv) > 1 else "Compare React, Vue, and Angular"

    config = load_config()
    repository = get_repository(config=config)
    completion = get_completion_client(config)

    planner = Planner(default_registry(), ai_planner=AIPlanner(completion))
    dispatcher = WorkflowDispatcher(planner, repository, config)
    executor = WorkflowExecutor(
        repository,
        build_step_dispatcher(get_search_providers(config), completion),
        synthesizer=ReportSynthesizer(completion, repository),
    )

    workflow = await dispatcher.create_workflow(goal, sources=["web", "code-repository"])
    print(f"Planned {workflow.total_steps} steps for: {workflow.title}")

    workflow = await executor.run(workflow.id)
    print(f"Status: {workflow.status}")
    if workflow.status == "failed":
        print(f"Error: {workflow.error_message}")
        return

    report = await repository.find_report_by_workflow(workflow.id)
    if report:
        print(report.title)
        print(report.summary)


if __name__ == "__main__":
    asyncio.run(main())
