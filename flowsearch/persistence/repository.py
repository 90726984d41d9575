"""Repository abstraction for workflow state persistence."""

from __future__ import annotations

from typing import Any, Protocol

from ..contracts import Report, Workflow, WorkflowExecution


class WorkflowRepository(Protocol):
    """Protocol for workflow state persistence backends."""

    async def create_workflow(self, workflow: Workflow) -> Workflow:
        """Persist a newly planned workflow."""

    async def load_workflow(self, workflow_id: str) -> Workflow | None:
        """Retrieve the workflow by id."""

    async def update_workflow(self, workflow_id: str, **fields: Any) -> None:
        """Atomically update run-state fields of a workflow."""

    async def list_workflows(self) -> list[Workflow]:
        """Return all persisted workflows."""

    async def create_execution(
        self,
        workflow_id: str,
        step_index: int,
        step_type: str,
        step_title: str,
        input: dict,
    ) -> str:
        """Append a ``running`` execution row and return its id."""

    async def update_execution(self, execution_id: str, **fields: Any) -> None:
        """Update status, output, error, duration or completion time of a row."""

    async def list_executions(self, workflow_id: str) -> list[WorkflowExecution]:
        """Return execution rows of a workflow in creation order."""

    async def create_report(self, report: Report) -> Report:
        """Persist a synthesized report."""

    async def find_report_by_workflow(self, workflow_id: str) -> Report | None:
        """Return the report generated for ``workflow_id``, if any."""

    async def get_report(self, report_id: str) -> Report | None:
        """Retrieve a report by id."""


def check_fields(fields: dict[str, Any], allowed: frozenset[str], kind: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update {kind} fields: {sorted(unknown)}")
