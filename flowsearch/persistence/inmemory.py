"""In-memory implementation of the workflow repository."""

from __future__ import annotations

from typing import Any, Dict, List

from ..contracts import (
    EXECUTION_UPDATABLE_FIELDS,
    WORKFLOW_UPDATABLE_FIELDS,
    Report,
    Workflow,
    WorkflowExecution,
)
from .repository import WorkflowRepository, check_fields


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflow state in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Reads return copies, so callers never
    share state with the store.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, Workflow] = {}
        self._executions: Dict[str, WorkflowExecution] = {}
        self._reports: Dict[str, Report] = {}

    # ------------------------------------------------------------------
    async def create_workflow(self, workflow: Workflow) -> Workflow:
        if workflow.id in self._workflows:
            raise ValueError(f"Workflow {workflow.id} already exists")
        self._workflows[workflow.id] = workflow.model_copy(deep=True)
        return workflow

    async def load_workflow(self, workflow_id: str) -> Workflow | None:
        wf = self._workflows.get(workflow_id)
        return wf.model_copy(deep=True) if wf else None

    async def update_workflow(self, workflow_id: str, **fields: Any) -> None:
        check_fields(fields, WORKFLOW_UPDATABLE_FIELDS, "workflow")
        wf = self._workflows.get(workflow_id)
        if not wf:
            return
        self._workflows[workflow_id] = Workflow.model_validate({**wf.model_dump(), **fields})

    async def list_workflows(self) -> List[Workflow]:
        return [wf.model_copy(deep=True) for wf in self._workflows.values()]

    # ------------------------------------------------------------------
    async def create_execution(
        self,
        workflow_id: str,
        step_index: int,
        step_type: str,
        step_title: str,
        input: dict,
    ) -> str:
        execution = WorkflowExecution(
            workflow_id=workflow_id,
            step_index=step_index,
            step_type=step_type,
            step_title=step_title,
            input=dict(input),
        )
        self._executions[execution.id] = execution
        return execution.id

    async def update_execution(self, execution_id: str, **fields: Any) -> None:
        check_fields(fields, EXECUTION_UPDATABLE_FIELDS, "execution")
        execution = self._executions.get(execution_id)
        if not execution:
            return
        self._executions[execution_id] = WorkflowExecution.model_validate(
            {**execution.model_dump(), **fields}
        )

    async def list_executions(self, workflow_id: str) -> List[WorkflowExecution]:
        return [
            execution.model_copy(deep=True)
            for execution in self._executions.values()
            if execution.workflow_id == workflow_id
        ]

    # ------------------------------------------------------------------
    async def create_report(self, report: Report) -> Report:
        self._reports[report.id] = report.model_copy(deep=True)
        return report

    async def find_report_by_workflow(self, workflow_id: str) -> Report | None:
        for report in self._reports.values():
            if report.workflow_id == workflow_id:
                return report.model_copy(deep=True)
        return None

    async def get_report(self, report_id: str) -> Report | None:
        report = self._reports.get(report_id)
        return report.model_copy(deep=True) if report else None
