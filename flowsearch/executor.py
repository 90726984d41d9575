"""Sequential run loop for planned workflows."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from .constants import CANCELLED_MESSAGE
from .contracts import BaseStep, StepResult, Workflow, utc_now
from .errors import (
    FlowSearchError,
    InvalidStateError,
    StepTimeoutError,
    WorkflowNotFoundError,
)
from .persistence import WorkflowRepository
from .steps import StepDispatcher
from .synthesizer import ReportSynthesizer

logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """Run workflow steps in order and record every attempt.

    Cancellation is cooperative: the status is re-read before each step and
    after the last one, and a ``failed`` workflow stops at that boundary.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        dispatcher: StepDispatcher,
        synthesizer: Optional[ReportSynthesizer] = None,
        step_timeout: Optional[float] = None,
    ) -> None:
        self.repository = repository
        self.dispatcher = dispatcher
        self.synthesizer = synthesizer
        self.step_timeout = step_timeout

    async def _load(self, workflow_id: str) -> Workflow:
        workflow = await self.repository.load_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return workflow

    async def _stop_if_cancelled(self, workflow_id: str, next_step: int) -> Optional[Workflow]:
        """Return the workflow if it was cancelled, recording ``next_step`` as the resume point."""
        current = await self._load(workflow_id)
        if current.status != "failed":
            return None
        logger.info(f"Workflow {workflow_id} cancelled, stopping before step {next_step + 1}")
        if current.failed_step != next_step:
            await self.repository.update_workflow(workflow_id, failed_step=next_step)
            current = await self._load(workflow_id)
        return current

    async def _run_step(self, step: BaseStep, results: List[Optional[StepResult]]) -> Dict[str, Any]:
        if self.step_timeout is None:
            return await self.dispatcher.dispatch(step, results)
        try:
            return await asyncio.wait_for(
                self.dispatcher.dispatch(step, results), timeout=self.step_timeout
            )
        except asyncio.TimeoutError as e:
            raise StepTimeoutError(
                f"Timed out after {self.step_timeout}s", step_index=step.index
            ) from e

    async def run(self, workflow_id: str, start_from_step: int = 0) -> Workflow:
        """Execute steps from ``start_from_step`` to the end.

        Step failures are recorded on the workflow rather than raised. Only a
        ``pending`` workflow can be run; use :meth:`retry` for failed ones.

        Returns:
            The workflow as stored after the loop stops.
        """
        workflow = await self._load(workflow_id)
        if workflow.status != "pending":
            raise InvalidStateError(
                f"Workflow {workflow_id} is {workflow.status}, only pending workflows can run"
            )

        await self.repository.update_workflow(workflow_id, status="running")
        logger.info(
            f"Running workflow {workflow_id} from step {start_from_step + 1} "
            f"of {workflow.total_steps}"
        )

        steps = workflow.steps
        results: List[Optional[StepResult]] = list(workflow.results)

        for i in range(start_from_step, len(steps)):
            cancelled = await self._stop_if_cancelled(workflow_id, i)
            if cancelled is not None:
                return cancelled

            step = steps[i]
            await self.repository.update_workflow(workflow_id, current_step=i)
            execution_id = await self.repository.create_execution(
                workflow_id, i, step.type, step.title, step.params.to_wire()
            )
            logger.info(f"Step {i + 1}/{len(steps)} ({step.type}): {step.title}")

            started = time.perf_counter()
            try:
                output = await self._run_step(step, list(results))
            except Exception as e:
                duration_ms = round((time.perf_counter() - started) * 1000)
                if isinstance(e, FlowSearchError):
                    logger.error(f"Step {i + 1} of workflow {workflow_id} failed: {e}")
                else:
                    logger.exception(f"Step {i + 1} of workflow {workflow_id} crashed")
                await self.repository.update_execution(
                    execution_id,
                    status="failed",
                    error=str(e),
                    duration_ms=duration_ms,
                    completed_at=utc_now(),
                )
                await self.repository.update_workflow(
                    workflow_id,
                    status="failed",
                    error_message=f"Step {i + 1} failed: {e}",
                    failed_step=i,
                    results=results,
                )
                return await self._load(workflow_id)

            duration_ms = round((time.perf_counter() - started) * 1000)
            await self.repository.update_execution(
                execution_id,
                status="completed",
                output=output,
                error=None,
                duration_ms=duration_ms,
                completed_at=utc_now(),
            )
            while len(results) <= i:
                results.append(None)
            results[i] = StepResult(step_index=i, data=output)
            await self.repository.update_workflow(
                workflow_id, results=results, current_step=i + 1
            )

        cancelled = await self._stop_if_cancelled(workflow_id, len(steps))
        if cancelled is not None:
            return cancelled

        await self.repository.update_workflow(
            workflow_id,
            status="completed",
            completed_at=utc_now(),
            current_step=len(steps),
        )
        logger.info(f"Workflow {workflow_id} completed")

        if self.synthesizer is not None:
            try:
                await self.synthesizer.generate_for_workflow(workflow_id)
            except FlowSearchError as e:
                logger.error(f"Report generation failed for workflow {workflow_id}: {e}")

        return await self._load(workflow_id)

    async def retry(self, workflow_id: str) -> Workflow:
        """Resume a failed workflow from the step that failed."""
        workflow = await self._load(workflow_id)
        if workflow.status != "failed":
            raise InvalidStateError(
                f"Workflow {workflow_id} is {workflow.status}, only failed workflows can be retried"
            )
        start = workflow.failed_step or 0
        await self.repository.update_workflow(
            workflow_id, status="pending", error_message=None, failed_step=None
        )
        logger.info(f"Retrying workflow {workflow_id} from step {start + 1}")
        return await self.run(workflow_id, start_from_step=start)

    async def cancel(self, workflow_id: str, reason: str = CANCELLED_MESSAGE) -> Workflow:
        """Mark a pending or running workflow as failed.

        Running execution rows are marked failed with ``reason``. A running
        loop notices at its next step boundary and records the first step it
        did not process as ``failed_step``; a step that finishes after the
        cancel keeps its result and overwrites its row.
        """
        workflow = await self._load(workflow_id)
        if workflow.status not in ("pending", "running"):
            raise InvalidStateError(
                f"Workflow {workflow_id} is {workflow.status} and cannot be cancelled"
            )
        await self.repository.update_workflow(
            workflow_id,
            status="failed",
            error_message=reason,
            failed_step=workflow.current_step,
        )
        for execution in await self.repository.list_executions(workflow_id):
            if execution.status == "running":
                await self.repository.update_execution(
                    execution.id, status="failed", error=reason, completed_at=utc_now()
                )
        logger.info(f"Workflow {workflow_id} cancelled at step {workflow.current_step + 1}")
        return await self._load(workflow_id)
