"""Exception hierarchy for flowsearch."""

from __future__ import annotations

from typing import Optional


class FlowSearchError(Exception):
    """Base class for all flowsearch errors."""


class WorkflowNotFoundError(FlowSearchError, LookupError):
    """Raised when a workflow id does not resolve to a stored workflow."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow {workflow_id} not found")
        self.workflow_id = workflow_id


class InvalidStateError(FlowSearchError):
    """Raised when a transition is requested from a status that forbids it."""


class PlanningError(FlowSearchError):
    """The planner could not produce a usable step list."""


class CompletionError(FlowSearchError):
    """The completion service failed to return a response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResponseParseError(CompletionError):
    """The completion service returned text that is not the expected JSON."""


class StepExecutionError(FlowSearchError):
    """A step handler failed; the workflow halts at this step."""

    def __init__(self, message: str, step_index: Optional[int] = None) -> None:
        super().__init__(message)
        self.step_index = step_index


class MissingStepDataError(StepExecutionError):
    """A step referenced prior results that are not available."""


class StepTimeoutError(StepExecutionError):
    """A step exceeded the configured per-step deadline."""


class SearchProviderError(StepExecutionError):
    """A search provider returned an error or could not be reached."""

    def __init__(
        self, source: str, message: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(f"Search API failed ({source}): {message}")
        self.source = source
        self.status_code = status_code


class SynthesisError(FlowSearchError):
    """Report synthesis failed or returned a malformed document."""
