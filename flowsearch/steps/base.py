"""Step handler interface and dispatch by step type."""

from __future__ import annotations

import abc
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..completion import CompletionClient, parse_json_response
from ..contracts import BaseStep, StepResult
from ..errors import CompletionError, StepExecutionError

logger = logging.getLogger(__name__)

Results = Sequence[Optional[StepResult]]


def step_data(results: Results, index: int) -> Any:
    """Return the output of step ``index`` or ``None`` when it has not run."""
    if 0 <= index < len(results) and results[index] is not None:
        return results[index].data
    return None


def collect_data(results: Results, indices: Sequence[int]) -> List[Tuple[int, Any]]:
    """Gather ``(index, data)`` for ``indices``, or for every prior result when empty.

    Steps without output are skipped.
    """
    if indices:
        pairs = [(index, step_data(results, index)) for index in indices]
    else:
        pairs = [(r.step_index, r.data) for r in results if r is not None]
    return [(index, data) for index, data in pairs if data is not None]


class StepHandler(metaclass=abc.ABCMeta):
    """Runs one kind of workflow step."""

    step_type: str = ""

    @abc.abstractmethod
    async def run(self, step: BaseStep, results: Results) -> Dict[str, Any]:
        """Execute ``step`` given the results of earlier steps."""
        raise NotImplementedError


class AIStepHandler(StepHandler):
    """Handler whose output comes from the completion service."""

    def __init__(self, completion: CompletionClient) -> None:
        self.completion = completion

    async def _complete_json(
        self, step: BaseStep, system_prompt: str, user_prompt: str
    ) -> Dict[str, Any]:
        try:
            response = await self.completion.complete(system_prompt, user_prompt)
            data = parse_json_response(response)
        except CompletionError as e:
            raise StepExecutionError(str(e), step_index=step.index) from e
        if not isinstance(data, dict):
            raise StepExecutionError(
                f"AI returned {type(data).__name__} instead of a JSON object",
                step_index=step.index,
            )
        return data


class StepDispatcher:
    """Route each step to the handler registered for its type."""

    def __init__(self, handlers: Iterable[StepHandler]) -> None:
        self._handlers: Dict[str, StepHandler] = {}
        for handler in handlers:
            self._handlers[handler.step_type] = handler

    @property
    def step_types(self) -> List[str]:
        return sorted(self._handlers)

    async def dispatch(self, step: BaseStep, results: Results) -> Dict[str, Any]:
        handler = self._handlers.get(step.type)
        if handler is None:
            raise StepExecutionError(f"Unknown step type: {step.type}", step_index=step.index)
        logger.debug(f"Dispatching step {step.index} ({step.type}) to {type(handler).__name__}")
        return await handler.run(step, results)
