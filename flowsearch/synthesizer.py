"""Report synthesis from accumulated workflow results."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from .completion import CompletionClient, parse_json_response
from .contracts import Report, ReportDraft
from .errors import (
    CompletionError,
    InvalidStateError,
    SynthesisError,
    WorkflowNotFoundError,
)
from .persistence import WorkflowRepository
from .prompts import build_synthesis_prompt

logger = logging.getLogger(__name__)


def _with_section_ids(raw: Dict[str, Any]) -> Dict[str, Any]:
    sections = raw.get("sections")
    if not isinstance(sections, list):
        return raw
    numbered = []
    for position, section in enumerate(sections, start=1):
        if isinstance(section, dict) and not section.get("id"):
            section = {**section, "id": f"section-{position}"}
        numbered.append(section)
    return {**raw, "sections": numbered}


class ReportSynthesizer:
    """Turn step results into a structured report via the completion service."""

    def __init__(self, completion: CompletionClient, repository: WorkflowRepository) -> None:
        self.completion = completion
        self.repository = repository

    async def synthesize(
        self,
        goal: str,
        results: Sequence[Any],
        output_format: str,
        custom_title: Optional[str] = None,
    ) -> ReportDraft:
        """Ask the model for a report and validate its structure.

        Raises:
            SynthesisError: If the completion call fails or the response is
                not a well-formed report.
        """
        payload = to_jsonable_python(list(results), by_alias=True)
        system, user = build_synthesis_prompt(goal, payload, output_format, custom_title)
        try:
            response = await self.completion.complete(system, user)
            raw = parse_json_response(response)
        except CompletionError as e:
            raise SynthesisError(f"Report synthesis failed: {e}") from e

        if not isinstance(raw, dict):
            raise SynthesisError("AI returned invalid report structure")
        try:
            return ReportDraft.model_validate(_with_section_ids(raw))
        except ValidationError as e:
            raise SynthesisError(f"AI returned invalid report structure: {e}") from e

    async def generate_for_workflow(
        self,
        workflow_id: str,
        output_format: Optional[str] = None,
        custom_title: Optional[str] = None,
    ) -> Report:
        """Create and store the report of a completed workflow.

        Returns the existing report when one was already generated.
        """
        workflow = await self.repository.load_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        if workflow.status != "completed":
            raise InvalidStateError("Workflow must be completed before generating a report")

        existing = await self.repository.find_report_by_workflow(workflow_id)
        if existing is not None:
            logger.info(f"Report already exists for workflow {workflow_id}")
            return existing

        report_format = output_format or workflow.output_format
        draft = await self.synthesize(
            workflow.query, workflow.results, report_format, custom_title
        )
        report = Report(
            user_id=workflow.user_id,
            title=draft.title,
            summary=draft.summary,
            sections=draft.sections,
            format=report_format,
            source_data={
                "workflowId": workflow.id,
                "workflowQuery": workflow.query,
                "sources": [{"type": source} for source in workflow.sources],
            },
            workflow_id=workflow.id,
        )
        await self.repository.create_report(report)
        await self.repository.update_workflow(workflow_id, report_id=report.id)
        logger.info(f"Report {report.id} generated for workflow {workflow_id}")
        return report

    async def generate_from_data(
        self,
        goal: str,
        results: Sequence[Any],
        output_format: str,
        title: Optional[str] = None,
        source_data: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> Report:
        draft = await self.synthesize(goal, results, output_format, title)
        report = Report(
            user_id=user_id,
            title=draft.title,
            summary=draft.summary,
            sections=draft.sections,
            format=output_format,
            source_data=dict(source_data or {}),
        )
        await self.repository.create_report(report)
        logger.info(f"Report {report.id} generated from ad-hoc data")
        return report
