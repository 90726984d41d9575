from __future__ import annotations

from typing import Any, Dict

from ..contracts import GenerateReportStep
from .base import Results, StepHandler


class GenerateReportStepHandler(StepHandler):
    """Marker step; the report itself is written by the synthesizer."""

    step_type = "generate_report"

    async def run(self, step: GenerateReportStep, results: Results) -> Dict[str, Any]:
        collected = sum(1 for result in results if result is not None)
        return {
            "readyForReport": True,
            "reportFormat": step.params.report_format,
            "dataCollected": collected,
            "summary": f"All {collected} steps completed. Report generation ready.",
        }
