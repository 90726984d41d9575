"""Match research goals against the template catalog."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ..contracts import GenerateReportStep, Plan, normalize_source, reindex_steps
from ..errors import PlanningError
from .templates import TemplateRegistry, WorkflowTemplate

logger = logging.getLogger(__name__)

PATTERN_CONFIDENCE = 0.6
KEYWORD_CONFIDENCE = 0.15
MAX_KEYWORD_CONFIDENCE = 0.4
MIN_CONFIDENCE = 0.3
MIN_TOPIC_LENGTH = 2

_POLITE_PREFIX = re.compile(
    r"^(please|can you|could you|i want to|i need to|help me)\s+", re.IGNORECASE
)
_INSTRUCTION_VERBS = re.compile(
    r"\b(compare|research|analyze|find|search|explore|create|generate|make)\b",
    re.IGNORECASE,
)
_FILLER_NOUNS = re.compile(
    r"\b(report|analysis|comparison|summary|for me|about)\b", re.IGNORECASE
)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class TemplateMatch:
    template: WorkflowTemplate
    topic: str
    confidence: float


def derive_topic(goal: str) -> str:
    """Strip instruction words from ``goal`` and return what remains."""
    topic = _POLITE_PREFIX.sub("", goal)
    topic = _INSTRUCTION_VERBS.sub("", topic)
    topic = _FILLER_NOUNS.sub("", topic)
    return _WHITESPACE.sub(" ", topic).strip()


class TemplateMatcher:
    """Score goals against every template in a registry."""

    def __init__(self, registry: TemplateRegistry) -> None:
        self.registry = registry

    def score(self, template: WorkflowTemplate, goal: str) -> tuple[float, str]:
        """Return ``(confidence, topic)`` of ``goal`` for a single template."""
        confidence = 0.0
        topic = ""

        for pattern in template.patterns:
            match = pattern.search(goal)
            if match:
                groups = match.groups()
                if len(groups) > 1 and groups[1]:
                    topic = f"{groups[0].strip()} vs {groups[1].strip()}"
                else:
                    topic = (groups[0] or "").strip() if groups else ""
                    topic = topic or goal
                confidence += PATTERN_CONFIDENCE
                break

        normalized = goal.lower()
        hits = sum(1 for keyword in template.keywords if keyword.lower() in normalized)
        confidence += min(hits * KEYWORD_CONFIDENCE, MAX_KEYWORD_CONFIDENCE)

        if not topic and confidence > 0:
            topic = derive_topic(goal)
        return confidence, topic

    def match(self, goal: str) -> Optional[TemplateMatch]:
        """Return the best-scoring template for ``goal``, or ``None``.

        A candidate needs confidence above 0.3 and a topic longer than two
        characters. Exact ties keep the earlier registered template.
        """
        goal = goal.strip()
        best: Optional[TemplateMatch] = None
        for template in self.registry:
            confidence, topic = self.score(template, goal)
            if confidence > MIN_CONFIDENCE and len(topic) > MIN_TOPIC_LENGTH:
                if best is None or confidence > best.confidence:
                    best = TemplateMatch(template=template, topic=topic, confidence=confidence)
        if best is not None:
            logger.debug(
                f"Goal {goal!r} matched template {best.template.id} "
                f"(confidence={best.confidence:.2f}, topic={best.topic!r})"
            )
        return best


def build_from_template(
    template: WorkflowTemplate,
    topic: str,
    depth: str,
    sources: Optional[Sequence[str]] = None,
    output_format: Optional[str] = None,
) -> Plan:
    """Build a plan from ``template`` for ``topic``.

    Search steps for sources outside ``sources`` are dropped and the
    remaining steps re-numbered, with step references translated to the new
    indices.

    Raises:
        PlanningError: If filtering leaves a step with no data to read.
    """
    steps = template.build_steps(topic, depth)

    if output_format and output_format != template.default_format:
        steps = [
            step.model_copy(
                update={"params": step.params.model_copy(update={"report_format": output_format})}
            )
            if isinstance(step, GenerateReportStep)
            else step
            for step in steps
        ]

    if sources is not None:
        allowed = {normalize_source(source) for source in sources}
        kept = [
            step for step in steps if step.type != "search" or step.params.source in allowed
        ]
        if len(kept) != len(steps):
            logger.info(
                f"Template {template.id}: dropped {len(steps) - len(kept)} search step(s) "
                f"for sources outside {sorted(allowed)}"
            )
    else:
        kept = list(steps)

    index_map = {step.index: position for position, step in enumerate(kept)}
    try:
        renumbered = reindex_steps(kept, index_map)
    except ValueError as e:
        raise PlanningError(
            f"Template {template.id} cannot run with sources {list(sources or [])}: {e}"
        ) from e
    return Plan(
        title=template.build_title(topic),
        description=template.description,
        steps=renumbered,
        template_id=template.id,
    )
