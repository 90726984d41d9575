"""Goal planning: template catalog, matcher and AI fallback."""

from __future__ import annotations

from .ai_planner import AIPlanner
from .matcher import TemplateMatch, TemplateMatcher, build_from_template, derive_topic
from .planner import Planner
from .templates import DEFAULT_TEMPLATES, TemplateRegistry, WorkflowTemplate, default_registry

__all__ = [
    "AIPlanner",
    "DEFAULT_TEMPLATES",
    "Planner",
    "TemplateMatch",
    "TemplateMatcher",
    "TemplateRegistry",
    "WorkflowTemplate",
    "build_from_template",
    "default_registry",
    "derive_topic",
]
