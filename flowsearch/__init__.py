"""FlowSearch: template-first research workflows with AI fallback planning."""

from .contracts import Plan, Report, Workflow, WorkflowExecution
from .dispatch import WorkflowDispatcher
from .executor import WorkflowExecutor
from .persistence import get_repository
from .planning import Planner, default_registry
from .synthesizer import ReportSynthesizer

__version__ = "0.1.0"
__all__ = [
    "Plan",
    "Planner",
    "Report",
    "ReportSynthesizer",
    "Workflow",
    "WorkflowDispatcher",
    "WorkflowExecution",
    "WorkflowExecutor",
    "default_registry",
    "get_repository",
]
