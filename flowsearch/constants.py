"""Shared constants for flowsearch."""

DEFAULT_DEPTH = "standard"
DEFAULT_OUTPUT_FORMAT = "summary"
DEFAULT_SOURCES = ["web"]

# Results requested per search step, keyed by depth.
DEPTH_RESULTS = {
    "quick": 5,
    "standard": 10,
    "deep": 20,
}

# Upper bound on AI-planned steps, keyed by depth.
DEPTH_MAX_STEPS = {
    "quick": 3,
    "standard": 5,
    "deep": 8,
}

# Character budgets for data embedded in prompts.
EXTRACT_DATA_LIMIT = 8000
ANALYZE_DATA_LIMIT = 10000
AGGREGATE_DATA_LIMIT = 10000
REPORT_DATA_LIMIT = 14000

CANCELLED_MESSAGE = "Cancelled by user"

DEFAULT_ANTHROPIC_MODEL = "anthropic:claude-sonnet-4-20250514"
DEFAULT_OPENAI_MODEL = "openai:gpt-4o-mini"
DEFAULT_MAX_TOKENS = 4096
