from __future__ import annotations

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_DEPTH,
    DEFAULT_MAX_TOKENS,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_SOURCES,
)


class CompletionConfig(BaseModel):
    """Configuration for the text-completion service."""

    model: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS


class SearchConfig(BaseModel):
    """Credentials and limits for the search providers."""

    serpapi_key: Optional[str] = None
    github_token: Optional[str] = None
    pexels_api_key: Optional[str] = None
    timeout: float = 30.0


class PlannerConfig(BaseModel):
    """Defaults applied when a caller omits planning options."""

    default_sources: List[str] = Field(default_factory=lambda: list(DEFAULT_SOURCES))
    default_depth: Literal["quick", "standard", "deep"] = DEFAULT_DEPTH
    default_output_format: Literal["comparison", "analysis", "timeline", "summary"] = (
        DEFAULT_OUTPUT_FORMAT
    )
    min_template_confidence: float = 0.0


class ExecutorConfig(BaseModel):
    """Run loop settings."""

    step_timeout: Optional[float] = None


class FlowSearchConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    completion: CompletionConfig = CompletionConfig()
    search: SearchConfig = SearchConfig()
    planner: PlannerConfig = PlannerConfig()
    executor: ExecutorConfig = ExecutorConfig()


def load_config(path: Optional[str] = None) -> FlowSearchConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWSEARCH_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLOWSEARCH_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FlowSearchConfig(**data)
    else:
        config = FlowSearchConfig()

    env_db_url = os.getenv("FLOWSEARCH_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url

    env_model = os.getenv("FLOWSEARCH_MODEL")
    if env_model:
        config.completion.model = env_model

    config.search.serpapi_key = os.getenv("GOOGLE_SERP_API_KEY") or config.search.serpapi_key
    config.search.github_token = os.getenv("GITHUB_TOKEN") or config.search.github_token
    config.search.pexels_api_key = os.getenv("PEXELS_API_KEY") or config.search.pexels_api_key
    return config
