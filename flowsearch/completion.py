"""Text-completion service used by the planner, step handlers and synthesizer."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Optional, Protocol

from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError

from .config import FlowSearchConfig, load_config
from .constants import DEFAULT_ANTHROPIC_MODEL, DEFAULT_OPENAI_MODEL
from .errors import CompletionError, ResponseParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


class CompletionClient(Protocol):
    """Prompt in, text out."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the model's text response to ``user_prompt``."""


class PydanticAICompletionClient:
    """Completion client backed by a plain-text ``pydantic_ai.Agent``."""

    def __init__(self, model: str, max_tokens: int = 4096) -> None:
        self.model = model
        self.max_tokens = max_tokens

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            agent = Agent(self.model, output_type=str, system_prompt=system_prompt)
            result = await agent.run(
                user_prompt, model_settings={"max_tokens": self.max_tokens}
            )
        except ModelHTTPError as e:
            logger.error(f"Completion service returned {e.status_code} for model {self.model}")
            raise CompletionError(
                f"AI API error: {e.status_code} - {e.body}", status_code=e.status_code
            ) from e
        except Exception as e:
            logger.error(f"Completion service call failed for model {self.model}: {e}")
            raise CompletionError(f"AI API error: {e}") from e
        return result.output or ""


def resolve_model(config: FlowSearchConfig) -> str:
    """Pick the completion model from config or available API keys."""
    if config.completion.model:
        return config.completion.model
    if os.getenv("ANTHROPIC_API_KEY"):
        return DEFAULT_ANTHROPIC_MODEL
    if os.getenv("OPENAI_API_KEY"):
        return DEFAULT_OPENAI_MODEL
    raise RuntimeError("No AI API key found. Set ANTHROPIC_API_KEY or OPENAI_API_KEY")


def get_completion_client(config: Optional[FlowSearchConfig] = None) -> CompletionClient:
    """Factory function to obtain the configured completion client."""
    config = config or load_config()
    return PydanticAICompletionClient(
        resolve_model(config), max_tokens=config.completion.max_tokens
    )


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wrapped around a model response."""
    return _FENCE_RE.sub("", text).strip()


def parse_json_response(text: str) -> Any:
    """Decode a model response as JSON after stripping code fences."""
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        preview = cleaned[:200]
        raise ResponseParseError(f"AI response is not valid JSON: {e.msg} in {preview!r}") from e
