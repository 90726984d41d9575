"""Shared fakes and fixtures."""

import json

import pytest

import flowsearch.persistence as persistence
from flowsearch.errors import CompletionError
from flowsearch.persistence import InMemoryWorkflowRepository
from flowsearch.search.base import SearchProvider

ENV_VARS = (
    "FLOWSEARCH_CONFIG",
    "FLOWSEARCH_DATABASE_URL",
    "DATABASE_URL",
    "FLOWSEARCH_MODEL",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "GOOGLE_SERP_API_KEY",
    "GITHUB_TOKEN",
    "PEXELS_API_KEY",
)


class FakeCompletionClient:
    """Return scripted responses in order and record every prompt.

    A response may be a string, any JSON-serializable value, or an exception
    instance to raise.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def complete(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        if not self.responses:
            raise CompletionError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if not isinstance(response, str):
            response = json.dumps(response)
        return response


class FakeSearchProvider(SearchProvider):
    def __init__(self, source="web", results_key="results", hits=None, error=None):
        super().__init__()
        self.source = source
        self.results_key = results_key
        self.hits = hits if hits is not None else [{"title": f"{source} hit", "url": "https://x"}]
        self.error = error
        self.queries = []

    async def search(self, query, filters):
        self.queries.append((query, dict(filters)))
        if self.error is not None:
            raise self.error
        return {self.results_key: list(self.hits)}


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(persistence, "_repository_instance", None)


@pytest.fixture
def completion_factory():
    return FakeCompletionClient


@pytest.fixture
def provider_factory():
    return FakeSearchProvider


@pytest.fixture
def repository():
    return InMemoryWorkflowRepository()
