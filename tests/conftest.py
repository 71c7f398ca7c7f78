"""Shared fixtures: test config, identity and run context."""

import pytest

from dealbrief.config import Config
from dealbrief.context import RunContext
from dealbrief.input.normalizer import normalize_input
from tests.fakes import make_config


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture
def identity():
    return normalize_input({
        "company_name": "Acme Widgets, Inc.",
        "domain": "https://www.acme.com/",
        "owner_names": ["Jane Doe"],
    })


@pytest.fixture
def ctx(config, identity) -> RunContext:
    return RunContext(config=config, identity=identity)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's .env and shell keys out of the tests."""
    for key in (
        "SERPER_KEY", "FIRECRAWL_KEY", "PROXYCURL_KEY",
        "ANTHROPIC_API_KEY", "OPENAI_API_KEY",
        "RUN_BUDGET_SECONDS", "MAX_SEARCH_QUERIES", "LLM_USD_CAP",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("dealbrief.config.load_dotenv", lambda *a, **kw: False)
