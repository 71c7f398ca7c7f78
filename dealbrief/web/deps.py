"""Dependency injection for FastAPI — shared config and pipeline factory."""

from __future__ import annotations

from functools import lru_cache

from dealbrief.config import Config, load_config
from dealbrief.pipeline import ResearchPipeline


@lru_cache
def get_config() -> Config:
    return load_config()


def get_pipeline() -> ResearchPipeline:
    """A fresh pipeline per request; run state never outlives the request."""
    return ResearchPipeline(get_config())
