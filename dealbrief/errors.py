"""Exceptions surfaced to callers of the research pipeline."""

from __future__ import annotations

from typing import Any


class InputValidationError(ValueError):
    """Raised when the research input (company/domain/owners) is malformed.

    Carries the structured pydantic error list so the HTTP layer can return it.
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class MissingCredentialsError(RuntimeError):
    """Raised at startup when required API keys are not configured."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "Missing required credentials: " + ", ".join(missing)
        )
