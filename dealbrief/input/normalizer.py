"""Validate research input and derive the canonical identity used for matching."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from dealbrief.errors import InputValidationError
from dealbrief.models import CanonicalIdentity, ResearchRequest

logger = logging.getLogger(__name__)

# Legal suffixes, stripped repeatedly from the end of the name
_LEGAL_SUFFIXES = re.compile(
    r"\s+(?:inc|incorporated|llc|llp|lp|ltd|limited|corp|corporation|"
    r"co|company|plc|gmbh|ag|sa|nv|bv|pty|pte)$",
)

_PUNCTUATION = re.compile(r"[^\w\s&]")
_WHITESPACE = re.compile(r"\s+")


def _strip_punctuation(text: str) -> str:
    """Lower-case, drop punctuation and collapse whitespace.

    Shared by name canonicalization and the relevance gate so both sides of
    a comparison are normalized the same way.
    """
    text = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def canonicalize_name(name: str) -> str:
    """Derive the canonical company name.

    e.g. "Acme Widgets, Inc."  -> "acme widgets"
         "Foo Holdings Co. Ltd" -> "foo holdings"
         "Company"             -> "company"  (single words are never stripped)
    """
    cleaned = _strip_punctuation(name)
    while True:
        stripped = _LEGAL_SUFFIXES.sub("", cleaned).strip()
        if stripped == cleaned or not stripped:
            break
        cleaned = stripped
    return cleaned


def canonicalize_domain(domain: str) -> str:
    """Reduce a domain or URL to a bare lower-case hostname.

    e.g. "https://www.Acme.com/about" -> "acme.com"
    """
    d = domain.strip().lower()
    d = re.sub(r"^[a-z][a-z0-9+.-]*://", "", d)
    d = d.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    d = d.split("@")[-1].split(":", 1)[0]
    if d.startswith("www."):
        d = d[4:]
    return d.rstrip(".")


def normalize_input(raw: Mapping[str, Any]) -> CanonicalIdentity:
    """Validate raw input and build the run's CanonicalIdentity.

    Raises InputValidationError before any external call is made.
    """
    try:
        request = ResearchRequest.model_validate(dict(raw))
    except ValidationError as e:
        raise InputValidationError(
            "Invalid research input",
            errors=e.errors(include_url=False, include_context=False),
        ) from e

    canonical_name = canonicalize_name(request.company_name)
    if not canonical_name:
        raise InputValidationError(
            "Invalid research input",
            errors=[_value_error("company_name", "company name has no letters or digits",
                                 request.company_name)],
        )

    domain = canonicalize_domain(request.domain)
    if "." not in domain:
        raise InputValidationError(
            "Invalid research input",
            errors=[_value_error("domain", "domain must contain a dot", request.domain)],
        )

    owners: list[str] = []
    seen: set[str] = set()
    for owner in request.owner_names or []:
        key = owner.lower()
        if key not in seen:
            seen.add(key)
            owners.append(owner)

    identity = CanonicalIdentity(
        raw_company_name=request.company_name,
        canonical_name=canonical_name,
        domain=domain,
        owner_names=tuple(owners),
    )
    logger.debug(
        "Canonical identity: %r / %s (%d owners)",
        identity.canonical_name, identity.domain, len(owners),
    )
    return identity


def _value_error(field: str, msg: str, value: str) -> dict[str, Any]:
    return {"type": "value_error", "loc": (field,), "msg": msg, "input": value}


def mentions_entity(text: str, identity: CanonicalIdentity) -> bool:
    """Relevance gate: does the text name the company or its domain?"""
    if not text:
        return False
    if identity.domain and identity.domain in text.lower():
        return True
    name = identity.canonical_name
    return bool(name) and name in _strip_punctuation(text)
