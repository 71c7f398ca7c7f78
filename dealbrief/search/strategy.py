"""Dork generation: category-targeted search queries for a company and its owners."""

from __future__ import annotations

from typing import NamedTuple

from dealbrief.config import ScoringWeights
from dealbrief.models import CanonicalIdentity, Dork, SectionCategory


class DorkTemplate(NamedTuple):
    """A query pattern expanded with {company}, {company_or_domain}, {domain}, {owner}."""
    pattern: str
    category: SectionCategory


_C = "{company}"
_CD = "{company_or_domain}"

DEFAULT_DORK_TEMPLATES: tuple[DorkTemplate, ...] = (
    # --- legal / regulatory ---
    *(DorkTemplate(f"{_CD} {k}", SectionCategory.LEGAL) for k in (
        "lawsuit", "litigation", '"court case"', '"legal action"', "settlement", '"class action"',
    )),
    *(DorkTemplate(f"{_C} {k}", SectionCategory.LEGAL) for k in (
        "fine", "penalty", "sanction", '"regulatory action"', "investigation",
    )),
    DorkTemplate(f"{_CD} site:*.gov", SectionCategory.LEGAL),

    # --- cyber / breaches ---
    *(DorkTemplate(f"{_CD} {k}", SectionCategory.CYBER) for k in (
        '"data breach"', '"cyber attack"', "hacked", '"security incident"', "ransomware",
        '"exposed database"', '"leaked credentials"',
    )),
    *(DorkTemplate(f"site:{site} {_CD}", SectionCategory.CYBER) for site in (
        "pastebin.com", "github.com",
    )),
    DorkTemplate('"@{domain}" site:github.com', SectionCategory.CYBER),

    # --- reputation ---
    *(DorkTemplate(f"{_C} {k}", SectionCategory.REPUTATION) for k in (
        "scandal", "controversy", "fraud", "misconduct", "boycott", '"consumer complaints"',
    )),
    DorkTemplate(f"{_C} reviews complaint -site:{{domain}}", SectionCategory.REPUTATION),

    # --- financials ---
    *(DorkTemplate(f"{_CD} site:sec.gov {k}", SectionCategory.FINANCIALS) for k in (
        '"10-K"', '"10-Q"',
    )),
    *(DorkTemplate(f"{_C} {k}", SectionCategory.FINANCIALS) for k in (
        '"financial results"', '"annual report"', '"funding round"', '"investor relations"',
    )),
    DorkTemplate(f"{_CD} filetype:pdf", SectionCategory.FINANCIALS),
    DorkTemplate(f"{_CD} filetype:xlsx", SectionCategory.FINANCIALS),

    # --- corporate ---
    *(DorkTemplate(f"{_C} {k}", SectionCategory.CORPORATE) for k in (
        '"acquisition of"', '"acquired by"', '"merger with"', '"partnership with"',
        "layoffs", "restructuring", "bankruptcy", '"chapter 11"',
    )),

    # --- simple fallbacks ---
    DorkTemplate(_C, SectionCategory.MISC),
    DorkTemplate(f"{_C} site:{{domain}}", SectionCategory.MISC),
)

OWNER_DORK_TEMPLATES: tuple[DorkTemplate, ...] = (
    *(DorkTemplate(f'"{{owner}}" {_C} {k}', SectionCategory.LEADERSHIP) for k in (
        "fraud", "lawsuit", "investigation", "scandal", '"insider trading"',
    )),
    DorkTemplate(f'"{{owner}}" {_C}', SectionCategory.LEADERSHIP),
)


def _expand(template: DorkTemplate, identity: CanonicalIdentity, owner: str = "") -> str:
    company = f'"{identity.canonical_name}"'
    return template.pattern.format(
        company=company,
        company_or_domain=f'({company} OR "{identity.domain}")',
        domain=identity.domain,
        owner=owner,
    )


def generate_dorks(
    identity: CanonicalIdentity,
    weights: ScoringWeights | None = None,
    templates: tuple[DorkTemplate, ...] = DEFAULT_DORK_TEMPLATES,
    owner_templates: tuple[DorkTemplate, ...] = OWNER_DORK_TEMPLATES,
) -> list[Dork]:
    """Generate the prioritized dork list for a company and its owners.

    Pure and deterministic: same identity, same list. Highest priority first,
    ties keep template order.
    """
    weights = weights or ScoringWeights()
    expanded: list[tuple[str, SectionCategory]] = [
        (_expand(t, identity), t.category) for t in templates
    ]
    for owner in identity.owner_names:
        expanded.extend((_expand(t, identity, owner), t.category) for t in owner_templates)

    dorks: list[Dork] = []
    seen: set[str] = set()
    for query, category in expanded:
        if query in seen:
            continue
        seen.add(query)
        dorks.append(Dork(
            query=query,
            category=category,
            priority=weights.dork_priority.get(category, 0),
        ))

    dorks.sort(key=lambda d: d.priority, reverse=True)
    return dorks


def host_expansion_dork(
    identity: CanonicalIdentity,
    host: str,
    category: SectionCategory,
    priority: int = 1,
) -> Dork:
    """A dork scoped to a newly discovered host."""
    return Dork(
        query=f'("{identity.canonical_name}" OR "{identity.domain}") site:{host}',
        category=category,
        priority=priority,
    )


def owner_profile_query(identity: CanonicalIdentity, owner: str) -> str:
    """Search query that locates an owner's LinkedIn profile."""
    return f'"{owner}" "{identity.canonical_name}" site:linkedin.com/in/'
