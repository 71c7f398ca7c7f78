"""URL canonicalization, hit scoring, and scrape-target ranking."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from dealbrief.config import ScoringWeights
from dealbrief.models import CanonicalIdentity, Hit, ScrapeTarget, SectionCategory

# Risk vocabulary: signals a result worth a closer look
RISK_WORDS = re.compile(
    r"\b(breach|leak|ransom|hack|exposed data|vulnerability|security incident|"
    r"cyberattack|fraud|scandal|lawsuit|litigation|complaint|sec filing|"
    r"investigation|fine|penalty|illegal|unethical|corruption|bribery|"
    r"money laundering|sanction|recall|unsafe|defect|warning letter|"
    r"regulatory action|insolvency|bankruptcy|default|liquidation|"
    r"receivership|cease and desist)\b",
    re.IGNORECASE,
)

# Documents the scraper should never see; they go to manual review
FILE_EXTENSIONS = re.compile(
    r"\.(pdf|xlsx?|docx?|pptx?|csv|txt|log|sql|bak|zip|tar\.gz|tgz)$",
    re.IGNORECASE,
)

# Government, court and registry sources
AUTHORITATIVE_DOMAINS = [
    "sec.gov",
    "justice.gov",
    "courtlistener.com",
    "pacermonitor.com",
    "opencorporates.com",
    "companieshouse.gov.uk",
    "find-and-update.company-information.service.gov.uk",
    "ftc.gov",
    "finra.org",
]
AUTHORITATIVE_SUFFIXES = (".gov", ".mil", ".gov.uk", ".gc.ca", ".europa.eu")

NEWS_DOMAINS = [
    "reuters.com",
    "bloomberg.com",
    "wsj.com",
    "ft.com",
    "apnews.com",
    "nytimes.com",
    "cnbc.com",
    "bbc.co.uk",
    "bbc.com",
    "techcrunch.com",
    "theregister.com",
    "bleepingcomputer.com",
    "krebsonsecurity.com",
]

# Paths on the company's own site that are still worth reading
EDITORIAL_PATH = re.compile(r"/(blog|news|press|newsroom|media)(/|$)", re.IGNORECASE)

# Targeted keywords per dork category
CATEGORY_KEYWORDS: dict[SectionCategory, list[str]] = {
    SectionCategory.LEGAL: [
        "lawsuit", "litigation", "court", "settlement", "class action",
        "regulator", "fine", "penalty", "sanction", "investigation",
    ],
    SectionCategory.CYBER: [
        "breach", "leak", "hacked", "ransomware", "vulnerability",
        "exposed", "credentials", "security incident", "cyber",
    ],
    SectionCategory.REPUTATION: [
        "scandal", "controversy", "fraud", "misconduct", "boycott",
        "complaint", "protest", "unethical",
    ],
    SectionCategory.FINANCIALS: [
        "10-k", "10-q", "annual report", "earnings", "revenue",
        "funding", "financial results", "investor",
    ],
    SectionCategory.CORPORATE: [
        "acquisition", "merger", "acquired", "partnership", "joint venture",
        "layoffs", "restructuring", "bankruptcy",
    ],
    SectionCategory.LEADERSHIP: [
        "ceo", "founder", "director", "executive", "insider trading",
    ],
    SectionCategory.MISC: [],
}


def canonicalize_url(url: str) -> str:
    """Dedup key for a URL: strip query string and fragment."""
    return re.sub(r"[?#].*$", "", url.strip())


def extract_host(url: str) -> str:
    """Extract the lower-case hostname without a leading www."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def is_file_url(url: str) -> bool:
    return bool(FILE_EXTENSIONS.search(urlparse(canonicalize_url(url)).path or url))


def has_risk_vocabulary(text: str) -> bool:
    return bool(text) and bool(RISK_WORDS.search(text))


def is_authoritative(url: str) -> bool:
    host = extract_host(url)
    if not host:
        return False
    if host.endswith(AUTHORITATIVE_SUFFIXES):
        return True
    return any(host == d or host.endswith("." + d) for d in AUTHORITATIVE_DOMAINS)


def is_news(url: str) -> bool:
    host = extract_host(url)
    if host.startswith("news."):
        return True
    if any(host == d or host.endswith("." + d) for d in NEWS_DOMAINS):
        return True
    return "/news" in urlparse(url).path.lower()


def is_own_domain(url: str, domain: str) -> bool:
    host = extract_host(url)
    return bool(domain) and (host == domain or host.endswith("." + domain))


def composite_score(
    url: str,
    title: str,
    snippet: str,
    category: SectionCategory,
    identity: CanonicalIdentity,
    weights: ScoringWeights,
) -> float:
    """Score a kept search result, 0-1."""
    text = f"{title} {snippet}".lower()
    score = weights.base

    if is_own_domain(url, identity.domain):
        score += weights.domain_match
    keywords = CATEGORY_KEYWORDS.get(category, [])
    if any(kw in text for kw in keywords):
        score += weights.targeted_keyword
    if has_risk_vocabulary(text):
        score += weights.risk_vocabulary
    if is_file_url(url):
        score += weights.file_extension
    if is_authoritative(url):
        score += weights.authoritative_domain
    if is_news(url):
        score += weights.news_domain

    return max(0.0, min(1.0, score))


def scraping_priority(
    hit: Hit,
    identity: CanonicalIdentity,
    weights: ScoringWeights,
) -> float:
    """Layer scrape-specific bonuses and penalties over the composite score."""
    priority = weights.target_base
    text = f"{hit.snippet} {hit.title}"

    if has_risk_vocabulary(text):
        priority += weights.target_risk
    priority += weights.target_category_bonus.get(hit.source_category, 0.0)
    if is_authoritative(hit.url):
        priority += weights.target_authoritative
    if is_file_url(hit.url):
        priority += weights.target_file
    if is_news(hit.url):
        priority += weights.target_news
    if is_own_domain(hit.url, identity.domain) and not EDITORIAL_PATH.search(urlparse(hit.url).path):
        priority -= weights.target_own_domain_penalty

    return priority + hit.composite_score * weights.composite_multiplier


def select_targets(
    hits: list[Hit],
    identity: CanonicalIdentity,
    weights: ScoringWeights,
    max_targets: int,
) -> list[ScrapeTarget]:
    """Rank all hits and return the top N scrape targets.

    Sort is stable on discovery order; duplicate URLs keep their best score.
    """
    ordered = sorted(hits, key=lambda h: h.discovery_index)
    scored = [(scraping_priority(h, identity, weights), h) for h in ordered]
    scored.sort(key=lambda pair: pair[0], reverse=True)

    targets: list[ScrapeTarget] = []
    seen: set[str] = set()
    for priority, hit in scored:
        if len(targets) >= max_targets:
            break
        key = canonicalize_url(hit.url)
        if key in seen:
            continue
        seen.add(key)
        targets.append(ScrapeTarget(hit=hit, priority=priority, rank=len(targets) + 1))
    return targets
