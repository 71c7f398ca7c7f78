"""Route findings into report sections with caps and near-duplicate collapse."""

from __future__ import annotations

import logging
import re
from collections import Counter

from dealbrief.config import Limits
from dealbrief.input.normalizer import mentions_entity
from dealbrief.models import (
    CanonicalIdentity,
    Finding,
    ReportBullet,
    SectionCategory,
    Severity,
)
from dealbrief.search.url_ranker import extract_host

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"\W+")
_VOWELS = re.compile(r"[aeiou]")


# ---------------------------------------------------------------------------
# Text similarity
# ---------------------------------------------------------------------------

def tokens(text: str) -> set[str]:
    return {t for t in _NON_WORD.split((text or "").lower()) if t}


def cheap_stem(text: str) -> str:
    """Vowel-stripped signature: first four consonants of every word."""
    words = [w for w in _NON_WORD.split((text or "").lower()) if w]
    return "".join(_VOWELS.sub("", w)[:4] for w in words)[:240]


def jaccard(a: str, b: str) -> float:
    ta, tb = tokens(a), tokens(b)
    if not ta and not tb:
        return 1.0
    inter = len(ta & tb)
    return inter / (len(ta) + len(tb) - inter)


def statement_similarity(a: str, b: str) -> float:
    """1.0 for matching stems, otherwise token Jaccard overlap."""
    stem_a = cheap_stem(a)
    if stem_a and stem_a == cheap_stem(b):
        return 1.0
    return jaccard(a, b)


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)] + "…"


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class SectionAggregator:
    """One bucket per SectionCategory, filled in citation order.

    Checks, in order: section cap, relevance gate, similarity against every
    accepted bullet, per-host cap. Only accepted bullets count toward the
    host cap.
    """

    def __init__(self, identity: CanonicalIdentity, limits: Limits):
        self.identity = identity
        self.limits = limits
        self.buckets: dict[SectionCategory, list[ReportBullet]] = {c: [] for c in SectionCategory}
        self._accepted: list[str] = []
        self._host_counts: Counter[str] = Counter()
        self.rejected: Counter[str] = Counter()

    def add(self, finding: Finding, citation_marker: int) -> bool:
        """Try to insert a finding as a bullet. Returns True when accepted."""
        bucket = self.buckets[finding.category]
        if len(bucket) >= self.limits.bullet_cap:
            self.rejected["section_cap"] += 1
            return False

        gate_text = f"{finding.statement} {finding.supporting_quote or ''}"
        if not mentions_entity(gate_text, self.identity):
            self.rejected["relevance"] += 1
            return False

        threshold = self.limits.similarity_threshold
        for existing in self._accepted:
            if statement_similarity(finding.statement, existing) >= threshold:
                self.rejected["duplicate"] += 1
                return False

        host = extract_host(finding.source_url)
        if self._host_counts[host] >= self.limits.host_cap:
            self.rejected["host_cap"] += 1
            return False

        bucket.append(ReportBullet(
            text=_truncate(finding.statement, self.limits.bullet_max_chars),
            quote=_truncate(finding.supporting_quote, self.limits.bullet_max_chars)
            if finding.supporting_quote else None,
            source_url=finding.source_url,
            citation_marker=citation_marker,
            severity=finding.severity,
            origin=finding.origin,
            category=finding.category,
        ))
        self._accepted.append(finding.statement)
        self._host_counts[host] += 1
        return True

    def total(self) -> int:
        return sum(len(b) for b in self.buckets.values())

    def top_findings(self, limit: int) -> list[ReportBullet]:
        """CRITICAL/HIGH bullets, most severe first, ties by section order."""
        ranked = [
            (bullet, category.order, i)
            for category, bullets in self.buckets.items()
            for i, bullet in enumerate(bullets)
            if bullet.severity in (Severity.CRITICAL, Severity.HIGH)
        ]
        ranked.sort(key=lambda item: (-item[0].severity.rank, item[1], item[2]))
        return [bullet for bullet, _, _ in ranked[:limit]]
