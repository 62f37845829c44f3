"""Merge remote analysis with local rule matches into one report.

Reconciliation never raises: a missing remote report selects the degraded,
local-only branch.
"""
from __future__ import annotations
import math
import re
from difflib import SequenceMatcher
from typing import List, Optional, Sequence

from clauseguard.utils.logger import logger
from clauseguard.utils.types import AnalysisReport, ClauseMatch, Compliance, Paragraph, RiskLevel

LOCAL_PREFIX = "[Local Detection] "
SIMILARITY_PREFIX = 50
UNAVAILABLE_RECOMMENDATION = "Automated compliance analysis unavailable - manual review recommended"

_WS_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    return _WS_RE.sub(" ", (text or "").lower()).strip()


def find_span(needle: str, haystack: str) -> Optional[str]:
    """Return the slice of ``haystack`` matching ``needle`` up to case and whitespace."""
    words = (needle or "").split()
    if not words:
        return None
    m = re.search(r"\s+".join(re.escape(w) for w in words), haystack, re.I)
    return m.group(0) if m else None


def are_similar(text1: str, text2: str) -> bool:
    # Prefix containment: cheap, but merges clauses sharing a long generic
    # preamble and misses reordered ones.
    n1 = normalize_text(text1)
    n2 = normalize_text(text2)
    return n2[:SIMILARITY_PREFIX] in n1 or n1[:SIMILARITY_PREFIX] in n2


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_overall_risk_score(matches: Sequence[ClauseMatch]) -> int:
    if not matches:
        return 0
    total = sum(m.risk_level.weight * m.confidence for m in matches)
    return min(round_half_up(total / len(matches)), 100)


def generate_summary(clauses: Sequence[ClauseMatch], jurisdiction: str = "general", degraded: bool = False) -> str:
    high = sum(1 for c in clauses if c.risk_level is RiskLevel.HIGH)
    medium = sum(1 for c in clauses if c.risk_level is RiskLevel.MEDIUM)
    low = sum(1 for c in clauses if c.risk_level is RiskLevel.LOW)
    counts = f"{high} high-risk, {medium} medium-risk, {low} low-risk."
    if degraded:
        parts = [f"Local analysis found {len(clauses)} potential issue(s): {counts} AI analysis unavailable."]
        if jurisdiction and jurisdiction != "general":
            parts.append(f"{jurisdiction.upper()} regulations could not be checked automatically.")
    else:
        parts = [f"Document analysis complete. Found {len(clauses)} problematic clause(s): {counts}"]
        if jurisdiction and jurisdiction != "general":
            parts.append(f"Analysis performed according to {jurisdiction.upper()} regulations.")
    if high > 0:
        parts.append("CAUTION: This document contains high-risk clauses that may be unfair or illegal. Legal consultation recommended.")
    return " ".join(parts)


def anchor_to_paragraphs(clause: ClauseMatch, paragraphs: Sequence[Paragraph]) -> ClauseMatch:
    """Make sure ``clause.source_text`` can be found in some paragraph.

    Literal quotes are returned as-is. A quote that differs only in case or
    spacing is replaced (in a new match) by the exact span of the paragraph;
    anything else by the closest paragraph.
    """
    if not paragraphs:
        return clause
    if any(clause.source_text in p.text for p in paragraphs):
        return clause
    for p in paragraphs:
        span = find_span(clause.source_text, p.text)
        if span:
            return clause.with_source(span)
    norm = normalize_text(clause.source_text)
    best = max(paragraphs, key=lambda p: SequenceMatcher(None, norm, normalize_text(p.text)).ratio())
    logger.debug("Re-anchored remote clause %s to paragraph %d", clause.id, best.index)
    return clause.with_source(best.text)


def reconcile(
    remote: Optional[AnalysisReport],
    local: Sequence[ClauseMatch],
    paragraphs: Optional[Sequence[Paragraph]] = None,
    jurisdiction: str = "general",
) -> AnalysisReport:
    if remote is None:
        clauses = list(local)
        return AnalysisReport(
            clauses=clauses,
            overall_risk_score=calculate_overall_risk_score(clauses),
            compliance=Compliance(compliant=True, violations=[], recommendations=[UNAVAILABLE_RECOMMENDATION]),
            summary=generate_summary(clauses, jurisdiction, degraded=True),
        )

    merged: List[ClauseMatch] = [anchor_to_paragraphs(c, paragraphs or []) for c in remote.clauses]
    added = 0
    for lm in local:
        if any(are_similar(rm.source_text, lm.source_text) for rm in remote.clauses):
            continue
        merged.append(lm.with_reason(LOCAL_PREFIX))
        added += 1
    logger.info("Reconciled %d remote and %d local-only clause(s)", len(remote.clauses), added)
    return AnalysisReport(
        clauses=merged,
        overall_risk_score=remote.overall_risk_score,
        compliance=remote.compliance,
        summary=remote.summary,
    )
