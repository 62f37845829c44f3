from __future__ import annotations
import re
from typing import Iterable, List, Sequence, Tuple, Union

from clauseguard.analysis.rules import CLASSIFICATION_RULES, ClassifierRule
from clauseguard.utils.types import ClauseMatch, Paragraph, Position

PATTERN_SHARE = 0.7
KEYWORD_SHARE = 0.3
RELEVANCE_THRESHOLD = 0.2
DEDUP_PREFIX = 50
MIN_PARAGRAPH_CHARS = 10
PARAGRAPH_SPACING = 50  # approximate vertical offset per paragraph

PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")


def split_paragraphs(text: str) -> List[Paragraph]:
    """Split OCR output on blank lines; short fragments (<= 10 chars) are noise."""
    segments = [seg.replace("\n", " ").strip() for seg in PARAGRAPH_BREAK_RE.split(text or "")]
    kept = [s for s in segments if len(s) > MIN_PARAGRAPH_CHARS]
    return [Paragraph(index=i, text=s) for i, s in enumerate(kept)]


def split_lines(text: str) -> List[Paragraph]:
    lines = [l for l in (text or "").split("\n") if l.strip()]
    return [Paragraph(index=i, text=l) for i, l in enumerate(lines)]


def score_rule(rule: ClassifierRule, text: str) -> Tuple[float, int]:
    """Return (raw score, number of hits) for one rule against one paragraph."""
    score = 0.0
    hits = 0
    for pattern in rule.patterns:
        if pattern.search(text):
            score += rule.weight * PATTERN_SHARE
            hits += 1
    for kw in rule.keyword_patterns:
        if kw.search(text):
            score += rule.weight * KEYWORD_SHARE
            hits += 1
    return score, hits


def find_matching_rules(text: str, rules: Sequence[ClassifierRule] = CLASSIFICATION_RULES) -> List[Tuple[ClassifierRule, float]]:
    matches: List[Tuple[ClassifierRule, float]] = []
    for rule in rules:
        score, hits = score_rule(rule, text)
        if hits > 0 and score > RELEVANCE_THRESHOLD:
            matches.append((rule, min(score, 1.0)))
    matches.sort(key=lambda m: -m[1])
    return matches


def dedup_key(match: ClauseMatch) -> Tuple[str, str]:
    return (match.clause_type.value, match.source_text[:DEDUP_PREFIX])


def deduplicate(matches: Iterable[ClauseMatch]) -> List[ClauseMatch]:
    """Keep the highest-confidence representative of each (type, 50-char prefix) group.

    The sort is stable, so ties keep their input order and a second pass over the
    output is a no-op.
    """
    seen = set()
    kept: List[ClauseMatch] = []
    for m in sorted(matches, key=lambda m: -m.confidence):
        key = dedup_key(m)
        if key in seen:
            continue
        seen.add(key)
        kept.append(m)
    return kept


class LocalClassifier:
    """Rule-based clause classifier. Stateless; safe to share across threads."""

    def __init__(self, rules: Sequence[ClassifierRule] = CLASSIFICATION_RULES):
        self.rules = tuple(rules)

    def classify(self, paragraphs: Sequence[Union[Paragraph, str]]) -> List[ClauseMatch]:
        results: List[ClauseMatch] = []
        for idx, para in enumerate(paragraphs):
            if isinstance(para, str):
                para = Paragraph(index=idx, text=para)
            for rule, score in find_matching_rules(para.text, self.rules):
                results.append(ClauseMatch(
                    source_text=para.text,
                    clause_type=rule.clause_type,
                    risk_level=rule.risk_level,
                    confidence=score,
                    reason=rule.reason,
                    position=Position(x=0, y=para.index * PARAGRAPH_SPACING, width=100, height=40),
                ))
        return deduplicate(results)

    def classify_text(self, text: str) -> List[ClauseMatch]:
        return self.classify(split_lines(text))
