from clauseguard.analysis.rules import CLASSIFICATION_RULES, get_explanation, rules_for
from clauseguard.utils.types import ClauseType, RiskLevel


def test_rule_table_shape():
    assert len(CLASSIFICATION_RULES) == 6
    for rule in CLASSIFICATION_RULES:
        assert 0 < rule.weight <= 1
        assert rule.patterns and rule.keywords
        assert len(rule.keyword_patterns) == len(rule.keywords)


def test_rules_for_returns_high_and_medium():
    levels = {r.risk_level for r in rules_for(ClauseType.RENT_HIKE)}
    assert levels == {RiskLevel.HIGH, RiskLevel.MEDIUM}


def test_explanation_lookup_and_generic_fallback():
    exp = get_explanation(ClauseType.LOCK_IN_PENALTY, RiskLevel.HIGH)
    assert "penalty" in exp["what_it_means"]["en"].lower()
    assert exp["what_law_says"]["hi"]
    generic = get_explanation(ClauseType.INDEMNITY, RiskLevel.LOW)
    assert generic == get_explanation(ClauseType.OTHER, RiskLevel.LOW)
