"""Static clause detectors and plain-language explanations.

Each rule pairs precise structural regexes with looser vocabulary keywords. The
table is pure data: the classifier owns all scoring logic.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Dict, Tuple

from clauseguard.utils.types import ClauseType, RiskLevel


def _keyword_pattern(keyword: str) -> re.Pattern:
    # whitespace-flexible literal match
    parts = [re.escape(p) for p in keyword.split()]
    return re.compile(r"\s+".join(parts), re.I)


@dataclass(frozen=True)
class ClassifierRule:
    clause_type: ClauseType
    patterns: Tuple[re.Pattern, ...]
    keywords: Tuple[str, ...]
    risk_level: RiskLevel
    weight: float
    reason: str
    keyword_patterns: Tuple[re.Pattern, ...] = ()


def _rule(clause_type, patterns, keywords, risk_level, weight, reason) -> ClassifierRule:
    return ClassifierRule(
        clause_type=clause_type,
        patterns=tuple(re.compile(p, re.I) for p in patterns),
        keywords=tuple(keywords),
        risk_level=risk_level,
        weight=weight,
        reason=reason,
        keyword_patterns=tuple(_keyword_pattern(k) for k in keywords),
    )


CLASSIFICATION_RULES: Tuple[ClassifierRule, ...] = (
    _rule(
        ClauseType.SECURITY_DEPOSIT,
        [
            r"security\s+deposit.*(?:forfeited?|forfeit|retained?|deducted?)",
            r"deposit.*(?:will\s+not\s+be|shall\s+not\s+be).*returned?",
            r"(?:advance|deposit).*(?:adjusted?|adjustment).*rent",
            r"deposit.*(?:damages?|wear\s+and\s+tear).*(?:as\s+per|at\s+the\s+discretion)",
        ],
        ["forfeit deposit", "non-refundable deposit", "deposit adjustment"],
        RiskLevel.HIGH,
        0.9,
        "Unfair security deposit forfeiture or deduction clause",
    ),
    _rule(
        ClauseType.SECURITY_DEPOSIT,
        [
            r"deposit.*(?:subject\s+to|conditions?|terms?)",
            r"security.*(?:damages?|repairs?|maintenance)",
            r"wear\s+and\s+tear.*(?:normal|reasonable).*(?:not|exclude)",
        ],
        ["deposit conditions", "wear and tear", "damage assessment"],
        RiskLevel.MEDIUM,
        0.6,
        "Vague or ambiguous security deposit terms",
    ),
    _rule(
        ClauseType.RENT_HIKE,
        [
            r"rent.*(?:increase|enhanced?|raised?).*(?:at\s+the\s+discretion|sole\s+discretion|without\s+notice)",
            r"owner.*(?:right|entitled?).*(?:increase|enhance|raise).*rent.*(?:any\s+time|without\s+limit)",
            r"rent.*(?:revision|review).*(?:monthly|quarterly|any\s+time)",
            r"annual.*increase.*(?:minimum|not\s+less\s+than).*\d+.*percent",
        ],
        ["arbitrary rent increase", "discretionary rent hike", "unlimited increase"],
        RiskLevel.HIGH,
        0.85,
        "Arbitrary or excessive rent increase provision",
    ),
    _rule(
        ClauseType.RENT_HIKE,
        [
            r"rent.*(?:increase|enhanced?).*annual",
            r"(?:market\s+rate|prevailing\s+rate).*rent.*adjustment",
            r"rent.*(?:subject\s+to|liable\s+to).*(?:change|modification)",
        ],
        ["annual rent increase", "market rate adjustment"],
        RiskLevel.MEDIUM,
        0.5,
        "Potential for regular rent increases",
    ),
    _rule(
        ClauseType.LOCK_IN_PENALTY,
        [
            r"(?:lock.?in|lock.?up).*(?:period|clause).*(?:months?|years?).*(?:penalty|charges?|forfeit)",
            r"(?:vacate|leave|exit).*(?:before|prior\s+to).*(?:penalty|charges?|forfeit)",
            r"(?:termination|breaking).*(?:agreement|contract).*(?:penalty|charges?).*(?:months?\s+rent|\d+.*deposit)",
            r"(?:notice\s+period|advance\s+notice).*(?:months?|days?).*(?:failing|without).*penalty",
        ],
        ["lock-in penalty", "early termination charges", "forfeit deposit"],
        RiskLevel.HIGH,
        0.8,
        "Harsh lock-in period with heavy penalties",
    ),
    _rule(
        ClauseType.LOCK_IN_PENALTY,
        [
            r"(?:minimum|initial).*(?:tenure|period).*(?:months?|years?)",
            r"(?:notice\s+period|advance\s+notice).*(?:months?|days?)",
            r"(?:early|premature).*(?:vacation|exit|termination)",
        ],
        ["minimum tenure", "notice period", "early vacation"],
        RiskLevel.MEDIUM,
        0.4,
        "Standard lock-in terms that may limit flexibility",
    ),
)


def rules_for(clause_type: ClauseType) -> Tuple[ClassifierRule, ...]:
    return tuple(r for r in CLASSIFICATION_RULES if r.clause_type == clause_type)


# (clause_type, risk_level) -> {"what_it_means": {lang: text}, "what_law_says": {lang: text}}
EXPLANATIONS: Dict[Tuple[ClauseType, RiskLevel], Dict[str, Dict[str, str]]] = {
    (ClauseType.SECURITY_DEPOSIT, RiskLevel.HIGH): {
        "what_it_means": {
            "hi": "इसका मतलब है कि मालिक आपकी जमानत राशि को बिना उचित कारण के जब्त कर सकता है।",
            "en": "This means the owner can forfeit your security deposit without proper justification.",
        },
        "what_law_says": {
            "hi": "कानून के अनुसार, सामान्य टूट-फूट के लिए जमानत राशि नहीं काटी जा सकती।",
            "en": "By law, security deposit cannot be deducted for normal wear and tear.",
        },
    },
    (ClauseType.SECURITY_DEPOSIT, RiskLevel.MEDIUM): {
        "what_it_means": {
            "hi": "जमानत राशि की वापसी अस्पष्ट शर्तों पर निर्भर है।",
            "en": "Security deposit refund depends on unclear conditions.",
        },
        "what_law_says": {
            "hi": "सभी कटौतियों के लिए उचित रसीद और औचित्य देना आवश्यक है।",
            "en": "Proper receipts and justification required for all deductions.",
        },
    },
    (ClauseType.SECURITY_DEPOSIT, RiskLevel.LOW): {
        "what_it_means": {
            "hi": "जमानत राशि की शर्तें उचित लगती हैं।",
            "en": "Security deposit terms appear reasonable.",
        },
        "what_law_says": {
            "hi": "उचित नुकसान के लिए ही जमानत राशि काटी जा सकती है।",
            "en": "Security deposit can only be deducted for legitimate damages.",
        },
    },
    (ClauseType.RENT_HIKE, RiskLevel.HIGH): {
        "what_it_means": {
            "hi": "मालिक बिना नोटिस के या मनमाने तरीके से किराया बढ़ा सकता है।",
            "en": "Owner can increase rent arbitrarily or without notice.",
        },
        "what_law_says": {
            "hi": "राज्य के किराया नियंत्रण कानून के अनुसार किराया वृद्धि सीमित होनी चाहिए।",
            "en": "Rent increases should be limited as per state rent control laws.",
        },
    },
    (ClauseType.RENT_HIKE, RiskLevel.MEDIUM): {
        "what_it_means": {
            "hi": "नियमित किराया वृद्धि हो सकती है।",
            "en": "Regular rent increases may occur.",
        },
        "what_law_says": {
            "hi": "किराया वृद्धि उचित नोटिस के साथ होनी चाहिए।",
            "en": "Rent increases should be with proper notice.",
        },
    },
    (ClauseType.RENT_HIKE, RiskLevel.LOW): {
        "what_it_means": {
            "hi": "किराया वृद्धि की शर्तें उचित हैं।",
            "en": "Rent increase terms are reasonable.",
        },
        "what_law_says": {
            "hi": "निष्पक्ष किराया वृद्धि कानूनी रूप से मान्य है।",
            "en": "Fair rent increases are legally valid.",
        },
    },
    (ClauseType.LOCK_IN_PENALTY, RiskLevel.HIGH): {
        "what_it_means": {
            "hi": "जल्दी छोड़ने पर भारी जुर्माना या जमानत राशि जब्त हो सकती है।",
            "en": "Heavy penalty or deposit forfeiture for early exit.",
        },
        "what_law_says": {
            "hi": "अनुचित लॉक-इन खंड भारतीय अनुबंध कानून के तहत चुनौती योग्य हैं।",
            "en": "Unreasonable lock-in clauses are challengeable under Indian Contract Law.",
        },
    },
    (ClauseType.LOCK_IN_PENALTY, RiskLevel.MEDIUM): {
        "what_it_means": {
            "hi": "न्यूनतम अवधि की बाध्यता है।",
            "en": "There is a minimum tenure obligation.",
        },
        "what_law_says": {
            "hi": "उचित नोटिस पीरियड कानूनी रूप से मान्य है।",
            "en": "Reasonable notice periods are legally valid.",
        },
    },
    (ClauseType.LOCK_IN_PENALTY, RiskLevel.LOW): {
        "what_it_means": {
            "hi": "लॉक-इन शर्तें उचित हैं।",
            "en": "Lock-in terms are reasonable.",
        },
        "what_law_says": {
            "hi": "मानक लॉक-इन अवधि स्वीकार्य है।",
            "en": "Standard lock-in periods are acceptable.",
        },
    },
    (ClauseType.OTHER, RiskLevel.HIGH): {
        "what_it_means": {
            "hi": "इस खंड में जोखिम हो सकता है।",
            "en": "This clause may contain risks.",
        },
        "what_law_says": {
            "hi": "कानूनी सलाह लेना उचित होगा।",
            "en": "Legal advice would be appropriate.",
        },
    },
    (ClauseType.OTHER, RiskLevel.MEDIUM): {
        "what_it_means": {
            "hi": "इस खंड की सावधानीपूर्वक समीक्षा करें।",
            "en": "Review this clause carefully.",
        },
        "what_law_says": {
            "hi": "अस्पष्ट शर्तों को स्पष्ट करने का अधिकार है।",
            "en": "Right to clarify unclear terms.",
        },
    },
    (ClauseType.OTHER, RiskLevel.LOW): {
        "what_it_means": {
            "hi": "यह खंड सामान्य है।",
            "en": "This clause appears standard.",
        },
        "what_law_says": {
            "hi": "मानक अनुबंध शर्तें स्वीकार्य हैं।",
            "en": "Standard contract terms are acceptable.",
        },
    },
}


def get_explanation(clause_type: ClauseType, risk_level: RiskLevel) -> Dict[str, Dict[str, str]]:
    """Plain-language explanation for a clause; generic categories use the ``other`` row."""
    return EXPLANATIONS.get((clause_type, risk_level)) or EXPLANATIONS[(ClauseType.OTHER, risk_level)]
