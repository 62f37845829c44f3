"""Generative-model document analysis.

Builds a jurisdiction-aware prompt, sends it through an LLM client exposing
``generate(prompt) -> str`` and turns the structured reply into an
``AnalysisReport``. Every failure surfaces as ``AnalysisUnavailable`` so the
caller can fall back to local classification.
"""
from __future__ import annotations
import asyncio
import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

from clauseguard.analysis.reconcile import generate_summary, round_half_up
from clauseguard.utils.exception import AnalysisUnavailable
from clauseguard.utils.logger import logger
from clauseguard.utils.types import AnalysisReport, ClauseMatch, ClauseType, Compliance, Position, RiskLevel

PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"
ANALYSIS_TEMPLATE = (PROMPT_DIR / "analysis.txt").read_text(encoding="utf-8")
EXPLAIN_TEMPLATE = (PROMPT_DIR / "explain.txt").read_text(encoding="utf-8")
COMPARE_TEMPLATE = (PROMPT_DIR / "compare.txt").read_text(encoding="utf-8")

JURISDICTION_REGULATIONS: Dict[str, Dict[str, List[str]]] = {
    "india": {
        "Rent Control": [
            "Rent Control Act varies by state",
            "Maximum 10% annual rent increase in most states",
            "Advance rent limited to 2-3 months",
            "Security deposit typically capped at 2-3 months rent",
        ],
        "Tenant Protection": [
            "Cannot evict without proper notice (typically 1-3 months)",
            "Essential services cannot be cut off",
            "Tenant has right to receipt for all payments",
            "Landlord must provide habitable premises",
        ],
        "Deposit Rules": [
            "Security deposit must be refunded within 1-2 months of vacancy",
            "Deductions only for actual damages beyond normal wear",
            "Interest may be payable on deposit in some states",
            "Written itemization of deductions required",
        ],
    },
    "us": {
        "Fair Housing": [
            "No discrimination based on race, color, religion, sex, national origin, disability, or family status",
            "Reasonable accommodations for disabilities required",
            "Equal treatment in terms, conditions, and privileges",
            "Advertising must not indicate discriminatory preferences",
        ],
        "Security Deposit": [
            "State-specific limits (typically 1-2 months rent)",
            "Must be held in separate account in many states",
            "Return within 14-60 days depending on state",
            "Written itemization of deductions required",
        ],
        "Eviction Protection": [
            "Proper notice required (typically 30-60 days)",
            "Cannot evict in retaliation for complaints",
            "Court process required for eviction",
            "Cannot use self-help eviction methods",
        ],
    },
    "general": {},
}

CLAUSE_TYPE_MAP: Dict[str, ClauseType] = {
    "security_deposit": ClauseType.SECURITY_DEPOSIT,
    "deposit": ClauseType.SECURITY_DEPOSIT,
    "rent_hike": ClauseType.RENT_HIKE,
    "rent_increase": ClauseType.RENT_HIKE,
    "lock_in_penalty": ClauseType.LOCK_IN_PENALTY,
    "lock_in": ClauseType.LOCK_IN_PENALTY,
    "payment": ClauseType.PAYMENT,
    "liability": ClauseType.LIABILITY,
    "confidentiality": ClauseType.CONFIDENTIALITY,
    "termination": ClauseType.TERMINATION,
    "jurisdiction": ClauseType.JURISDICTION,
    "indemnity": ClauseType.INDEMNITY,
    "indemnification": ClauseType.INDEMNITY,
    "warranty": ClauseType.WARRANTY,
    "force_majeure": ClauseType.FORCE_MAJEURE,
    "dispute_resolution": ClauseType.DISPUTE_RESOLUTION,
    "arbitration": ClauseType.DISPUTE_RESOLUTION,
    "governing_law": ClauseType.GOVERNING_LAW,
    "maintenance": ClauseType.OTHER,
    "utilities": ClauseType.OTHER,
    "subletting": ClauseType.OTHER,
    "other": ClauseType.OTHER,
}

RISK_LEVEL_MAP: Dict[str, RiskLevel] = {
    "high": RiskLevel.HIGH,
    "medium": RiskLevel.MEDIUM,
    "moderate": RiskLevel.MEDIUM,
    "low": RiskLevel.LOW,
    "informational": RiskLevel.LOW,
    "info": RiskLevel.LOW,
}

LINE_HEIGHT = 20


def jurisdiction_context(jurisdiction: str) -> str:
    regs = JURISDICTION_REGULATIONS.get(jurisdiction.lower(), {})
    if not regs:
        return ""
    lines = [f"Analyze this document according to {jurisdiction.upper()} regulations:"]
    for topic, facts in regs.items():
        lines.append(f"- {topic}: {', '.join(facts)}")
    return "\n".join(lines) + "\n"


def build_analysis_prompt(text: str, jurisdiction: str) -> str:
    return ANALYSIS_TEMPLATE.format(jurisdiction_context=jurisdiction_context(jurisdiction), text=text)


def extract_json_object(text: str) -> Dict[str, Any]:
    """Return the first balanced ``{...}`` in ``text`` that parses as a JSON object.

    The model often wraps its answer in prose or code fences, so scan for brace
    depth while skipping braces inside string literals.
    """
    depth = 0
    start = None
    in_string = False
    escape_next = False
    for i, ch in enumerate(text):
        if depth == 0:
            # quotes in surrounding prose are not string delimiters
            in_string = escape_next = False
            if ch == "{":
                start = i
                depth = 1
            continue
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    obj = json.loads(text[start:i + 1])
                except json.JSONDecodeError:
                    start = None
                    continue
                if isinstance(obj, dict):
                    return obj
                start = None
    raise ValueError("No JSON object found in response")


def normalize_clause_type(value: Any) -> ClauseType:
    key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    return CLAUSE_TYPE_MAP.get(key, ClauseType.OTHER)


def normalize_risk_level(value: Any) -> RiskLevel:
    return RISK_LEVEL_MAP.get(str(value or "").strip().lower(), RiskLevel.MEDIUM)


def rubric_confidence(raw: Dict[str, Any], risk: RiskLevel) -> float:
    confidence = 0.5
    if raw.get("legalBasis"):
        confidence += 0.2
    if raw.get("suggestion"):
        confidence += 0.1
    if risk is RiskLevel.HIGH:
        confidence += 0.15
    elif risk is RiskLevel.MEDIUM:
        confidence += 0.05
    return min(confidence, 1.0)


def clause_confidence(raw: Dict[str, Any], risk: RiskLevel) -> float:
    value = raw.get("confidence")
    if isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1:
        return float(value)
    return rubric_confidence(raw, risk)


def find_text_position(clause_text: str, full_text: str) -> Position:
    idx = full_text.lower().find(clause_text.lower()) if clause_text else -1
    line_number = full_text[:idx].count("\n") + 1 if idx >= 0 else 0
    return Position(x=0, y=line_number * LINE_HEIGHT, width=100, height=40)


def parse_risk_score(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        score = float(str(value).strip().rstrip("%"))
    except ValueError:
        return None
    if not math.isfinite(score):
        return None
    return int(max(0, min(round_half_up(score), 100)))


def estimate_risk_score(clauses: List[ClauseMatch]) -> int:
    """Score used when the model omits ``overallRiskScore``."""
    if not clauses:
        return 0
    multiplier = {RiskLevel.HIGH: 3, RiskLevel.MEDIUM: 2, RiskLevel.LOW: 1}
    total = sum(c.confidence * multiplier[c.risk_level] * 10 for c in clauses)
    return min(round_half_up(total / len(clauses) * 10), 100)


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = "; ".join(str(v) for v in value if v)
    elif isinstance(value, dict):
        value = json.dumps(value, ensure_ascii=False)
    text = str(value).strip() if value is not None else ""
    return text or None


def _string_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValueError(f"Expected list of strings, got {type(value).__name__}")
    return [str(v) for v in value if v]


def parse_analysis_response(response_text: str, full_text: str, jurisdiction: str) -> AnalysisReport:
    analysis = extract_json_object(response_text)
    raw_clauses = analysis.get("problematicClauses", analysis.get("clauses", []))
    if raw_clauses is None:
        raw_clauses = []
    if not isinstance(raw_clauses, list):
        raise ValueError("problematicClauses is not a list")

    clauses: List[ClauseMatch] = []
    for raw in raw_clauses:
        if not isinstance(raw, dict):
            raise ValueError("clause entry is not an object")
        text = str(raw.get("text") or "").strip()
        if not text:
            logger.debug("Skipping clause without text: %s", raw)
            continue
        risk = normalize_risk_level(raw.get("riskLevel"))
        clauses.append(ClauseMatch(
            source_text=text,
            clause_type=normalize_clause_type(raw.get("type")),
            risk_level=risk,
            confidence=clause_confidence(raw, risk),
            reason=str(raw.get("reason") or ""),
            legal_basis=_optional_text(raw.get("legalBasis")),
            suggestion=_optional_text(raw.get("suggestion")),
            position=find_text_position(text, full_text),
        ))

    comp = analysis.get("governmentCompliance") or analysis.get("compliance") or {}
    if not isinstance(comp, dict):
        raise ValueError("compliance block is not an object")
    compliant = comp.get("compliant", True)
    if isinstance(compliant, str):
        compliant = compliant.strip().lower() not in ("false", "no", "0")
    compliance = Compliance(
        compliant=bool(compliant),
        violations=_string_list(comp.get("violations")),
        recommendations=_string_list(comp.get("recommendations")),
    )

    score = parse_risk_score(analysis.get("overallRiskScore"))
    if score is None:
        score = estimate_risk_score(clauses)
    summary = analysis.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = generate_summary(clauses, jurisdiction)
    return AnalysisReport(clauses=clauses, overall_risk_score=score, compliance=compliance, summary=summary)


class RemoteAnalysisClient:
    def __init__(self, llm, jurisdiction: str = "general", timeout: float = 60.0):
        self.llm = llm
        self.jurisdiction = jurisdiction
        self.timeout = timeout

    async def _generate(self, prompt: str) -> str:
        return await asyncio.wait_for(asyncio.to_thread(self.llm.generate, prompt), timeout=self.timeout)

    async def analyze(self, full_text: str, jurisdiction: Optional[str] = None) -> AnalysisReport:
        jurisdiction = (jurisdiction or self.jurisdiction).lower()
        prompt = build_analysis_prompt(full_text, jurisdiction)
        try:
            raw = await self._generate(prompt)
        except asyncio.TimeoutError as e:
            raise AnalysisUnavailable(f"Analysis timed out after {self.timeout:.0f}s", e) from e
        except Exception as e:
            raise AnalysisUnavailable("Analysis service call failed", e) from e
        try:
            report = parse_analysis_response(raw or "", full_text, jurisdiction)
        except Exception as e:
            raise AnalysisUnavailable("Analysis response could not be parsed", e) from e
        logger.info("Remote analysis returned %d clause(s), risk score %d", len(report.clauses), report.overall_risk_score)
        return report

    async def explain_clause(self, clause: ClauseMatch, language: str = "en") -> str:
        prompt = EXPLAIN_TEMPLATE.format(
            language="Hindi" if language == "hi" else "English",
            text=clause.source_text,
            clause_type=clause.clause_type.value,
            risk_level=clause.risk_level.value,
            reason=clause.reason,
        )
        try:
            return (await self._generate(prompt)).strip()
        except Exception as e:
            logger.warning("Detailed explanation unavailable: %s", e)
            return "विस्तृत विवरण उपलब्ध नहीं है।" if language == "hi" else "Detailed explanation not available."

    async def compare_with_standard(self, text: str, jurisdiction: Optional[str] = None) -> Dict[str, List[str]]:
        jurisdiction = (jurisdiction or self.jurisdiction).lower()
        label = jurisdiction.upper() if jurisdiction != "general" else ""
        prompt = COMPARE_TEMPLATE.format(jurisdiction=label, text=text)
        empty = {"deviations": [], "missing_clauses": [], "recommendations": []}
        try:
            data = extract_json_object(await self._generate(prompt))
            return {
                "deviations": _string_list(data.get("deviations")),
                "missing_clauses": _string_list(data.get("missingClauses")),
                "recommendations": _string_list(data.get("recommendations")),
            }
        except Exception as e:
            logger.warning("Standard agreement comparison unavailable: %s", e)
            return empty
