from __future__ import annotations
import uuid
from dataclasses import dataclass, field, replace, asdict
from enum import Enum
from typing import List, Dict, Any, Optional, Union


class ClauseType(str, Enum):
    SECURITY_DEPOSIT = "security_deposit"
    RENT_HIKE = "rent_hike"
    LOCK_IN_PENALTY = "lock_in_penalty"
    OTHER = "other"
    # generic categories for non-rental documents
    PAYMENT = "payment"
    LIABILITY = "liability"
    CONFIDENTIALITY = "confidentiality"
    TERMINATION = "termination"
    JURISDICTION = "jurisdiction"
    INDEMNITY = "indemnity"
    WARRANTY = "warranty"
    FORCE_MAJEURE = "force_majeure"
    DISPUTE_RESOLUTION = "dispute_resolution"
    GOVERNING_LAW = "governing_law"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def weight(self) -> int:
        return {"high": 30, "medium": 20, "low": 10}[self.value]


def generate_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Position:
    x: int = 0
    y: int = 0
    width: int = 100
    height: int = 40


@dataclass(frozen=True)
class Paragraph:
    index: int
    text: str


@dataclass(frozen=True)
class ClauseMatch:
    source_text: str
    clause_type: ClauseType
    risk_level: RiskLevel
    confidence: float
    reason: str
    legal_basis: Optional[str] = None
    suggestion: Optional[str] = None
    position: Position = field(default_factory=Position)
    id: str = field(default_factory=generate_id)

    def with_reason(self, prefix: str) -> "ClauseMatch":
        return replace(self, reason=f"{prefix}{self.reason}")

    def with_source(self, text: str) -> "ClauseMatch":
        return replace(self, source_text=text)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["clause_type"] = self.clause_type.value
        data["risk_level"] = self.risk_level.value
        return data


@dataclass(frozen=True)
class ExtractionResult:
    full_text: str
    paragraphs: List[Paragraph]
    confidence: float
    detected_language: str


@dataclass(frozen=True)
class Compliance:
    compliant: bool = True
    violations: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AnalysisReport:
    clauses: List[ClauseMatch]
    overall_risk_score: int
    compliance: Compliance
    summary: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "clauses": [c.as_dict() for c in self.clauses],
            "overall_risk_score": self.overall_risk_score,
            "compliance": asdict(self.compliance),
            "summary": self.summary,
        }


ImageSource = Union[bytes, str]


@dataclass(frozen=True)
class PageInput:
    image: ImageSource
    requested_language: str = "auto"
