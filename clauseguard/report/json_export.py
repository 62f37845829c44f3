from __future__ import annotations
import json
from typing import Any, Dict, List, Optional
from clauseguard.utils.types import AnalysisReport, ExtractionResult


def build_report_json(
    report: AnalysisReport,
    meta: Dict[str, Any],
    extractions: Optional[List[ExtractionResult]] = None,
) -> str:
    """Return a structured JSON snapshot of one analysis run.

    meta can include build/version timestamps, model info, jurisdiction, etc.
    """
    payload = {
        "meta": meta,
        "pages": [
            {
                "page": i + 1,
                "language": ex.detected_language,
                "confidence": ex.confidence,
                "paragraphs": len(ex.paragraphs),
            } for i, ex in enumerate(extractions or [])
        ],
        **report.as_dict(),
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)
