import asyncio
import json

import pytest

from clauseguard.analysis.remote import RemoteAnalysisClient
from clauseguard.ocr.extractor import LanguageAdaptiveExtractor
from clauseguard.ocr.service import RecognitionResult
from clauseguard.pipeline import DocumentPipeline
from clauseguard.utils.config import AppConfig
from clauseguard.utils.exception import ExtractionFailure, PageExtractionError, UnsupportedLanguage
from clauseguard.utils.types import ClauseType, PageInput, RiskLevel

PAGE_ONE = (
    "RENTAL AGREEMENT between the owner and the tenant.\n\n"
    "The security deposit of Rs. 50,000 will be forfeited if tenant vacates early."
)
PAGE_TWO = "The rent shall be increased at the sole discretion of the owner without notice."


class PageOCR:
    """Returns the text registered for an image, whatever the language."""

    def __init__(self, pages, fail_on=()):
        self.pages = pages
        self.fail_on = set(fail_on)
        self.acquired = 0
        self.released = 0

    def acquire(self):
        self.acquired += 1
        return self

    def release(self):
        self.released += 1

    def recognize(self, image, language, on_progress=None):
        if image in self.fail_on:
            raise OSError("scanner jam")
        if on_progress:
            on_progress(100)
        return RecognitionResult(self.pages[image], 90.0)


class EnglishIdentifier:
    def identify(self, text, min_length=10):
        return "en"


class StubLLM:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


def _pipeline(ocr, llm=None, **config):
    cfg = AppConfig(use_gemini=False, **config)
    extractor = LanguageAdaptiveExtractor(ocr, EnglishIdentifier())
    analyzer = RemoteAnalysisClient(llm) if llm else None
    return DocumentPipeline(cfg, extractor, analyzer=analyzer, resize=False)


def _pages(*names):
    return [PageInput(image=n) for n in names]


def test_degraded_report_when_analysis_fails():
    ocr = PageOCR({"p1": PAGE_ONE, "p2": PAGE_TWO})
    pipeline = _pipeline(ocr, StubLLM(error=RuntimeError("503")))
    report = asyncio.run(pipeline.process_document(_pages("p1", "p2"), jurisdiction="india"))
    types = {c.clause_type for c in report.clauses}
    assert types == {ClauseType.SECURITY_DEPOSIT, ClauseType.RENT_HIKE}
    assert report.compliance.compliant is True
    assert report.summary.startswith("Local analysis found 2 potential issue(s)")
    assert "INDIA regulations could not be checked automatically." in report.summary
    assert 0 < report.overall_risk_score <= 100


def test_local_only_without_analyzer():
    report = _pipeline(PageOCR({"p1": PAGE_ONE})).process_document_sync(_pages("p1"))
    assert [c.risk_level for c in report.clauses] == [RiskLevel.HIGH]
    assert report.clauses[0].confidence > 0.2


def test_remote_and_local_are_reconciled():
    reply = json.dumps({
        "problematicClauses": [{
            "type": "security_deposit",
            "text": "The security deposit of Rs. 50,000 will be forfeited if tenant vacates early.",
            "riskLevel": "high",
            "reason": "Forfeiture",
        }],
        "governmentCompliance": {"compliant": False, "violations": ["Deposit"], "recommendations": []},
        "overallRiskScore": 80,
        "summary": "Lease with a forfeiture clause.",
    })
    llm = StubLLM(reply)
    ocr = PageOCR({"p1": PAGE_ONE, "p2": PAGE_TWO})
    report = asyncio.run(_pipeline(ocr, llm).process_document(_pages("p1", "p2")))
    assert report.summary == "Lease with a forfeiture clause."
    assert report.overall_risk_score == 80
    assert len(report.clauses) == 2
    assert report.clauses[0].reason == "Forfeiture"
    assert report.clauses[1].clause_type is ClauseType.RENT_HIKE
    assert report.clauses[1].reason.startswith("[Local Detection] ")
    # pages joined in order
    prompt = llm.prompts[0]
    assert prompt.index("RENTAL AGREEMENT") < prompt.index("sole discretion")


def test_pages_keep_their_order():
    ocr = PageOCR({"a": "First page paragraph text.", "b": "Second page paragraph text."})
    results = asyncio.run(_pipeline(ocr, max_concurrency=2).extract_pages(_pages("b", "a")))
    assert [r.full_text for r in results] == ["Second page paragraph text.", "First page paragraph text."]


def test_failed_page_is_reported_by_number():
    ocr = PageOCR({"p1": PAGE_ONE, "p2": PAGE_TWO}, fail_on={"p2"})
    with pytest.raises(PageExtractionError) as exc:
        asyncio.run(_pipeline(ocr).process_document(_pages("p1", "p2")))
    assert exc.value.page_number == 2
    assert isinstance(exc.value, ExtractionFailure)


def test_unsupported_language_carries_page_number():
    ocr = PageOCR({"p1": PAGE_ONE})
    pages = [PageInput("p1"), PageInput("p1", requested_language="klingon")]
    with pytest.raises(UnsupportedLanguage) as exc:
        asyncio.run(_pipeline(ocr).process_document(pages))
    assert exc.value.page_number == 2


def test_overall_progress_is_monotonic():
    ocr = PageOCR({"p1": PAGE_ONE, "p2": PAGE_TWO})
    seen = []
    asyncio.run(_pipeline(ocr).process_document(_pages("p1", "p2"), on_progress=seen.append))
    assert seen == sorted(seen)
    assert seen[-1] == 100 and seen.count(100) == 1


def test_empty_document_yields_empty_report():
    report = _pipeline(PageOCR({})).process_document_sync([])
    assert report.clauses == []
    assert report.overall_risk_score == 0


def test_service_is_acquired_once_and_released_on_close():
    ocr = PageOCR({"p1": PAGE_ONE})
    with _pipeline(ocr) as pipeline:
        pipeline.process_document_sync(_pages("p1"))
        pipeline.process_document_sync(_pages("p1"))
    assert ocr.acquired == 1
    assert ocr.released == 1
