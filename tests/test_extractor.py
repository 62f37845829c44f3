import asyncio
import threading
import time

import pytest

from clauseguard.ocr import language, service
from clauseguard.ocr.extractor import ExtractionState, LanguageAdaptiveExtractor, ProgressTracker
from clauseguard.ocr.language import LangDetectIdentifier
from clauseguard.ocr.service import RecognitionResult
from clauseguard.utils.exception import ExtractionFailure, UnsupportedLanguage

HINDI_TEXT = "किरायेदार को हर महीने की पांच तारीख तक किराया देना होगा।\n\nजमानत राशि वापस नहीं की जाएगी।"
LATIN_GARBLE = "fcx 3k kjw plq\n\nzzv ooq trr lmn"


class StubOCR:
    def __init__(self, texts, confidence=88.0, unsupported=(), delay=0.0, error=None):
        self.texts = texts
        self.confidence = confidence
        self.unsupported = set(unsupported)
        self.delay = delay
        self.error = error
        self.calls = []

    def recognize(self, image, language, on_progress=None):
        self.calls.append(language)
        if language in self.unsupported:
            raise UnsupportedLanguage(language)
        if self.error:
            raise self.error
        if self.delay:
            time.sleep(self.delay)
        for p in (0, 25, 75, 100):
            if on_progress:
                on_progress(p)
        return RecognitionResult(self.texts.get(language, ""), self.confidence)


class StubIdentifier:
    def __init__(self, code):
        self.code = code
        self.calls = []

    def identify(self, text, min_length=10):
        self.calls.append((text, min_length))
        return self.code


def run(coro):
    return asyncio.run(coro)


def test_explicit_language_runs_single_pass():
    ocr = StubOCR({"hin": HINDI_TEXT})
    ident = StubIdentifier("en")
    result = run(LanguageAdaptiveExtractor(ocr, ident).extract(b"img", "hin"))
    assert ocr.calls == ["hin"]
    assert ident.calls == []
    assert result.detected_language == "hin"
    assert len(result.paragraphs) == 2
    assert result.full_text == HINDI_TEXT


def test_auto_keeps_baseline_when_language_matches():
    ocr = StubOCR({"eng": "The tenant shall pay rent on the fifth of every month."})
    states = []
    result = run(LanguageAdaptiveExtractor(ocr, StubIdentifier("en")).extract(b"img", "auto", on_state=states.append))
    assert ocr.calls == ["eng"]
    assert result.detected_language == "eng"
    assert states == [ExtractionState.BASELINE_EXTRACTED, ExtractionState.LANGUAGE_DETECTED, ExtractionState.DONE]


def test_auto_reruns_with_detected_profile():
    ocr = StubOCR({"eng": LATIN_GARBLE, "hin": HINDI_TEXT}, confidence=71.5)
    states = []
    result = run(LanguageAdaptiveExtractor(ocr, StubIdentifier("hi")).extract(b"img", "auto", on_state=states.append))
    assert ocr.calls == ["eng", "hin"]
    assert result.full_text == HINDI_TEXT
    assert result.detected_language == "hin"
    assert result.confidence == 71.5
    assert ExtractionState.REFINED_EXTRACTED in states
    assert states[-1] is ExtractionState.DONE


def test_unknown_detector_code_falls_back_to_baseline():
    ocr = StubOCR({"eng": LATIN_GARBLE})
    result = run(LanguageAdaptiveExtractor(ocr, StubIdentifier("xx")).extract(b"img", "auto"))
    assert ocr.calls == ["eng"]
    assert result.detected_language == "eng"


def test_auto_progress_is_monotonic_and_split_at_fifty():
    ocr = StubOCR({"eng": LATIN_GARBLE, "hin": HINDI_TEXT})
    events = []
    extractor = LanguageAdaptiveExtractor(ocr, StubIdentifier("hi"))
    run(extractor.extract(
        b"img", "auto",
        on_progress=lambda p: events.append(("p", p)),
        on_state=lambda s: events.append(("s", s)),
    ))
    values = [v for kind, v in events if kind == "p"]
    assert values == sorted(values)
    assert values[-1] == 100 and values.count(100) == 1
    first_pass_end = events.index(("s", ExtractionState.BASELINE_EXTRACTED))
    assert all(v <= 50 for kind, v in events[:first_pass_end] if kind == "p")
    done_at = events.index(("s", ExtractionState.DONE))
    assert all(v < 100 for kind, v in events[:done_at] if kind == "p")


def test_single_pass_progress_reaches_100_only_when_done():
    ocr = StubOCR({"eng": "Some text of the page"})
    values = []
    run(LanguageAdaptiveExtractor(ocr, StubIdentifier("en")).extract(b"img", "eng", on_progress=values.append))
    assert values[0] == 0
    assert values[-2] == 99
    assert values[-1] == 100


def test_progress_tracker_ignores_regressions():
    seen = []
    tracker = ProgressTracker(seen.append)
    for v in (0, 10, 5, 40, 40, 120):
        tracker.report(v)
    tracker.finish()
    assert seen == [0, 10, 40, 99, 100]


def test_short_text_skips_detection(monkeypatch):
    def boom(_text):
        raise AssertionError("detector should not run on short text")
    monkeypatch.setattr(language, "detect", boom)
    ocr = StubOCR({"eng": "Rs 500"})
    result = run(LanguageAdaptiveExtractor(ocr, LangDetectIdentifier()).extract(b"img", "auto"))
    assert ocr.calls == ["eng"]
    assert result.full_text == "Rs 500"


def test_explicit_unsupported_language_is_rejected():
    ocr = StubOCR({})
    with pytest.raises(UnsupportedLanguage):
        run(LanguageAdaptiveExtractor(ocr, StubIdentifier("en")).extract(b"img", "klingon"))
    assert ocr.calls == []


def test_explicit_language_without_model_propagates():
    ocr = StubOCR({}, unsupported={"tam"})
    with pytest.raises(UnsupportedLanguage):
        run(LanguageAdaptiveExtractor(ocr, StubIdentifier("en")).extract(b"img", "tam"))


def test_auto_mode_keeps_baseline_when_detected_model_missing():
    ocr = StubOCR({"eng": LATIN_GARBLE}, unsupported={"tam"})
    result = run(LanguageAdaptiveExtractor(ocr, StubIdentifier("ta")).extract(b"img", "auto"))
    assert ocr.calls == ["eng", "tam"]
    assert result.detected_language == "eng"
    assert result.full_text == LATIN_GARBLE


def test_timeout_becomes_extraction_failure():
    ocr = StubOCR({"eng": "late"}, delay=0.5)
    extractor = LanguageAdaptiveExtractor(ocr, StubIdentifier("en"), timeout=0.05)
    with pytest.raises(ExtractionFailure):
        run(extractor.extract(b"img", "eng"))


def test_service_error_becomes_extraction_failure():
    ocr = StubOCR({}, error=OSError("engine crashed"))
    with pytest.raises(ExtractionFailure) as exc:
        run(LanguageAdaptiveExtractor(ocr, StubIdentifier("en")).extract(b"img", "auto"))
    assert isinstance(exc.value.cause, OSError)


def test_empty_text_is_not_an_error():
    ocr = StubOCR({"eng": "   "})
    result = run(LanguageAdaptiveExtractor(ocr, StubIdentifier("en")).extract(b"img", "auto"))
    assert result.full_text == ""
    assert result.paragraphs == []


def test_unreachable_engine_in_auto_mode_is_extraction_failure(monkeypatch):
    def not_installed(config=""):
        raise service.pytesseract.TesseractNotFoundError()
    monkeypatch.setattr(service.pytesseract, "get_languages", not_installed)
    extractor = LanguageAdaptiveExtractor(service.TesseractService(), StubIdentifier("en"))
    with pytest.raises(ExtractionFailure):
        run(extractor.extract(b"img", "auto"))


def test_progress_is_delivered_in_commit_order_across_threads():
    seen = []
    tracker = ProgressTracker(seen.append)
    barrier = threading.Barrier(4)

    def worker(offset):
        barrier.wait()
        for v in range(offset, 99, 4):
            tracker.report(v)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    tracker.finish()
    assert seen == sorted(seen)
    assert len(seen) == len(set(seen))
    assert seen[-1] == 100
