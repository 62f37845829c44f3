"""Language-adaptive text extraction.

When the page language is unknown the page is read once with a Latin baseline
profile, the language of that text is identified, and the page is read again
with the matching profile if it differs. Each call walks an explicit state
machine so progress reporting stays monotonic across both passes.
"""
from __future__ import annotations
import asyncio
import threading
from enum import Enum
from typing import Callable, List, Optional

from clauseguard.analysis.classifier import split_paragraphs
from clauseguard.ocr.language import (
    AUTO, BASELINE_PROFILE, SUPPORTED_PROFILES, UNDETERMINED, LanguageIdentifier, profile_for,
)
from clauseguard.ocr.service import ExtractionService, RecognitionResult
from clauseguard.utils.exception import CustomException, ExtractionFailure, UnsupportedLanguage
from clauseguard.utils.logger import logger
from clauseguard.utils.types import ExtractionResult, ImageSource

ProgressCallback = Callable[[int], None]
StateCallback = Callable[["ExtractionState"], None]

FIRST_PASS_CEILING = 50
PASS_CEILING = 99  # 100 is reserved for DONE


class ExtractionState(Enum):
    PENDING = "pending"
    BASELINE_EXTRACTED = "baseline-extracted"
    LANGUAGE_DETECTED = "language-detected"
    REFINED_EXTRACTED = "refined-extracted"
    DONE = "done"


class ProgressTracker:
    """Clamp progress to non-decreasing integers; only ``finish`` may emit 100."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.value = -1
        self._lock = threading.RLock()

    def report(self, value: float):
        v = max(0, min(int(value), PASS_CEILING))
        self._emit(v)

    def finish(self):
        self._emit(100)

    def _emit(self, v: int):
        with self._lock:
            if v <= self.value:
                return
            self.value = v
            # delivered in commit order
            if self.callback:
                self.callback(v)

    def span(self, low: int, high: int) -> Callable[[float], None]:
        def _scaled(p: float):
            p = max(0.0, min(float(p), 100.0))
            self.report(low + (high - low) * p / 100.0)
        return _scaled


class _Run:
    def __init__(self, on_progress: Optional[ProgressCallback], on_state: Optional[StateCallback]):
        self.state = ExtractionState.PENDING
        self.progress = ProgressTracker(on_progress)
        self.on_state = on_state
        self.history: List[ExtractionState] = [self.state]

    def advance(self, state: ExtractionState):
        logger.debug("Extraction %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)
        if self.on_state:
            self.on_state(state)


class LanguageAdaptiveExtractor:
    def __init__(
        self,
        service: ExtractionService,
        identifier: LanguageIdentifier,
        baseline: str = BASELINE_PROFILE,
        timeout: float = 60.0,
        min_detect_length: int = 10,
    ):
        self.service = service
        self.identifier = identifier
        self.baseline = baseline
        self.timeout = timeout
        self.min_detect_length = min_detect_length

    async def extract(
        self,
        image: ImageSource,
        requested_language: str = AUTO,
        on_progress: Optional[ProgressCallback] = None,
        on_state: Optional[StateCallback] = None,
    ) -> ExtractionResult:
        run = _Run(on_progress, on_state)
        run.progress.report(0)
        if requested_language != AUTO:
            if not all(part in SUPPORTED_PROFILES for part in requested_language.split("+")):
                raise UnsupportedLanguage(requested_language)
            result = await self._recognize(image, requested_language, run.progress.span(0, PASS_CEILING))
            run.advance(ExtractionState.DONE)
            run.progress.finish()
            return self._build(result, requested_language)

        baseline = await self._recognize(image, self.baseline, run.progress.span(0, FIRST_PASS_CEILING))
        run.advance(ExtractionState.BASELINE_EXTRACTED)

        code = self.identifier.identify(baseline.text, self.min_detect_length)
        profile = self.baseline if code == UNDETERMINED else profile_for(code, self.baseline)
        run.advance(ExtractionState.LANGUAGE_DETECTED)
        logger.info("Detected language %s -> profile %s", code, profile)
        run.progress.report(FIRST_PASS_CEILING)

        final, final_profile = baseline, self.baseline
        if profile != self.baseline:
            try:
                final = await self._recognize(image, profile, run.progress.span(FIRST_PASS_CEILING, PASS_CEILING))
                final_profile = profile
                run.advance(ExtractionState.REFINED_EXTRACTED)
            except UnsupportedLanguage:
                # auto mode never fails on a model the caller did not ask for
                logger.warning("No recognition model for detected profile %s; keeping baseline text", profile)

        run.advance(ExtractionState.DONE)
        run.progress.finish()
        return self._build(final, final_profile)

    async def _recognize(self, image: ImageSource, language: str, on_progress: Callable[[float], None]) -> RecognitionResult:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.service.recognize, image, language, on_progress),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionFailure(f"Extraction with '{language}' timed out after {self.timeout:.0f}s", e) from e
        except CustomException:
            raise
        except Exception as e:
            logger.exception("Extraction service error for %s", language)
            raise ExtractionFailure(f"Extraction with '{language}' failed", e) from e

    @staticmethod
    def _build(result: RecognitionResult, language: str) -> ExtractionResult:
        text = (result.text or "").strip()
        return ExtractionResult(
            full_text=text,
            paragraphs=split_paragraphs(text),
            confidence=max(0.0, min(float(result.confidence), 100.0)),
            detected_language=language,
        )
