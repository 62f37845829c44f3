"""Caller-facing document pipeline.

pages -> language-adaptive extraction (concurrent, bounded) -> {local rules,
remote analysis} in parallel -> reconciliation -> AnalysisReport.
"""
from __future__ import annotations
import asyncio
from typing import Callable, List, Optional, Sequence

from clauseguard.analysis.classifier import LocalClassifier
from clauseguard.analysis.reconcile import reconcile
from clauseguard.analysis.remote import RemoteAnalysisClient
from clauseguard.llm.gemini import GeminiClient, gemini_api_key
from clauseguard.ocr.extractor import LanguageAdaptiveExtractor, ProgressTracker
from clauseguard.ocr.image import resize_image
from clauseguard.ocr.language import LangDetectIdentifier
from clauseguard.ocr.service import TesseractService
from clauseguard.utils.config import AppConfig
from clauseguard.utils.exception import AnalysisUnavailable, PageExtractionError, UnsupportedLanguage
from clauseguard.utils.logger import logger
from clauseguard.utils.types import AnalysisReport, ExtractionResult, PageInput, Paragraph


class DocumentPipeline:
    def __init__(
        self,
        config: AppConfig,
        extractor: LanguageAdaptiveExtractor,
        classifier: Optional[LocalClassifier] = None,
        analyzer: Optional[RemoteAnalysisClient] = None,
        resize: bool = True,
    ):
        self.config = config
        self.extractor = extractor
        self.classifier = classifier or LocalClassifier()
        self.analyzer = analyzer
        self.resize = resize
        self._acquired = False

    @classmethod
    def from_config(cls, config: AppConfig) -> "DocumentPipeline":
        service = TesseractService(tesseract_cmd=config.tesseract_cmd, timeout=config.ocr_timeout)
        extractor = LanguageAdaptiveExtractor(
            service,
            LangDetectIdentifier(),
            baseline=config.baseline_language,
            timeout=config.ocr_timeout,
            min_detect_length=config.detect_min_length,
        )
        analyzer = None
        if config.use_gemini and gemini_api_key():
            try:
                analyzer = RemoteAnalysisClient(GeminiClient(config), config.jurisdiction, config.analysis_timeout)
            except Exception as e:
                logger.warning("Gemini client unavailable, running local analysis only: %s", e)
        return cls(config, extractor, LocalClassifier(), analyzer)

    def _acquire_service(self):
        acquire = getattr(self.extractor.service, "acquire", None)
        if acquire and not self._acquired:
            acquire()
            self._acquired = True

    def close(self):
        release = getattr(self.extractor.service, "release", None)
        if release and self._acquired:
            release()
        self._acquired = False

    def __enter__(self) -> "DocumentPipeline":
        return self

    def __exit__(self, *exc):
        self.close()

    async def extract_pages(
        self,
        pages: Sequence[PageInput],
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> List[ExtractionResult]:
        self._acquire_service()
        sem = asyncio.Semaphore(max(1, int(self.config.max_concurrency)))
        overall = ProgressTracker(on_progress)
        page_progress = [0] * len(pages)

        def _page_cb(idx: int):
            def _cb(p: int):
                page_progress[idx] = p
                overall.report(sum(page_progress) / len(pages))
            return _cb

        async def _one(idx: int, page: PageInput) -> ExtractionResult:
            async with sem:
                image = page.image
                if self.resize:
                    image = await asyncio.to_thread(
                        resize_image, image, self.config.resize_max_width, self.config.resize_quality
                    )
                try:
                    result = await self.extractor.extract(image, page.requested_language, _page_cb(idx))
                except UnsupportedLanguage as e:
                    e.page_number = idx + 1
                    raise
                except Exception as e:
                    logger.error("Extraction failed on page %d: %s", idx + 1, e)
                    raise PageExtractionError(idx + 1, e) from e
                logger.info(
                    "Page %d: %d paragraph(s), confidence %.1f, language %s",
                    idx + 1, len(result.paragraphs), result.confidence, result.detected_language,
                )
                return result

        tasks = [asyncio.create_task(_one(i, p)) for i, p in enumerate(pages)]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        overall.finish()
        return list(results)

    async def analyze_text(
        self,
        full_text: str,
        paragraphs: Sequence[Paragraph],
        jurisdiction: Optional[str] = None,
    ) -> AnalysisReport:
        jurisdiction = (jurisdiction or self.config.jurisdiction).lower()

        async def _remote():
            if self.analyzer is None:
                return None
            try:
                return await self.analyzer.analyze(full_text, jurisdiction)
            except AnalysisUnavailable as e:
                logger.warning("Remote analysis unavailable, using local results only: %s", e)
                return None

        local, remote = await asyncio.gather(
            asyncio.to_thread(self.classifier.classify, list(paragraphs)),
            _remote(),
        )
        return reconcile(remote, local, paragraphs, jurisdiction)

    async def process_document(
        self,
        pages: Sequence[PageInput],
        jurisdiction: Optional[str] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> AnalysisReport:
        if not pages:
            return reconcile(None, [], [], (jurisdiction or self.config.jurisdiction).lower())
        extractions = await self.extract_pages(pages, on_progress)
        paragraphs: List[Paragraph] = []
        for ex in extractions:
            for p in ex.paragraphs:
                paragraphs.append(Paragraph(index=len(paragraphs), text=p.text))
        full_text = "\n\n".join(ex.full_text for ex in extractions if ex.full_text)
        return await self.analyze_text(full_text, paragraphs, jurisdiction)

    def process_document_sync(self, pages: Sequence[PageInput], jurisdiction: Optional[str] = None) -> AnalysisReport:
        return asyncio.run(self.process_document(pages, jurisdiction))
