"""Text recognition backends.

The extractor only depends on the ``ExtractionService`` shape; ``TesseractService``
is the default on-device implementation (pytesseract + Pillow).
"""
from __future__ import annotations
import io
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from PIL import Image, UnidentifiedImageError
import pytesseract

from clauseguard.utils.exception import ExtractionFailure, UnsupportedLanguage
from clauseguard.utils.logger import logger
from clauseguard.utils.types import ImageSource

ProgressFn = Callable[[float], None]


@dataclass(frozen=True)
class RecognitionResult:
    text: str
    confidence: float  # 0-100


class ExtractionService(Protocol):
    def recognize(self, image: ImageSource, language: str, on_progress: Optional[ProgressFn] = None) -> RecognitionResult:
        ...


def load_image(image: ImageSource) -> Image.Image:
    try:
        if isinstance(image, (bytes, bytearray)):
            return Image.open(io.BytesIO(image))
        return Image.open(image)
    except (UnidentifiedImageError, OSError) as e:
        raise ExtractionFailure("Could not decode page image", e) from e


class LanguageModelCache:
    """Which recognition models are installed, keyed by language code.

    Reads are lock-free dict lookups; writes are idempotent so two threads
    probing the same language at once only waste a lookup.
    """

    def __init__(self, loader: Callable[[], list]):
        self._loader = loader
        self._available: Dict[str, bool] = {}
        self._lock = threading.Lock()
        self._loaded = False

    def _load(self):
        with self._lock:
            if self._loaded:
                return
            langs = set(self._loader())
            for code in langs:
                self._available[code] = True
            self._loaded = True
            logger.debug("Recognition models available: %s", sorted(langs))

    def is_available(self, language: str) -> bool:
        if not self._loaded:
            self._load()
        # multi-profile requests such as "hin+eng" need every part
        return all(self._available.get(part, False) for part in language.split("+"))

    def clear(self):
        with self._lock:
            self._available.clear()
            self._loaded = False


class TesseractService:
    """pytesseract-backed recognizer with lazily initialised, ref-counted state."""

    def __init__(self, tesseract_cmd: str = "", timeout: float = 60.0):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.timeout = timeout
        self.models = LanguageModelCache(lambda: pytesseract.get_languages(config=""))
        self._refs = 0
        self._lock = threading.Lock()
        self._version: Optional[str] = None

    def acquire(self) -> "TesseractService":
        with self._lock:
            if self._refs == 0 and self._version is None:
                try:
                    self._version = str(pytesseract.get_tesseract_version())
                except pytesseract.TesseractNotFoundError as e:
                    raise ExtractionFailure("Tesseract binary not found", e) from e
                logger.info("Tesseract %s initialised", self._version)
            self._refs += 1
            return self

    def release(self):
        with self._lock:
            if self._refs == 0:
                return
            self._refs -= 1
            if self._refs == 0:
                self._teardown()

    def close(self):
        with self._lock:
            self._refs = 0
            self._teardown()

    def _teardown(self):
        self.models.clear()
        self._version = None
        logger.debug("Tesseract service released")

    @property
    def active(self) -> bool:
        return self._refs > 0

    def supports(self, language: str) -> bool:
        try:
            return self.models.is_available(language)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            # an unreachable engine says nothing about the language
            raise ExtractionFailure("Could not list recognition models", e) from e

    def recognize(self, image: ImageSource, language: str, on_progress: Optional[ProgressFn] = None) -> RecognitionResult:
        if not self.supports(language):
            raise UnsupportedLanguage(language)
        img = load_image(image)
        if on_progress:
            on_progress(0)
        try:
            data = pytesseract.image_to_data(img, lang=language, output_type=pytesseract.Output.DICT, timeout=self.timeout)
            if on_progress:
                on_progress(50)
            text = pytesseract.image_to_string(img, lang=language, timeout=self.timeout)
        except RuntimeError as e:
            # pytesseract signals its own timeout with a bare RuntimeError
            raise ExtractionFailure(f"Recognition failed for '{language}'", e) from e
        if on_progress:
            on_progress(100)
        confs = []
        for c in data.get("conf", []):
            try:
                val = float(c)
            except (TypeError, ValueError):
                continue
            if val >= 0:
                confs.append(val)
        confidence = sum(confs) / len(confs) if confs else 0.0
        return RecognitionResult(text=text.strip(), confidence=round(confidence, 2))
