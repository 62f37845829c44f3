"""Error taxonomy for the extraction / analysis pipeline."""
from __future__ import annotations
from typing import Optional


class CustomException(Exception):
    """Base class for every error raised by clauseguard."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} (caused by {type(self.cause).__name__}: {self.cause})"
        return self.message


class ExtractionFailure(CustomException):
    """Text extraction service unreachable, timed out, or returned unusable output."""


class PageExtractionError(ExtractionFailure):
    """Extraction failure scoped to one page of a multi-page document."""

    def __init__(self, page_number: int, cause: BaseException):
        super().__init__(f"Page {page_number} could not be read", cause)
        self.page_number = page_number


class UnsupportedLanguage(CustomException):
    """An explicitly requested language has no recognition model behind it."""

    def __init__(self, language: str):
        super().__init__(f"No recognition model available for language '{language}'")
        self.language = language
        self.page_number: Optional[int] = None


class AnalysisUnavailable(CustomException):
    """Remote analysis failed (transport, timeout, or unparseable reply)."""
