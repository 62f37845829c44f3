from __future__ import annotations
import os
from dataclasses import dataclass
from dotenv import load_dotenv

@dataclass(frozen=True)
class AppConfig:
    use_gemini: bool = True
    gemini_model: str = "gemini-2.5-flash-lite"
    temperature: float = 0.3
    top_p: float = 0.95
    top_k: int = 40
    max_tokens: int = 4096
    max_retries: int = 3
    baseline_language: str = "eng"
    ocr_timeout: float = 60.0
    analysis_timeout: float = 60.0
    detect_min_length: int = 10
    max_concurrency: int = 2
    jurisdiction: str = "general"
    resize_max_width: int = 1200
    resize_quality: float = 0.9
    tesseract_cmd: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        load_dotenv()
        return cls(
            use_gemini=os.getenv("USE_GEMINI", "true").lower() == "true",
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite"),
            temperature=float(os.getenv("TEMPERATURE", "0.3")),
            top_p=float(os.getenv("TOP_P", "0.95")),
            top_k=int(os.getenv("TOP_K", "40")),
            max_tokens=int(os.getenv("MAX_TOKENS", "4096")),
            max_retries=int(os.getenv("GEMINI_MAX_RETRIES", "3")),
            baseline_language=os.getenv("OCR_BASELINE_LANG", "eng"),
            ocr_timeout=float(os.getenv("OCR_TIMEOUT", "60")),
            analysis_timeout=float(os.getenv("ANALYSIS_TIMEOUT", "60")),
            detect_min_length=int(os.getenv("DETECT_MIN_LENGTH", "10")),
            max_concurrency=int(os.getenv("MAX_CONCURRENCY", "2")),
            jurisdiction=os.getenv("JURISDICTION", "general").lower(),
            resize_max_width=int(os.getenv("RESIZE_MAX_WIDTH", "1200")),
            resize_quality=float(os.getenv("RESIZE_QUALITY", "0.9")),
            tesseract_cmd=os.getenv("TESSERACT_CMD", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
