from __future__ import annotations
import google.generativeai as genai
import os
import time
from clauseguard.utils.config import AppConfig
from clauseguard.utils.logger import logger


def gemini_api_key() -> str:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or ""


class GeminiClient:
    def __init__(self, config: AppConfig):
        api_key = gemini_api_key()
        if not api_key:
            raise ValueError("GEMINI_API_KEY not set")
        genai.configure(api_key=api_key)
        self.config = config
        self.model = genai.GenerativeModel(
            config.gemini_model,
            generation_config={
                "temperature": config.temperature,
                "top_p": config.top_p,
                "top_k": config.top_k,
                "max_output_tokens": config.max_tokens,
            },
        )

    def generate(self, prompt: str, max_retries: int | None = None) -> str:
        retries = max_retries if max_retries is not None else self.config.max_retries
        last_err = None
        for attempt in range(retries):
            try:
                rsp = self.model.generate_content(prompt)
                return rsp.text
            except Exception as e:  # pragma: no cover - external API
                last_err = e
                logger.warning("Gemini attempt %d/%d failed: %s", attempt + 1, retries, e)
                time.sleep(1 + attempt)
        raise RuntimeError(f"Gemini generation failed: {last_err}")
