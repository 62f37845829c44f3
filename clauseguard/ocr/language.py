from __future__ import annotations
from typing import Dict, Protocol

from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

from clauseguard.utils.logger import logger

UNDETERMINED = "und"
BASELINE_PROFILE = "eng"
AUTO = "auto"

# Profiles a caller may request explicitly.
SUPPORTED_PROFILES = frozenset({
    "eng", "hin", "ben", "guj", "mar", "kan", "mal", "tam", "tel", "pan", "ori",
    "asm", "bod", "doi", "gom", "kas", "kok", "mai", "mni", "nep", "san", "snd",
    "sat", "urd", "spa", "fra", "deu", "chi_sim",
})

# Detector output (ISO 639-1 from langdetect, ISO 639-3 from franc-style
# identifiers) -> recognition profile.
DETECTOR_TO_PROFILE: Dict[str, str] = {
    "en": "eng", "eng": "eng",
    "hi": "hin", "hin": "hin",
    "bn": "ben", "ben": "ben",
    "gu": "guj", "guj": "guj",
    "mr": "mar", "mar": "mar",
    "kn": "kan", "kan": "kan",
    "ml": "mal", "mal": "mal",
    "ta": "tam", "tam": "tam",
    "te": "tel", "tel": "tel",
    "pa": "pan", "pan": "pan",
    "or": "ori", "ori": "ori",
    "as": "asm", "asm": "asm",
    "bod": "bod", "doi": "doi", "gom": "gom", "kas": "kas", "kok": "kok",
    "mai": "mai", "mni": "mni",
    "ne": "nep", "nep": "nep",
    "sa": "san", "san": "san",
    "sd": "snd", "snd": "snd",
    "sat": "sat",
    "ur": "urd", "urd": "urd",
    "es": "spa", "spa": "spa",
    "fr": "fra", "fra": "fra",
    "de": "deu", "deu": "deu",
    "zh-cn": "chi_sim", "cmn": "chi_sim",
}


def profile_for(code: str, baseline: str = BASELINE_PROFILE) -> str:
    return DETECTOR_TO_PROFILE.get((code or "").lower(), baseline)


class LanguageIdentifier(Protocol):
    def identify(self, text: str, min_length: int = 10) -> str:
        ...


class LangDetectIdentifier:
    """Statistical language identification backed by langdetect.

    langdetect is non-deterministic unless the factory seed is pinned, so the
    seed is fixed once at construction.
    """

    def __init__(self, seed: int = 0):
        DetectorFactory.seed = seed

    def identify(self, text: str, min_length: int = 10) -> str:
        sample = (text or "").strip()
        if len(sample) < min_length:
            return UNDETERMINED
        try:
            return detect(sample)
        except LangDetectException as e:
            logger.debug("Language detection inconclusive: %s", e)
            return UNDETERMINED
