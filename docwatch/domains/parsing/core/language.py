"""Document language detection."""

from __future__ import annotations

import structlog
from langdetect import DetectorFactory, LangDetectException
from langdetect import detect as langdetect_detect

from docwatch.domains.parsing.core.stopwords import DEFAULT_LANGUAGE

logger = structlog.get_logger(__name__)

# langdetect is probabilistic; a fixed seed keeps repeated runs identical
DetectorFactory.seed = 0

MIN_DETECTION_LENGTH = 50


def detect_language(text: str, hint: str | None = None) -> str:
    """Return the ISO 639-1 code of ``text``.

    A non-empty ``hint`` is trusted and skips detection. Text shorter than
    MIN_DETECTION_LENGTH characters, or text langdetect cannot classify,
    falls back to English.
    """
    if hint and hint.strip():
        return hint.strip().lower()

    if len(text.strip()) < MIN_DETECTION_LENGTH:
        return DEFAULT_LANGUAGE

    try:
        language = langdetect_detect(text)
    except LangDetectException as e:
        logger.debug("language_detection_failed", error=str(e))
        return DEFAULT_LANGUAGE

    # langdetect reports regional variants such as "zh-cn"
    return language.split("-")[0]
