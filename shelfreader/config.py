"""
Configuration for ShelfReader.

All tunable thresholds live here and are passed explicitly into the
components that use them; nothing reads settings implicitly.
"""

import os
import sys
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from loguru import logger


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # OCR
    ocr_confidence_threshold: float = 0.3
    ocr_languages: str = "en"
    ocr_use_gpu: bool = False
    prefer_easyocr: bool = True

    # Region detector
    detector_model_path: Optional[str] = None
    detector_confidence: float = 0.2

    # Region grouping
    group_overlap_threshold: float = 0.3
    group_horizontal_gap: float = 0.02
    group_vertical_tolerance: float = 0.1
    reading_order_row_tolerance: float = 0.05

    # Whole-image fallback segmentation
    fallback_horizontal_gap: float = 0.05
    fallback_vertical_gap: float = 0.15

    # Extraction
    min_title_length: int = 3
    enhance_for_ocr: bool = True
    correct_orientation: bool = True

    # Logging
    log_level: str = "INFO"

    @property
    def languages(self) -> list:
        return [lang.strip() for lang in self.ocr_languages.split(",") if lang.strip()]

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            ocr_confidence_threshold=float(os.getenv("SHELFREADER_OCR_CONFIDENCE", cls.ocr_confidence_threshold)),
            ocr_languages=os.getenv("SHELFREADER_OCR_LANGUAGES", cls.ocr_languages),
            ocr_use_gpu=_env_bool("SHELFREADER_OCR_GPU", cls.ocr_use_gpu),
            prefer_easyocr=_env_bool("SHELFREADER_PREFER_EASYOCR", cls.prefer_easyocr),
            detector_model_path=os.getenv("SHELFREADER_DETECTOR_MODEL"),
            detector_confidence=float(os.getenv("SHELFREADER_DETECTOR_CONFIDENCE", cls.detector_confidence)),
            group_overlap_threshold=float(os.getenv("SHELFREADER_GROUP_OVERLAP", cls.group_overlap_threshold)),
            group_horizontal_gap=float(os.getenv("SHELFREADER_GROUP_HORIZONTAL_GAP", cls.group_horizontal_gap)),
            group_vertical_tolerance=float(os.getenv("SHELFREADER_GROUP_VERTICAL_TOLERANCE", cls.group_vertical_tolerance)),
            reading_order_row_tolerance=float(os.getenv("SHELFREADER_ROW_TOLERANCE", cls.reading_order_row_tolerance)),
            fallback_horizontal_gap=float(os.getenv("SHELFREADER_FALLBACK_HORIZONTAL_GAP", cls.fallback_horizontal_gap)),
            fallback_vertical_gap=float(os.getenv("SHELFREADER_FALLBACK_VERTICAL_GAP", cls.fallback_vertical_gap)),
            min_title_length=int(os.getenv("SHELFREADER_MIN_TITLE_LENGTH", cls.min_title_length)),
            enhance_for_ocr=_env_bool("SHELFREADER_ENHANCE_FOR_OCR", cls.enhance_for_ocr),
            correct_orientation=_env_bool("SHELFREADER_CORRECT_ORIENTATION", cls.correct_orientation),
            log_level=os.getenv("SHELFREADER_LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a stderr sink at `level`."""
    logger.remove()
    logger.add(sys.stderr, level=level)
