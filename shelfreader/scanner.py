"""
Shelf Scanner

Entry points that turn a shelf photo into book records: region isolation
through the sequential pipeline, with whole-image segmentation as the
fallback when isolation is unavailable or finds nothing.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from shelfreader.config import Settings
from shelfreader.exceptions import DetectorError
from shelfreader.extraction.block_segmenter import BlockSegmenter
from shelfreader.extraction.models import BookCandidate, Failed, ProcessingOutcome
from shelfreader.extraction.pipeline import ExtractionPipeline, ProgressCallback
from shelfreader.extraction.position_segmenter import PositionSegmenter
from shelfreader.ocr.contracts import OcrCollaborator
from shelfreader.vision import image_ops
from shelfreader.vision.region_grouper import RegionDetector, RegionGrouper, RegionProposal


STRATEGY_REGIONS = "regions"
STRATEGY_FULL_IMAGE = "full_image"


async def segment_books(
    regions: Sequence[RegionProposal],
    ocr: OcrCollaborator,
    image: np.ndarray,
    grouper: Optional[RegionGrouper] = None,
    pipeline: Optional[ExtractionPipeline] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None
) -> Tuple[List[BookCandidate], List[Failed]]:
    """
    Group region proposals into spines and read one book per spine.

    Returns the books in reading order and the failure ledger.
    """
    grouper = grouper or RegionGrouper()
    pipeline = pipeline or ExtractionPipeline(ocr=ocr)

    groups = grouper.group(regions)
    result = await pipeline.run(groups, image, on_progress=on_progress, cancel_event=cancel_event)
    return result.books, result.failures


async def segment_books_from_full_image(
    ocr: OcrCollaborator,
    image: np.ndarray,
    position_segmenter: Optional[PositionSegmenter] = None
) -> List[BookCandidate]:
    """
    Recognize the whole image with positions and split it into books by gaps.

    Raises:
        RecognizerError: if the recognizer fails on the whole image
    """
    position_segmenter = position_segmenter or PositionSegmenter()
    lines = await ocr.recognize_text(image, include_positions=True)
    return position_segmenter.segment(lines)


@dataclass
class ScanResult:
    """Books found in one photo, with the per-book ledger."""
    books: List[BookCandidate] = field(default_factory=list)
    outcomes: List[ProcessingOutcome] = field(default_factory=list)
    strategy: str = STRATEGY_REGIONS
    cancelled: bool = False
    processing_time_ms: float = 0.0

    @property
    def failures(self) -> List[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def retry_message(self) -> Optional[str]:
        """User-facing hint naming the books that could not be read."""
        failures = self.failures
        if not failures:
            return None

        numbers = ", ".join(str(f.book_number) for f in failures)
        label = "Book" if len(failures) == 1 else "Books"
        return f"{label} {numbers} could not be read. {failures[0].reason.recovery_suggestion}"


class ShelfScanner:
    """
    One scan of one shelf photo.

    Usage:
        scanner = ShelfScanner.from_settings(get_settings())
        result = await scanner.scan(image)
        for book in result.books:
            print(book)
    """

    def __init__(
        self,
        ocr: OcrCollaborator,
        detector: Optional[RegionDetector] = None,
        grouper: Optional[RegionGrouper] = None,
        pipeline: Optional[ExtractionPipeline] = None,
        position_segmenter: Optional[PositionSegmenter] = None,
        enhance_for_ocr: bool = False,
        correct_orientation: bool = True
    ):
        """
        Initialize the scanner.

        Args:
            ocr: Text recognizer
            detector: Region detector with an async detect_regions(image);
                without one every scan uses the whole image
            grouper: Region grouper
            pipeline: Sequential extraction pipeline
            position_segmenter: Whole-image fallback segmenter
            enhance_for_ocr: Enhance the whole image before fallback recognition
            correct_orientation: Rotate portrait photos before detection
        """
        self.ocr = ocr
        self.detector = detector
        self.grouper = grouper or RegionGrouper()
        self.pipeline = pipeline or ExtractionPipeline(ocr=ocr)
        self.position_segmenter = position_segmenter or PositionSegmenter()
        self.enhance_for_ocr = enhance_for_ocr
        self.correct_orientation = correct_orientation

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        detector: Optional[RegionDetector] = None,
        ocr: Optional[OcrCollaborator] = None
    ) -> "ShelfScanner":
        """
        Build a scanner with every threshold taken from `settings`.

        The YOLO detector and OCR engine are created only when not supplied.
        """
        if ocr is None:
            from shelfreader.ocr.ocr_engine import OCREngine
            ocr = OCREngine(
                languages=settings.languages,
                use_gpu=settings.ocr_use_gpu,
                confidence_threshold=settings.ocr_confidence_threshold,
                prefer_easyocr=settings.prefer_easyocr,
            )

        if detector is None:
            from shelfreader.vision.spine_detector import SpineDetector
            detector = SpineDetector(
                model_path=settings.detector_model_path,
                confidence_threshold=settings.detector_confidence,
            )

        segmenter = BlockSegmenter(min_title_length=settings.min_title_length)

        return cls(
            ocr=ocr,
            detector=detector,
            grouper=RegionGrouper(
                overlap_threshold=settings.group_overlap_threshold,
                horizontal_gap=settings.group_horizontal_gap,
                vertical_tolerance=settings.group_vertical_tolerance,
                row_tolerance=settings.reading_order_row_tolerance,
            ),
            pipeline=ExtractionPipeline(
                ocr=ocr,
                segmenter=segmenter,
                min_title_length=settings.min_title_length,
                preprocess=image_ops.enhance_for_ocr if settings.enhance_for_ocr else None,
            ),
            position_segmenter=PositionSegmenter(
                segmenter=segmenter,
                horizontal_gap=settings.fallback_horizontal_gap,
                vertical_gap=settings.fallback_vertical_gap,
            ),
            enhance_for_ocr=settings.enhance_for_ocr,
            correct_orientation=settings.correct_orientation,
        )

    async def scan(
        self,
        image: np.ndarray,
        use_full_image: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ScanResult:
        """
        Scan a BGR shelf photo.

        Falls back to whole-image segmentation when the detector fails,
        finds no regions, or no region yields a book. A cancelled scan
        returns what was accumulated and never falls back.

        Raises:
            RecognizerError: if whole-image recognition fails
        """
        start_time = time.time()

        if self.correct_orientation:
            image = image_ops.correct_orientation(image)

        result = None
        if not use_full_image and self.detector is not None:
            result = await self._scan_regions(image, on_progress, cancel_event)

        if result is None:
            result = await self._scan_full_image(image)

        result.processing_time_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Scan complete ({result.strategy}): {len(result.books)} books, "
            f"{len(result.failures)} failures in {result.processing_time_ms:.0f} ms"
        )
        return result

    async def _scan_regions(
        self,
        image: np.ndarray,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event]
    ) -> Optional[ScanResult]:
        """Region isolation; None means the caller should fall back."""
        try:
            regions = await self.detector.detect_regions(image)
        except DetectorError as e:
            logger.warning(f"Region detection failed, falling back to full image: {e}")
            return None

        if not regions:
            logger.info("No regions detected, falling back to full image")
            return None

        groups = self.grouper.group(regions)
        logger.info(f"Detected {len(regions)} regions in {len(groups)} spines")

        pipeline_result = await self.pipeline.run(
            groups,
            image,
            on_progress=on_progress,
            cancel_event=cancel_event
        )

        if pipeline_result.isolation_yielded_nothing and not pipeline_result.cancelled:
            logger.warning("No books found in any region, falling back to full image")
            return None

        return ScanResult(
            books=pipeline_result.books,
            outcomes=list(pipeline_result.outcomes),
            strategy=STRATEGY_REGIONS,
            cancelled=pipeline_result.cancelled,
        )

    async def _scan_full_image(self, image: np.ndarray) -> ScanResult:
        if self.enhance_for_ocr:
            image = image_ops.enhance_for_ocr(image)

        lines = await self.ocr.recognize_text(image, include_positions=True)
        logger.info(f"Full image OCR returned {len(lines)} lines")

        books, outcomes = self.position_segmenter.segment_with_outcomes(lines)
        return ScanResult(books=books, outcomes=outcomes, strategy=STRATEGY_FULL_IMAGE)
