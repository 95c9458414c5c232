"""
Sequential Extraction Pipeline

Turns spine groups in reading order into book candidates, one group at a
time, keeping a numbered ledger of every failure. Book N of the output
always comes from group N or later, and failures name the exact group.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import numpy as np
from loguru import logger

from shelfreader.exceptions import RecognizerError
from shelfreader.extraction.block_segmenter import BlockSegmenter
from shelfreader.extraction.models import (
    UNKNOWN_AUTHOR,
    BookCandidate,
    Failed,
    FailureReason,
    ProcessingOutcome,
    Success,
)
from shelfreader.ocr.contracts import OcrCollaborator, TextLine
from shelfreader.vision.geometry import is_valid, to_pixel_crop
from shelfreader.vision.image_ops import crop
from shelfreader.vision.region_grouper import BookRegionGroup

# Called with (processed, total) after each group
ProgressCallback = Callable[[int, int], None]
Preprocessor = Callable[[np.ndarray], np.ndarray]


@dataclass
class PipelineResult:
    """Everything the pipeline learned about one batch of groups."""
    outcomes: List[ProcessingOutcome] = field(default_factory=list)
    total: int = 0
    cancelled: bool = False
    processing_time_ms: float = 0.0

    @property
    def books(self) -> List[BookCandidate]:
        return [o.book for o in self.outcomes if isinstance(o, Success)]

    @property
    def failures(self) -> List[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def failed_book_numbers(self) -> List[int]:
        return [f.book_number for f in self.failures]

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, Success))

    @property
    def isolation_yielded_nothing(self) -> bool:
        """True when groups were given but none produced a book."""
        return self.total > 0 and self.success_count == 0


class ExtractionPipeline:
    """
    Run OCR and segmentation over spine groups, strictly sequentially.

    Usage:
        pipeline = ExtractionPipeline(ocr=engine)
        result = await pipeline.run(groups, image)
        if result.isolation_yielded_nothing:
            ...  # fall back to whole-image segmentation
    """

    def __init__(
        self,
        ocr: OcrCollaborator,
        segmenter: Optional[BlockSegmenter] = None,
        min_title_length: int = 3,
        preprocess: Optional[Preprocessor] = None
    ):
        """
        Initialize the pipeline.

        Args:
            ocr: Text recognizer called once per group
            segmenter: Block segmenter for the recognized lines
            min_title_length: Shortest line accepted as a bare title
            preprocess: Optional transform applied to each crop before OCR
        """
        self.ocr = ocr
        self.segmenter = segmenter or BlockSegmenter(min_title_length=min_title_length)
        self.min_title_length = min_title_length
        self.preprocess = preprocess

    async def run(
        self,
        groups: Sequence[BookRegionGroup],
        image: np.ndarray,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> PipelineResult:
        """
        Process every group in order.

        Cancellation is checked between groups, so an in-flight OCR call
        always completes and its outcome is recorded.
        """
        start_time = time.time()
        total = len(groups)
        result = PipelineResult(total=total)

        logger.info(f"Starting sequential processing of {total} books")

        for index, group in enumerate(groups):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Scan cancelled after {index} of {total} books")
                result.cancelled = True
                break

            outcome = await self._process_group(index, group, image)
            result.outcomes.append(outcome)

            if on_progress is not None:
                on_progress(index + 1, total)

        result.processing_time_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Sequential processing complete: {result.success_count} books found, "
            f"{len(result.failures)} failed (books: {result.failed_book_numbers})"
        )
        return result

    async def _process_group(
        self,
        index: int,
        group: BookRegionGroup,
        image: np.ndarray
    ) -> ProcessingOutcome:
        number = index + 1
        box = group.combined_bounding_box

        if not is_valid(box):
            logger.error(f"Book {number}: Invalid bounding box - {box}")
            return Failed(index, FailureReason.INVALID_REGION, str(box))

        h, w = image.shape[:2]
        pixel_rect = to_pixel_crop(box, w, h)
        cropped = crop(image, pixel_rect) if pixel_rect is not None else None
        if cropped is None:
            logger.error(f"Book {number}: Failed to crop {box} from {w}x{h} image")
            return Failed(index, FailureReason.CROP_OUT_OF_BOUNDS, str(box))

        if self.preprocess is not None:
            try:
                cropped = self.preprocess(cropped)
            except Exception as e:
                logger.exception(f"Book {number}: Failed to prepare crop for OCR")
                return Failed(index, FailureReason.RECOGNITION_ERROR, repr(e))

        try:
            lines = await self.ocr.recognize_text(cropped)
        except RecognizerError as e:
            logger.error(f"Book {number}: Error processing - {e}")
            return Failed(index, FailureReason.RECOGNITION_ERROR, str(e))
        except Exception as e:
            logger.exception(f"Book {number}: Unexpected recognizer failure")
            return Failed(index, FailureReason.RECOGNITION_ERROR, repr(e))

        logger.debug(f"Book {number}: Extracted {len(lines)} text lines")

        if not lines:
            logger.info(f"Book {number}: No text detected in cropped region")
            return Failed(index, FailureReason.NO_TEXT)

        return self._build_outcome(index, lines)

    def _build_outcome(self, index: int, lines: Sequence[TextLine]) -> ProcessingOutcome:
        number = index + 1
        candidates = self.segmenter.segment([line.text for line in lines])

        if candidates:
            if len(candidates) > 1:
                logger.warning(
                    f"Book {number}: {len(candidates)} books found in one spine region, "
                    "keeping the first"
                )
            book = candidates[0]
            logger.info(f"Book {number}: Successfully identified - {book}")
            return Success(index, book)

        longest = max((line.text.strip() for line in lines), key=len)
        if len(longest) >= self.min_title_length:
            book = BookCandidate(title=longest, author=UNKNOWN_AUTHOR)
            logger.info(f"Book {number}: Created from text - '{longest}'")
            return Success(index, book)

        logger.info(f"Book {number}: Text too short to create book")
        return Failed(index, FailureReason.TEXT_TOO_SHORT, longest)
