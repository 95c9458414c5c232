"""
Position-Based Fallback Segmenter

Used when no region proposals are available: splits a whole-image line
stream into per-book chunks by geometric gaps, then segments each chunk.
Less precise than region grouping.
"""

from typing import List, Optional, Sequence, Tuple

from loguru import logger

from shelfreader.extraction.block_segmenter import BlockSegmenter
from shelfreader.extraction.models import BookCandidate, ProcessingOutcome, Skipped, Success
from shelfreader.ocr.contracts import TextLine


class PositionSegmenter:
    """
    Chunk positioned text lines into books.

    Lines are walked left to right. A new chunk starts when the horizontal
    gap to the previous line exceeds `horizontal_gap` or the vertical
    centres differ by more than `vertical_gap` (another shelf).
    """

    DEFAULT_HORIZONTAL_GAP = 0.05
    DEFAULT_VERTICAL_GAP = 0.15

    def __init__(
        self,
        segmenter: Optional[BlockSegmenter] = None,
        horizontal_gap: float = DEFAULT_HORIZONTAL_GAP,
        vertical_gap: float = DEFAULT_VERTICAL_GAP
    ):
        self.segmenter = segmenter or BlockSegmenter()
        self.horizontal_gap = horizontal_gap
        self.vertical_gap = vertical_gap

    def chunk(self, lines: Sequence[TextLine]) -> List[List[TextLine]]:
        """Split lines into spatial clusters, left to right."""
        positioned = [line for line in lines if line.position is not None]
        if len(positioned) < len(lines):
            logger.warning(f"Ignoring {len(lines) - len(positioned)} lines without a position")

        ordered = sorted(positioned, key=lambda line: line.position.min_x)
        chunks: List[List[TextLine]] = []

        for index, line in enumerate(ordered):
            if index == 0:
                chunks.append([line])
                continue

            previous = ordered[index - 1].position
            current = line.position
            x_gap = current.min_x - previous.max_x
            y_difference = abs(current.mid_y - previous.mid_y)

            if x_gap > self.horizontal_gap or y_difference > self.vertical_gap:
                chunks.append([line])
            else:
                chunks[-1].append(line)

        return chunks

    def segment(self, lines: Sequence[TextLine]) -> List[BookCandidate]:
        books, _ = self.segment_with_outcomes(lines)
        return books

    def segment_with_outcomes(
        self,
        lines: Sequence[TextLine]
    ) -> Tuple[List[BookCandidate], List[ProcessingOutcome]]:
        """
        Segment every chunk independently.

        Each candidate is recorded as a Success with its chunk index; chunks
        that yield nothing are recorded as Skipped.
        """
        chunks = self.chunk(lines)
        books: List[BookCandidate] = []
        outcomes: List[ProcessingOutcome] = []

        for index, chunk in enumerate(chunks):
            found = self.segmenter.segment([line.text for line in chunk])
            if not found:
                outcomes.append(Skipped(index=index, reason="no book text in chunk"))
                continue

            books.extend(found)
            outcomes.extend(Success(index=index, book=book) for book in found)

        logger.info(
            f"Text-based segmentation found {len(books)} books "
            f"from {len(lines)} text lines in {len(chunks)} chunks"
        )
        return books, outcomes
