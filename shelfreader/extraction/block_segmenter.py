"""
Block Segmenter

Forward-only state machine (title -> author -> publisher) that splits an
ordered list of spine text lines into book candidates.

Every pass consumes at least one line, so any input of n lines is
segmented in at most n passes and O(n) line evaluations.
"""

import re
from enum import Enum
from typing import List, Optional, Sequence

from loguru import logger

from shelfreader.extraction.field_normalizer import FieldNormalizer
from shelfreader.extraction.line_classifier import LineClassifier
from shelfreader.extraction.models import UNKNOWN_AUTHOR, BookCandidate, TextBlocks


class BlockState(Enum):
    TITLE = "title"
    AUTHOR = "author"
    PUBLISHER = "publisher"


class BlockSegmenter:
    """
    Segment spine text lines into title, author and publisher blocks.

    Usage:
        segmenter = BlockSegmenter()
        books = segmenter.segment([
            "HIS TRUTH IS MARCHING ON", "JON MEACHAM", "RANDOM HOUSE"
        ])
    """

    # Recognizer artifacts that never belong to a book
    NOISE_STRINGS = ("no results", "check each product")
    MIN_LINE_LENGTH = 3

    # Single-line records: "Title | Author | Publisher", with "|", "•" or a
    # spaced hyphen as separator
    _separated_pattern = re.compile(
        r'^(?P<title>.+?)\s*(?P<sep>[|•]|\s-\s)\s*(?P<author>.+?)'
        r'(?:\s*(?P=sep)\s*(?P<publisher>.+))?$'
    )
    _by_pattern = re.compile(r'^(?P<title>.+?)\s+by\s+(?P<author>.+)$', re.IGNORECASE)

    def __init__(
        self,
        classifier: Optional[LineClassifier] = None,
        normalizer: Optional[FieldNormalizer] = None,
        min_title_length: int = MIN_LINE_LENGTH,
        parse_single_line_records: bool = True
    ):
        """
        Initialize the segmenter.

        Args:
            classifier: Line predicates
            normalizer: Field normalizers applied once per closed block
            min_title_length: Shortest title accepted for a candidate
            parse_single_line_records: Accept "Title | Author" style lines
        """
        self.classifier = classifier or LineClassifier()
        self.normalizer = normalizer or FieldNormalizer()
        self.min_title_length = min_title_length
        self.parse_single_line_records = parse_single_line_records

    def filter_lines(self, lines: Sequence[str]) -> List[str]:
        """Trim lines and drop short, letterless and known noise lines."""
        filtered = []
        for line in lines:
            text = line.strip()
            if len(text) < self.MIN_LINE_LENGTH:
                continue
            if not any(c.isalpha() for c in text):
                continue
            lowered = text.lower()
            if any(noise in lowered for noise in self.NOISE_STRINGS):
                continue
            filtered.append(text)
        return filtered

    def segment(self, lines: Sequence[str]) -> List[BookCandidate]:
        """
        Find every book in a line stream.

        Lines are filtered first; the state machine then runs repeatedly on
        the unconsumed remainder.
        """
        filtered = self.filter_lines(lines)
        books = []
        i = 0

        while i < len(filtered):
            record = self.parse_single_line(filtered[i]) if self.parse_single_line_records else None
            if record is not None:
                books.append(record)
                i += 1
                continue

            blocks = self.isolate_blocks(filtered, i)
            candidate = self.build_candidate(blocks)
            if candidate is not None:
                books.append(candidate)

            i = blocks.end if blocks.end > i else i + 1

        logger.debug(f"Segmented {len(filtered)} lines into {len(books)} books")
        return books

    def isolate_blocks(self, lines: Sequence[str], start: int = 0) -> TextBlocks:
        """
        Run one pass of the state machine from `start`.

        The returned range always covers at least one line when `start` is
        inside the input.
        """
        blocks = TextBlocks(start=start, end=start)
        if start >= len(lines):
            return blocks

        state = BlockState.TITLE
        i = start

        while i < len(lines):
            line = lines[i]

            if state is BlockState.TITLE:
                next_state = self._title_step(line, blocks)
            elif state is BlockState.AUTHOR:
                next_state = self._author_step(line)
            else:
                next_state = self._publisher_step(line)

            if next_state is None:
                break

            state = next_state
            if state is BlockState.TITLE:
                blocks.title_lines.append(line)
            elif state is BlockState.AUTHOR:
                blocks.author_lines.append(line)
            else:
                blocks.publisher_lines.append(line)
            i += 1

        blocks.end = max(i, start + 1)
        return blocks

    def _title_step(self, line: str, blocks: TextBlocks) -> Optional[BlockState]:
        classifier = self.classifier
        title_lines = blocks.title_lines

        if not title_lines:
            return BlockState.TITLE

        # "THE NORTON ANTHOLOGY OF" / "WORLD LITERATURE"
        if classifier.ends_with_dangling_word(title_lines[-1]) and not classifier.is_publisher_line(line):
            return BlockState.TITLE

        if classifier.is_author_line(line):
            return BlockState.AUTHOR

        if classifier.is_publisher_line(line):
            return BlockState.PUBLISHER

        if classifier.is_title_continuation(line, title_lines):
            return BlockState.TITLE

        current_title = self.normalizer.combine_title_lines(title_lines)
        if classifier.is_likely_title_text(line) and len(line) > len(current_title):
            return None

        return BlockState.TITLE

    def _author_step(self, line: str) -> Optional[BlockState]:
        if self.classifier.is_publisher_line(line):
            return BlockState.PUBLISHER
        if self.classifier.is_author_continuation(line):
            return BlockState.AUTHOR
        return None

    def _publisher_step(self, line: str) -> Optional[BlockState]:
        if self.classifier.is_publisher_continuation(line):
            return BlockState.PUBLISHER
        return None

    def build_candidate(self, blocks: TextBlocks) -> Optional[BookCandidate]:
        """Normalize closed blocks into a candidate; None without a usable title."""
        title = self.normalizer.title(blocks.title_lines)
        if len(title) < self.min_title_length:
            return None

        return BookCandidate(
            title=title,
            author=self.normalizer.author(blocks.author_lines) or UNKNOWN_AUTHOR,
            publisher=self.normalizer.publisher(blocks.publisher_lines),
        )

    def parse_single_line(self, line: str) -> Optional[BookCandidate]:
        """
        Parse a line that carries a whole record.

        Handles "Title | Author | Publisher" (also with "•" or " - ") and
        "Title by Author" when the author half looks like a name.
        """
        match = self._separated_pattern.match(line)
        if match:
            title = match.group('title').strip()
            author = match.group('author').strip()
            publisher = (match.group('publisher') or '').strip()
        else:
            match = self._by_pattern.match(line)
            if not match or not self.classifier.is_likely_author_name(match.group('author')):
                return None
            title = match.group('title').strip()
            author = match.group('author').strip()
            publisher = ''

        title = self.normalizer.normalize_case(title)
        if len(title) < self.min_title_length:
            return None

        return BookCandidate(
            title=title,
            author=self.normalizer.normalize_case(author) if author else UNKNOWN_AUTHOR,
            publisher=self.normalizer.normalize_case(publisher) if publisher else None,
        )
