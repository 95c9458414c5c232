"""
Extraction data model.

Book candidates, per-region processing outcomes and the failure taxonomy.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

UNKNOWN_AUTHOR = "Unknown"


@dataclass(frozen=True)
class BookCandidate:
    """A book read off one spine."""
    title: str
    author: str = UNKNOWN_AUTHOR
    publisher: Optional[str] = None

    @property
    def has_author(self) -> bool:
        return self.author != UNKNOWN_AUTHOR

    def __str__(self) -> str:
        text = f"'{self.title}' by {self.author}"
        if self.publisher:
            text += f" ({self.publisher})"
        return text


@dataclass
class TextBlocks:
    """Lines assigned to each field for one book, plus the consumed range."""
    title_lines: List[str] = field(default_factory=list)
    author_lines: List[str] = field(default_factory=list)
    publisher_lines: List[str] = field(default_factory=list)
    start: int = 0
    end: int = 0

    @property
    def consumed_range(self) -> Tuple[int, int]:
        return (self.start, self.end)

    @property
    def is_empty(self) -> bool:
        return not (self.title_lines or self.author_lines or self.publisher_lines)


class FailureReason(str, Enum):
    """Why a region produced no book."""
    INVALID_REGION = "invalid_region"
    CROP_OUT_OF_BOUNDS = "crop_out_of_bounds"
    RECOGNITION_ERROR = "recognition_error"
    NO_TEXT = "no_text"
    TEXT_TOO_SHORT = "text_too_short"
    DETECTOR_ERROR = "detector_error"

    @property
    def recovery_suggestion(self) -> str:
        if self in (FailureReason.INVALID_REGION, FailureReason.CROP_OUT_OF_BOUNDS):
            return "Retake the photo with the whole shelf inside the frame."
        if self is FailureReason.DETECTOR_ERROR:
            return "Retake the photo or scan the full image instead."
        return "Retake the photo with a clearer image or better lighting."


@dataclass(frozen=True)
class Success:
    index: int
    book: BookCandidate

    @property
    def book_number(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class Skipped:
    index: int
    reason: str

    @property
    def book_number(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class Failed:
    index: int
    reason: FailureReason
    detail: Optional[str] = None

    @property
    def book_number(self) -> int:
        return self.index + 1

    def __str__(self) -> str:
        text = f"Book {self.book_number}: {self.reason.value}"
        if self.detail:
            text += f" ({self.detail})"
        return text


ProcessingOutcome = Union[Success, Skipped, Failed]
