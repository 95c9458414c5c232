"""
OCR collaborator contract.

What the extraction core needs from a text recognizer: an awaitable call
that turns an image into trimmed, non-empty text lines.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol

import numpy as np

from shelfreader.vision.geometry import NormalizedRect


@dataclass(frozen=True)
class TextLine:
    """A single recognized line of text."""
    text: str
    confidence: float
    # Only set in whole-image mode, in normalized bottom-left coordinates
    position: Optional[NormalizedRect] = None

    def __str__(self) -> str:
        return f"'{self.text}' ({self.confidence:.2f})"


class OcrCollaborator(Protocol):
    """
    Text recognizer used by the extraction pipeline.

    Implementations raise RecognizerError on failure. With
    `include_positions=True` every returned line carries its position.
    """

    async def recognize_text(
        self,
        image: np.ndarray,
        include_positions: bool = False
    ) -> List[TextLine]:
        ...
