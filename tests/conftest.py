"""
Pytest configuration and fixtures for ShelfReader tests.
"""

import sys
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfreader.config import Settings
from shelfreader.exceptions import DetectorError
from shelfreader.ocr.contracts import TextLine
from shelfreader.vision.geometry import NormalizedRect
from shelfreader.vision.region_grouper import RegionProposal


# =============================================================================
# Collaborator Fakes
# =============================================================================

# One scripted OCR call: lines of text, ready TextLines, or an exception to raise
OcrResponse = Union[Sequence[str], Sequence[TextLine], BaseException]


class FakeOcr:
    """OCR collaborator that replays scripted responses in call order."""

    def __init__(self, responses: Sequence[OcrResponse] = (), full_image: Optional[OcrResponse] = None):
        self.responses = list(responses)
        self.full_image = full_image if full_image is not None else []
        self.calls: List[dict] = []

    async def recognize_text(self, image: np.ndarray, include_positions: bool = False) -> List[TextLine]:
        self.calls.append({"shape": image.shape, "include_positions": include_positions})

        if include_positions:
            response = self.full_image
        elif self.responses:
            response = self.responses.pop(0)
        else:
            response = []

        if isinstance(response, BaseException):
            raise response

        return [
            item if isinstance(item, TextLine) else TextLine(text=item, confidence=0.9)
            for item in response
        ]

    @property
    def region_calls(self) -> int:
        return sum(1 for call in self.calls if not call["include_positions"])


class FakeDetector:
    """Region detector returning fixed proposals, or raising DetectorError."""

    def __init__(self, proposals: Sequence[RegionProposal] = (), fail: bool = False):
        self.proposals = list(proposals)
        self.fail = fail
        self.calls = 0

    async def detect_regions(self, image: np.ndarray) -> List[RegionProposal]:
        self.calls += 1
        if self.fail:
            raise DetectorError(detail="model exploded")
        return list(self.proposals)


def rect(min_x: float, min_y: float, max_x: float, max_y: float) -> NormalizedRect:
    return NormalizedRect(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)


def proposal(min_x: float, min_y: float, max_x: float, max_y: float, confidence: float = 0.9) -> RegionProposal:
    return RegionProposal(bounding_box=rect(min_x, min_y, max_x, max_y), confidence=confidence)


def positioned(text: str, min_x: float, min_y: float, max_x: float, max_y: float) -> TextLine:
    return TextLine(text=text, confidence=0.9, position=rect(min_x, min_y, max_x, max_y))


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings with image enhancement off so crops reach the OCR fake untouched."""
    return Settings(enhance_for_ocr=False, log_level="DEBUG")


# =============================================================================
# Image Fixtures
# =============================================================================

@pytest.fixture
def blank_image() -> np.ndarray:
    """1000x600 black BGR image."""
    return np.zeros((600, 1000, 3), dtype=np.uint8)


@pytest.fixture
def sample_bookshelf_image() -> np.ndarray:
    """Synthetic landscape bookshelf with five coloured spines."""
    img = Image.new("RGB", (640, 480), color=(240, 240, 240))
    pixels = np.array(img)

    spine_colors = [
        (150, 50, 50),
        (50, 150, 50),
        (50, 50, 150),
        (150, 150, 50),
        (150, 50, 150),
    ]

    x_start = 50
    for i, color in enumerate(spine_colors):
        width = 40 + (i * 5)
        pixels[100:400, x_start:x_start + width] = color
        x_start += width + 10

    return pixels[:, :, ::-1].copy()


@pytest.fixture
def spine_crop_image() -> np.ndarray:
    """Tall, thin grey crop like a single upright spine."""
    return np.full((400, 60, 3), 128, dtype=np.uint8)
