"""
Rectangle Geometry

Pure functions on normalized axis-aligned rectangles. Region proposals use
normalized coordinates in [0, 1] with a bottom-left origin; raster images use
pixel coordinates with a top-left origin.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class NormalizedRect:
    """Axis-aligned rectangle in normalized, bottom-left-origin coordinates."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def mid_x(self) -> float:
        return (self.min_x + self.max_x) / 2

    @property
    def mid_y(self) -> float:
        return (self.min_y + self.max_y) / 2

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def __str__(self) -> str:
        return (
            f"[{self.min_x:.3f}, {self.min_y:.3f} -> "
            f"{self.max_x:.3f}, {self.max_y:.3f}]"
        )


@dataclass(frozen=True)
class PixelRect:
    """Crop rectangle in pixel coordinates with a top-left origin."""
    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    def as_slices(self) -> Tuple[slice, slice]:
        """Row and column slices for indexing a numpy image."""
        return slice(self.y, self.y2), slice(self.x, self.x2)


def overlap_ratio(a: NormalizedRect, b: NormalizedRect) -> float:
    """
    Intersection over union of two rectangles.

    Returns 0.0 for disjoint or degenerate rectangles, never NaN.
    """
    inter_w = min(a.max_x, b.max_x) - max(a.min_x, b.min_x)
    inter_h = min(a.max_y, b.max_y) - max(a.min_y, b.min_y)

    if not (inter_w > 0 and inter_h > 0):
        return 0.0

    intersection = inter_w * inter_h
    union_area = a.area + b.area - intersection

    if not union_area > 0:
        return 0.0

    return intersection / union_area


def union_rect(a: NormalizedRect, b: NormalizedRect) -> NormalizedRect:
    """Smallest rectangle containing both inputs."""
    return NormalizedRect(
        min_x=min(a.min_x, b.min_x),
        min_y=min(a.min_y, b.min_y),
        max_x=max(a.max_x, b.max_x),
        max_y=max(a.max_y, b.max_y),
    )


def is_valid(rect: NormalizedRect) -> bool:
    """
    Check that a rectangle is usable.

    Rejects NaN coordinates, inverted bounds, coordinates outside [0, 1]
    and zero-area rectangles.
    """
    coords = (rect.min_x, rect.min_y, rect.max_x, rect.max_y)
    if any(math.isnan(c) for c in coords):
        return False

    if not (0.0 <= rect.min_x < rect.max_x <= 1.0):
        return False
    if not (0.0 <= rect.min_y < rect.max_y <= 1.0):
        return False

    return True


def to_pixel_crop(
    rect: NormalizedRect,
    image_width: int,
    image_height: int
) -> Optional[PixelRect]:
    """
    Convert a normalized rectangle into a pixel crop rectangle.

    The Y axis is flipped (pixel_y = (1 - max_y) * height). Returns None when
    the rounded rectangle is empty or falls outside the image; the rectangle
    is never clamped.
    """
    if image_width <= 0 or image_height <= 0 or not is_valid(rect):
        return None

    x1 = int(round(rect.min_x * image_width))
    x2 = int(round(rect.max_x * image_width))
    y1 = int(round((1.0 - rect.max_y) * image_height))
    y2 = int(round((1.0 - rect.min_y) * image_height))

    width = x2 - x1
    height = y2 - y1

    if width <= 0 or height <= 0:
        return None
    if x1 < 0 or y1 < 0 or x2 > image_width or y2 > image_height:
        return None

    return PixelRect(x=x1, y=y1, width=width, height=height)


def from_pixel_box(
    box: Tuple[float, float, float, float],
    image_width: int,
    image_height: int
) -> NormalizedRect:
    """
    Convert a top-left-origin pixel box (x1, y1, x2, y2) into a normalized,
    bottom-left-origin rectangle.

    The result is not validated; callers check it with `is_valid`.
    """
    x1, y1, x2, y2 = box
    return NormalizedRect(
        min_x=x1 / image_width,
        min_y=1.0 - (y2 / image_height),
        max_x=x2 / image_width,
        max_y=1.0 - (y1 / image_height),
    )
