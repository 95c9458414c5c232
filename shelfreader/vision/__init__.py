"""
Vision Module for ShelfReader

Geometry and region handling ahead of text extraction:
- Normalized rectangle geometry and pixel crop conversion
- Grouping of region proposals into book spines, in reading order
- Image loading, orientation correction, cropping and OCR enhancement

The YOLO-backed SpineDetector lives in shelfreader.vision.spine_detector and
is imported on demand, since it loads torch.
"""

from shelfreader.vision.geometry import (
    NormalizedRect,
    PixelRect,
    overlap_ratio,
    union_rect,
    is_valid,
    to_pixel_crop,
    from_pixel_box,
)
from shelfreader.vision.region_grouper import (
    RegionGrouper,
    RegionProposal,
    BookRegionGroup,
    RegionDetector,
)

__all__ = [
    "NormalizedRect",
    "PixelRect",
    "overlap_ratio",
    "union_rect",
    "is_valid",
    "to_pixel_crop",
    "from_pixel_box",
    "RegionGrouper",
    "RegionProposal",
    "BookRegionGroup",
    "RegionDetector",
]
