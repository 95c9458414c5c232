"""
Region Grouper

Clusters raw region proposals into book-spine groups and puts the groups
into reading order (top-to-bottom, then left-to-right).
"""

from dataclasses import dataclass, field
from typing import List, Protocol, Sequence, Tuple

import numpy as np
from loguru import logger

from shelfreader.vision.geometry import NormalizedRect, is_valid, overlap_ratio, union_rect


@dataclass(frozen=True)
class RegionProposal:
    """A candidate rectangle believed to contain one book spine."""
    bounding_box: NormalizedRect
    confidence: float = 1.0


@dataclass(frozen=True)
class BookRegionGroup:
    """One or more region proposals believed to belong to the same spine."""
    members: Tuple[RegionProposal, ...]
    combined_bounding_box: NormalizedRect = field(compare=False)

    @classmethod
    def from_proposals(cls, proposals: Sequence[RegionProposal]) -> "BookRegionGroup":
        if not proposals:
            raise ValueError("A region group needs at least one proposal")

        combined = proposals[0].bounding_box
        for proposal in proposals[1:]:
            combined = union_rect(combined, proposal.bounding_box)

        return cls(members=tuple(proposals), combined_bounding_box=combined)

    def __len__(self) -> int:
        return len(self.members)

    @property
    def confidence(self) -> float:
        return max(p.confidence for p in self.members)


class RegionDetector(Protocol):
    """
    Anything that can propose spine regions for an image.

    Implementations raise DetectorError on failure.
    """

    async def detect_regions(self, image: np.ndarray) -> List[RegionProposal]:
        ...


class RegionGrouper:
    """
    Greedy single-pass clustering of region proposals.

    Two proposals belong to the same spine when their overlap ratio exceeds
    `overlap_threshold`, or when their left edges are closer than
    `horizontal_gap` and their vertical centres are closer than
    `vertical_tolerance`. Groups are ordered into rows of vertical centres
    within `row_tolerance`, top row first, each row left to right.

    Usage:
        grouper = RegionGrouper()
        groups = grouper.group(proposals)
    """

    DEFAULT_OVERLAP_THRESHOLD = 0.3
    DEFAULT_HORIZONTAL_GAP = 0.02
    DEFAULT_VERTICAL_TOLERANCE = 0.1
    DEFAULT_ROW_TOLERANCE = 0.05

    def __init__(
        self,
        overlap_threshold: float = DEFAULT_OVERLAP_THRESHOLD,
        horizontal_gap: float = DEFAULT_HORIZONTAL_GAP,
        vertical_tolerance: float = DEFAULT_VERTICAL_TOLERANCE,
        row_tolerance: float = DEFAULT_ROW_TOLERANCE
    ):
        self.overlap_threshold = overlap_threshold
        self.horizontal_gap = horizontal_gap
        self.vertical_tolerance = vertical_tolerance
        self.row_tolerance = row_tolerance

    def group(self, proposals: Sequence[RegionProposal]) -> List[BookRegionGroup]:
        """
        Group proposals into spines in reading order.

        Empty input gives an empty list.
        """
        if not proposals:
            return []

        ordered = sorted(proposals, key=lambda p: p.bounding_box.min_x)
        processed = [False] * len(ordered)
        groups = []

        for i, seed in enumerate(ordered):
            if processed[i]:
                continue

            processed[i] = True
            members = [seed]

            for j, other in enumerate(ordered):
                if processed[j]:
                    continue
                if self._same_spine(seed.bounding_box, other.bounding_box):
                    members.append(other)
                    processed[j] = True

            groups.append(BookRegionGroup.from_proposals(members))

        logger.debug(f"Grouped {len(proposals)} proposals into {len(groups)} spines")
        return self.sort_reading_order(groups)

    def _same_spine(self, a: NormalizedRect, b: NormalizedRect) -> bool:
        # Invalid boxes stay alone so the pipeline can reject them
        if not is_valid(a) or not is_valid(b):
            return False

        if overlap_ratio(a, b) > self.overlap_threshold:
            return True

        return (
            abs(a.min_x - b.min_x) < self.horizontal_gap
            and abs(a.mid_y - b.mid_y) < self.vertical_tolerance
        )

    def sort_reading_order(self, groups: Sequence[BookRegionGroup]) -> List[BookRegionGroup]:
        """
        Order groups top-to-bottom, then left-to-right.

        Normalized coordinates have a bottom-left origin, so the top row is
        the one with the largest vertical centre.
        """
        by_height = sorted(groups, key=lambda g: -g.combined_bounding_box.mid_y)

        rows: List[List[BookRegionGroup]] = []
        row_anchor = None
        for group in by_height:
            mid_y = group.combined_bounding_box.mid_y
            if row_anchor is None or abs(row_anchor - mid_y) > self.row_tolerance:
                rows.append([])
                row_anchor = mid_y
            rows[-1].append(group)

        ordered = []
        for row in rows:
            ordered.extend(sorted(row, key=lambda g: g.combined_bounding_box.min_x))

        return ordered
