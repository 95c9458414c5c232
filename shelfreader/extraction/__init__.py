"""
Extraction Module

Turns recognized spine text into book records.
"""

from shelfreader.extraction.models import (
    UNKNOWN_AUTHOR,
    BookCandidate,
    TextBlocks,
    FailureReason,
    Success,
    Skipped,
    Failed,
    ProcessingOutcome,
)
from shelfreader.extraction.line_classifier import LineClassifier, uppercase_ratio
from shelfreader.extraction.field_normalizer import FieldNormalizer
from shelfreader.extraction.block_segmenter import BlockSegmenter, BlockState
from shelfreader.extraction.position_segmenter import PositionSegmenter
from shelfreader.extraction.pipeline import ExtractionPipeline, PipelineResult

__all__ = [
    # Models
    "UNKNOWN_AUTHOR",
    "BookCandidate",
    "TextBlocks",
    "FailureReason",
    "Success",
    "Skipped",
    "Failed",
    "ProcessingOutcome",
    # Segmentation
    "LineClassifier",
    "uppercase_ratio",
    "FieldNormalizer",
    "BlockSegmenter",
    "BlockState",
    "PositionSegmenter",
    # Pipeline
    "ExtractionPipeline",
    "PipelineResult",
]
