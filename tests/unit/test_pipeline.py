"""
Unit tests for the sequential extraction pipeline.
"""

import asyncio

import pytest

from shelfreader.exceptions import RecognizerError
from shelfreader.extraction.models import BookCandidate, Failed, FailureReason, Success
from shelfreader.extraction.pipeline import ExtractionPipeline
from shelfreader.vision.region_grouper import BookRegionGroup
from tests.conftest import FakeOcr, proposal

pytestmark = pytest.mark.asyncio


def spine_groups(count):
    """`count` upright spines side by side, in reading order."""
    return [
        BookRegionGroup.from_proposals([proposal(0.05 + i * 0.18, 0.1, 0.15 + i * 0.18, 0.9)])
        for i in range(count)
    ]


SCRIPTED_SPINES = [
    ["HIS TRUTH IS MARCHING ON", "JON MEACHAM", "RANDOM HOUSE"],
    ["THE BOOK OF GUTSY WOMEN", "Hillary Rodham Clinton AND Chelsea Clinton"],
    ["THE NORTON ANTHOLOGY OF", "WORLD LITERATURE", "NORTON"],
    ["GOOD OMENS", "Neil Gaiman", "Terry Pratchett"],
    ["THE ROAD", "Cormac McCarthy", "VINTAGE"],
]


class TestExtractionPipeline:
    """Tests for ExtractionPipeline class."""

    async def test_one_book_per_group_in_order(self, blank_image):
        ocr = FakeOcr(SCRIPTED_SPINES)
        pipeline = ExtractionPipeline(ocr=ocr)

        result = await pipeline.run(spine_groups(5), blank_image)

        assert [b.title for b in result.books] == [
            "His Truth Is Marching On",
            "The Book Of Gutsy Women",
            "The Norton Anthology Of World Literature",
            "Good Omens",
            "The Road",
        ]
        assert result.failures == []
        assert result.total == 5
        assert not result.cancelled
        assert not result.isolation_yielded_nothing
        assert result.processing_time_ms >= 0

    async def test_invalid_region_is_recorded_and_skipped(self, blank_image):
        groups = spine_groups(5)
        groups[2] = BookRegionGroup.from_proposals([proposal(0.6, 0.1, 0.4, 0.9)])
        ocr = FakeOcr(SCRIPTED_SPINES[:4])

        result = await ExtractionPipeline(ocr=ocr).run(groups, blank_image)

        assert result.success_count == 4
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.index == 2
        assert failure.reason is FailureReason.INVALID_REGION
        assert failure.book_number == 3
        # The invalid region never reaches the recognizer
        assert ocr.region_calls == 4
        assert [type(o) for o in result.outcomes] == [Success, Success, Failed, Success, Success]

    async def test_crop_out_of_bounds(self, blank_image):
        # Valid, but narrower than one pixel once rounded
        groups = [BookRegionGroup.from_proposals([proposal(0.5, 0.5, 0.5004, 0.6)])]
        ocr = FakeOcr()

        result = await ExtractionPipeline(ocr=ocr).run(groups, blank_image)

        assert [(f.index, f.reason) for f in result.failures] == [(0, FailureReason.CROP_OUT_OF_BOUNDS)]
        assert ocr.region_calls == 0

    async def test_recognizer_errors_do_not_stop_the_scan(self, blank_image):
        ocr = FakeOcr([
            RecognizerError(detail="backend crashed"),
            SCRIPTED_SPINES[0],
            RuntimeError("unexpected"),
        ])

        result = await ExtractionPipeline(ocr=ocr).run(spine_groups(3), blank_image)

        assert [f.index for f in result.failures] == [0, 2]
        assert all(f.reason is FailureReason.RECOGNITION_ERROR for f in result.failures)
        assert "backend crashed" in result.failures[0].detail
        assert result.books == [BookCandidate("His Truth Is Marching On", "Jon Meacham", "Random House")]

    async def test_no_text(self, blank_image):
        result = await ExtractionPipeline(ocr=FakeOcr([[]])).run(spine_groups(1), blank_image)

        assert result.failures[0].reason is FailureReason.NO_TEXT
        assert result.isolation_yielded_nothing

    async def test_longest_line_becomes_bare_title(self, blank_image):
        # Letterless lines are filtered out before segmentation
        ocr = FakeOcr([["42", "1984", "7"]])

        result = await ExtractionPipeline(ocr=ocr).run(spine_groups(1), blank_image)

        assert result.books == [BookCandidate(title="1984", author="Unknown")]

    async def test_text_too_short(self, blank_image):
        ocr = FakeOcr([["ab", "x"]])

        result = await ExtractionPipeline(ocr=ocr).run(spine_groups(1), blank_image)

        assert result.failures[0].reason is FailureReason.TEXT_TOO_SHORT
        assert result.books == []

    async def test_first_candidate_kept_when_region_holds_several(self, blank_image):
        ocr = FakeOcr([["DUNE | FRANK HERBERT", "THE ROAD | CORMAC MCCARTHY"]])

        result = await ExtractionPipeline(ocr=ocr).run(spine_groups(1), blank_image)

        assert result.books == [BookCandidate(title="Dune", author="Frank Herbert")]

    async def test_progress_reported_after_each_group(self, blank_image):
        progress = []
        groups = spine_groups(3)
        groups[1] = BookRegionGroup.from_proposals([proposal(0.6, 0.1, 0.4, 0.9)])

        await ExtractionPipeline(ocr=FakeOcr(SCRIPTED_SPINES)).run(
            groups, blank_image, on_progress=lambda done, total: progress.append((done, total))
        )

        assert progress == [(1, 3), (2, 3), (3, 3)]

    async def test_cancellation_between_groups(self, blank_image):
        cancel = asyncio.Event()
        ocr = FakeOcr(SCRIPTED_SPINES)

        def on_progress(done, total):
            if done == 2:
                cancel.set()

        result = await ExtractionPipeline(ocr=ocr).run(
            spine_groups(5), blank_image, on_progress=on_progress, cancel_event=cancel
        )

        assert result.cancelled
        assert len(result.outcomes) == 2
        assert ocr.region_calls == 2
        assert [b.title for b in result.books] == ["His Truth Is Marching On", "The Book Of Gutsy Women"]

    async def test_preprocess_applied_to_crops(self, blank_image):
        seen = []

        def preprocess(crop):
            seen.append(crop.shape)
            return crop

        await ExtractionPipeline(ocr=FakeOcr(SCRIPTED_SPINES), preprocess=preprocess).run(
            spine_groups(2), blank_image
        )

        # 0.1 of a 1000 px width, 0.8 of a 600 px height
        assert seen == [(480, 100, 3), (480, 100, 3)]

    async def test_preprocess_failure_is_recorded_and_skipped(self, blank_image):
        calls = []

        def preprocess(crop):
            calls.append(crop.shape)
            if len(calls) == 2:
                raise ValueError("bad crop")
            return crop

        ocr = FakeOcr([SCRIPTED_SPINES[0], SCRIPTED_SPINES[2]])
        result = await ExtractionPipeline(ocr=ocr, preprocess=preprocess).run(
            spine_groups(3), blank_image
        )

        assert [b.title for b in result.books] == [
            "His Truth Is Marching On",
            "The Norton Anthology Of World Literature",
        ]
        assert len(result.failures) == 1
        assert result.failures[0].book_number == 2
        assert result.failures[0].reason is FailureReason.RECOGNITION_ERROR
        assert "bad crop" in result.failures[0].detail
        assert ocr.region_calls == 2

    async def test_crop_matches_region(self, blank_image):
        ocr = FakeOcr(SCRIPTED_SPINES)
        await ExtractionPipeline(ocr=ocr).run(spine_groups(1), blank_image)
        assert ocr.calls[0]["shape"] == (480, 100, 3)

    async def test_empty_groups(self, blank_image):
        result = await ExtractionPipeline(ocr=FakeOcr()).run([], blank_image)

        assert result.outcomes == []
        assert not result.isolation_yielded_nothing

