"""
Unit tests for image operations and the spine detector.
"""

import numpy as np
import pytest
import torch
from unittest.mock import MagicMock, patch

from shelfreader.exceptions import DetectorError, ImageDecodeError
from shelfreader.vision import image_ops
from shelfreader.vision.geometry import PixelRect
from shelfreader.vision.spine_detector import SpineDetector


class TestImageOps:
    """Tests for image_ops helpers."""

    def test_load_missing_image(self, tmp_path):
        with pytest.raises(ImageDecodeError):
            image_ops.load_image(str(tmp_path / "missing.jpg"))

    def test_portrait_is_rotated(self):
        portrait = np.zeros((1000, 400, 3), dtype=np.uint8)
        assert image_ops.correct_orientation(portrait).shape == (400, 1000, 3)

    def test_landscape_untouched(self, sample_bookshelf_image):
        assert image_ops.correct_orientation(sample_bookshelf_image) is sample_bookshelf_image

    def test_slightly_tall_untouched(self):
        image = np.zeros((500, 400, 3), dtype=np.uint8)
        assert image_ops.correct_orientation(image).shape == (500, 400, 3)

    def test_crop(self, sample_bookshelf_image):
        cropped = image_ops.crop(sample_bookshelf_image, PixelRect(x=50, y=100, width=40, height=300))

        assert cropped.shape == (300, 40, 3)
        # First spine is solid red (BGR)
        assert tuple(cropped[0, 0]) == (50, 50, 150)

    def test_crop_outside_image(self, sample_bookshelf_image):
        assert image_ops.crop(sample_bookshelf_image, PixelRect(x=600, y=0, width=100, height=10)) is None

    def test_rotate(self, spine_crop_image):
        assert image_ops.rotate(spine_crop_image, 90).shape == (60, 400, 3)
        assert image_ops.rotate(spine_crop_image, 180).shape == (400, 60, 3)
        assert image_ops.rotate(spine_crop_image, 0) is spine_crop_image

    def test_enhance_for_ocr(self, sample_bookshelf_image):
        enhanced = image_ops.enhance_for_ocr(sample_bookshelf_image)

        assert enhanced.shape == sample_bookshelf_image.shape
        assert enhanced.dtype == np.uint8

    def test_enhance_upscales_thin_spines(self, spine_crop_image):
        assert image_ops.enhance_for_ocr(spine_crop_image).shape == (1000, 150, 3)


class FakeBoxes:
    """Stand-in for an ultralytics Boxes object."""

    def __init__(self, xyxy, conf):
        self.xyxy = torch.tensor(xyxy, dtype=torch.float32)
        self.conf = torch.tensor(conf, dtype=torch.float32)

    def __len__(self):
        return len(self.conf)


class TestSpineDetector:
    """Tests for SpineDetector class."""

    @pytest.fixture
    def detector(self):
        """Spine detector with a mocked YOLO model."""
        with patch("shelfreader.vision.spine_detector.YOLO") as mock_yolo:
            mock_model = MagicMock()
            mock_yolo.return_value = mock_model
            yield SpineDetector(device="cpu")

    def set_boxes(self, detector, xyxy, conf):
        result = MagicMock()
        result.boxes = FakeBoxes(xyxy, conf)
        detector.model.predict.return_value = [result]

    def test_detect_converts_to_normalized(self, detector, blank_image):
        self.set_boxes(detector, [[100, 60, 180, 540]], [0.9])

        proposals = detector.detect(blank_image)

        assert len(proposals) == 1
        bbox = proposals[0].bounding_box
        assert bbox.min_x == pytest.approx(0.1)
        assert bbox.max_x == pytest.approx(0.18)
        assert bbox.min_y == pytest.approx(0.1)
        assert bbox.max_y == pytest.approx(0.9)
        assert proposals[0].confidence == pytest.approx(0.9)

    def test_filters_non_spine_shapes(self, detector, blank_image):
        self.set_boxes(
            detector,
            [[0, 0, 10, 10], [100, 100, 900, 120], [300, 60, 380, 540]],
            [0.9, 0.9, 0.8],
        )

        proposals = detector.detect(blank_image)

        assert len(proposals) == 1
        assert proposals[0].bounding_box.min_x == pytest.approx(0.3)

    def test_no_detections(self, detector, blank_image):
        result = MagicMock()
        result.boxes = None
        detector.model.predict.return_value = [result]

        assert detector.detect(blank_image) == []

    def test_model_failure_raises_detector_error(self, detector, blank_image):
        detector.model.predict.side_effect = RuntimeError("CUDA error")

        with pytest.raises(DetectorError):
            detector.detect(blank_image)

    @pytest.mark.asyncio
    async def test_detect_regions(self, detector, blank_image):
        self.set_boxes(detector, [[100, 60, 180, 540]], [0.9])

        proposals = await detector.detect_regions(blank_image)

        assert len(proposals) == 1

    @pytest.mark.asyncio
    async def test_detect_regions_wraps_errors(self, detector, blank_image):
        detector.model.predict.side_effect = RuntimeError("CUDA error")

        with pytest.raises(DetectorError):
            await detector.detect_regions(blank_image)
