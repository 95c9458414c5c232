"""
Book Spine Detector

YOLOv8-based region detector. Produces normalized region proposals for the
region grouper.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

import numpy as np
import torch
from loguru import logger

from shelfreader.exceptions import DetectorError
from shelfreader.vision.geometry import from_pixel_box, is_valid
from shelfreader.vision.region_grouper import RegionProposal

try:
    from ultralytics import YOLO
except ImportError:
    logger.warning("ultralytics not installed. Install with: pip install ultralytics")
    YOLO = None


class SpineDetector:
    """
    YOLOv8-based book spine detector.
    """

    DEFAULT_CONFIDENCE = 0.2
    DEFAULT_IOU_THRESHOLD = 0.45
    # Tall thin spines and wide flat ones are both allowed
    MIN_ASPECT_RATIO = 0.05
    MAX_ASPECT_RATIO = 20.0
    MIN_AREA_RATIO = 0.005

    def __init__(
        self,
        model_path: Optional[str] = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE,
        iou_threshold: float = DEFAULT_IOU_THRESHOLD,
        device: Optional[str] = None,
        max_workers: int = 1
    ):
        """
        Initialize the spine detector.

        Args:
            model_path: Path to trained YOLOv8 weights
            confidence_threshold: Minimum confidence for detections
            iou_threshold: IoU threshold for NMS
            device: Device to run inference ('cuda', 'cpu', or auto)
            max_workers: Threads used to run inference off the event loop
        """
        if YOLO is None:
            raise ImportError("ultralytics package required. Install with: pip install ultralytics")

        self.confidence_threshold = confidence_threshold
        self.iou_threshold = iou_threshold
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

        if model_path and Path(model_path).exists():
            self.model = YOLO(model_path)
            logger.info(f"Loaded spine detector from {model_path}")
        else:
            self.model = YOLO("yolov8n.pt")
            logger.warning(
                "No custom spine model found. Using base YOLOv8n. "
                "For best results, train a custom model on book spine data."
            )

        self.model.to(self.device)
        logger.info(f"SpineDetector initialized on {self.device}")

    async def detect_regions(self, image: np.ndarray) -> List[RegionProposal]:
        """
        Detect spine regions without blocking the event loop.

        Raises:
            DetectorError: if inference fails for any reason
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, self.detect, image)
        except DetectorError:
            raise
        except Exception as e:
            raise DetectorError(cause=e) from e

    def detect(self, image: np.ndarray) -> List[RegionProposal]:
        """
        Detect book spines in a BGR image.

        Returns proposals in normalized, bottom-left-origin coordinates.
        """
        try:
            results = self.model.predict(
                image,
                conf=self.confidence_threshold,
                iou=self.iou_threshold,
                device=self.device,
                verbose=False
            )
        except Exception as e:
            raise DetectorError(cause=e) from e

        h, w = image.shape[:2]
        proposals = []

        if len(results) > 0 and results[0].boxes is not None:
            boxes = results[0].boxes

            for i in range(len(boxes)):
                x1, y1, x2, y2 = map(float, boxes.xyxy[i].cpu().numpy())
                confidence = float(boxes.conf[i].cpu().numpy())

                if not self._is_spine_shaped(x1, y1, x2, y2, w, h):
                    continue

                rect = from_pixel_box((x1, y1, x2, y2), w, h)
                if not is_valid(rect):
                    logger.debug(f"Dropping detection outside image: {rect}")
                    continue

                proposals.append(RegionProposal(bounding_box=rect, confidence=confidence))

        logger.debug(f"Spine detector found {len(proposals)} regions")
        return proposals

    def _is_spine_shaped(self, x1, y1, x2, y2, image_w, image_h) -> bool:
        width = x2 - x1
        height = y2 - y1
        if width <= 0 or height <= 0:
            return False

        aspect_ratio = height / width
        if not (self.MIN_ASPECT_RATIO <= aspect_ratio <= self.MAX_ASPECT_RATIO):
            return False

        return width * height >= image_w * image_h * self.MIN_AREA_RATIO
