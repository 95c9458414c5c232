"""
OCR Engine

Text recognizer backed by EasyOCR, with Tesseract as fallback. Returns one
TextLine per recognized line.
"""

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np
from loguru import logger

from shelfreader.exceptions import RecognizerError
from shelfreader.ocr.contracts import TextLine
from shelfreader.vision.geometry import from_pixel_box, is_valid
from shelfreader.vision.image_ops import rotate

try:
    import easyocr
    EASYOCR_AVAILABLE = True
except ImportError:
    easyocr = None
    EASYOCR_AVAILABLE = False
    logger.warning("EasyOCR not available. Install with: pip install easyocr")

try:
    import pytesseract
    TESSERACT_AVAILABLE = True
except ImportError:
    pytesseract = None
    TESSERACT_AVAILABLE = False
    logger.warning("Tesseract not available. Install with: pip install pytesseract")


# (text, confidence, pixel box x1, y1, x2, y2)
RawLine = Tuple[str, float, Tuple[float, float, float, float]]


class OCREngine:
    """
    Multi-engine OCR collaborator.

    Usage:
        engine = OCREngine(use_gpu=False)
        lines = await engine.recognize_text(crop)
        full = await engine.recognize_text(image, include_positions=True)
    """

    DEFAULT_LANGUAGES = ['en']
    # Spine text usually runs vertically
    SPINE_ROTATION_ANGLES = [90, 270, 0]
    SPINE_ASPECT_RATIO = 1.5
    EARLY_EXIT_CONFIDENCE = 0.8

    def __init__(
        self,
        languages: Optional[List[str]] = None,
        use_gpu: bool = False,
        confidence_threshold: float = 0.3,
        prefer_easyocr: bool = True,
        rotate_spines: bool = True,
        max_workers: int = 1
    ):
        """
        Initialize the OCR engine.

        Args:
            languages: List of language codes
            use_gpu: Use GPU acceleration if available
            confidence_threshold: Lines at or below this confidence are dropped
            prefer_easyocr: Prefer EasyOCR over Tesseract
            rotate_spines: Try 90/270 degree rotations on tall crops
            max_workers: Threads used to run recognition off the event loop
        """
        self.languages = languages or self.DEFAULT_LANGUAGES
        self.confidence_threshold = confidence_threshold
        self.prefer_easyocr = prefer_easyocr
        self.rotate_spines = rotate_spines
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

        if not EASYOCR_AVAILABLE and not TESSERACT_AVAILABLE:
            raise RuntimeError("No OCR engine available. Install easyocr or pytesseract.")

        self.easyocr_reader = None
        if EASYOCR_AVAILABLE and prefer_easyocr:
            try:
                self.easyocr_reader = easyocr.Reader(
                    self.languages,
                    gpu=use_gpu,
                    verbose=False
                )
                logger.info(f"EasyOCR initialized (GPU: {use_gpu})")
            except Exception as e:
                logger.error(f"Failed to initialize EasyOCR: {e}")

        self.tesseract_config = '--oem 3 --psm 6'

        logger.info("OCREngine initialized")

    async def recognize_text(
        self,
        image: np.ndarray,
        include_positions: bool = False
    ) -> List[TextLine]:
        """
        Recognize text lines without blocking the event loop.

        Raises:
            RecognizerError: if every available backend fails
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            self.recognize,
            image,
            include_positions
        )

    def recognize(self, image: np.ndarray, include_positions: bool = False) -> List[TextLine]:
        """
        Synchronous recognition.

        Positions are reported only with `include_positions`, and then the
        image is never rotated so that positions stay in image space.
        """
        start_time = time.time()
        h, w = image.shape[:2]

        if include_positions or not self.rotate_spines or h <= w * self.SPINE_ASPECT_RATIO:
            angles = [0]
        else:
            angles = self.SPINE_ROTATION_ANGLES

        best_lines: List[RawLine] = []
        best_confidence = -1.0
        best_shape = (h, w)

        for angle in angles:
            rotated = rotate(image, angle)
            raw = self._recognize_raw(rotated)
            confidence = float(np.mean([c for _, c, _ in raw])) if raw else 0.0

            if confidence > best_confidence:
                best_confidence = confidence
                best_lines = raw
                best_shape = rotated.shape[:2]

            if best_confidence > self.EARLY_EXIT_CONFIDENCE:
                break

        lines = self._to_text_lines(best_lines, best_shape, include_positions)

        elapsed = (time.time() - start_time) * 1000
        logger.debug(f"Recognized {len(lines)} lines in {elapsed:.0f} ms")
        return lines

    def _to_text_lines(
        self,
        raw: List[RawLine],
        shape: Tuple[int, int],
        include_positions: bool
    ) -> List[TextLine]:
        h, w = shape
        lines = []

        for text, confidence, box in raw:
            text = text.strip()
            if confidence <= self.confidence_threshold or len(text) <= 1:
                continue

            position = None
            if include_positions:
                position = from_pixel_box(box, w, h)
                if not is_valid(position):
                    logger.debug(f"Dropping '{text}' with invalid position {position}")
                    continue

            lines.append(TextLine(text=text, confidence=confidence, position=position))

        return lines

    def _recognize_raw(self, image: np.ndarray) -> List[RawLine]:
        """Run one orientation through the preferred backend."""
        errors = []

        if self.easyocr_reader is not None:
            try:
                return self._process_easyocr(image)
            except Exception as e:
                logger.error(f"EasyOCR error: {e}")
                errors.append(e)

        if TESSERACT_AVAILABLE:
            try:
                return self._process_tesseract(image)
            except Exception as e:
                logger.error(f"Tesseract error: {e}")
                errors.append(e)

        if errors:
            raise RecognizerError(cause=errors[-1]) from errors[-1]
        raise RecognizerError(detail="No OCR backend initialized")

    def _process_easyocr(self, image: np.ndarray) -> List[RawLine]:
        """Process with EasyOCR."""
        results = self.easyocr_reader.readtext(
            image,
            detail=1,
            paragraph=False,
            adjust_contrast=0.5,
            text_threshold=0.6,
            low_text=0.3
        )

        lines = []
        for bbox_points, text, confidence in results:
            x_coords = [p[0] for p in bbox_points]
            y_coords = [p[1] for p in bbox_points]
            box = (
                float(min(x_coords)),
                float(min(y_coords)),
                float(max(x_coords)),
                float(max(y_coords))
            )
            lines.append((text, float(confidence), box))

        return lines

    def _process_tesseract(self, image: np.ndarray) -> List[RawLine]:
        """Process with Tesseract, joining words into lines."""
        if len(image.shape) == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image

        data = pytesseract.image_to_data(
            gray,
            config=self.tesseract_config,
            output_type=pytesseract.Output.DICT
        )

        grouped: Dict[Tuple[int, int, int], dict] = {}
        for i in range(len(data['text'])):
            word = data['text'][i].strip()
            conf = float(data['conf'][i])
            if not word or conf < 0:
                continue

            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            x, y = data['left'][i], data['top'][i]
            x2, y2 = x + data['width'][i], y + data['height'][i]

            line = grouped.setdefault(key, {"words": [], "confs": [], "box": [x, y, x2, y2]})
            line["words"].append(word)
            line["confs"].append(conf / 100.0)
            box = line["box"]
            box[0], box[1] = min(box[0], x), min(box[1], y)
            box[2], box[3] = max(box[2], x2), max(box[3], y2)

        return [
            (" ".join(line["words"]), float(np.mean(line["confs"])), tuple(float(v) for v in line["box"]))
            for line in grouped.values()
        ]
