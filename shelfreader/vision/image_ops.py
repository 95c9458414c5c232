"""
Image Operations for ShelfReader

Thin raster utilities around the extraction core: loading, orientation
correction, cropping to a pixel rectangle and OCR enhancement.
"""

from typing import Optional

import cv2
import numpy as np
from loguru import logger

from shelfreader.exceptions import ImageDecodeError
from shelfreader.vision.geometry import PixelRect


PORTRAIT_RATIO = 1.5
MIN_OCR_DIMENSION = 150


def load_image(path: str) -> np.ndarray:
    """Read a BGR image from disk, raising ImageDecodeError on failure."""
    image = cv2.imread(path)
    if image is None:
        raise ImageDecodeError(path, detail="OpenCV could not read the file")
    return image


def correct_orientation(image: np.ndarray) -> np.ndarray:
    """
    Rotate portrait photos into landscape.

    Shelf photos taken in portrait orientation (height more than 1.5x the
    width) are rotated 90 degrees counter-clockwise.
    """
    h, w = image.shape[:2]
    if h > w * PORTRAIT_RATIO:
        logger.debug(f"Rotating portrait image {w}x{h} to landscape")
        return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return image


def crop(image: np.ndarray, rect: PixelRect) -> Optional[np.ndarray]:
    """
    Crop an image to a pixel rectangle.

    Returns None if the rectangle does not fit inside the image.
    """
    h, w = image.shape[:2]
    if rect.x < 0 or rect.y < 0 or rect.x2 > w or rect.y2 > h:
        logger.error(f"Invalid crop rect {rect} for image {w}x{h}")
        return None

    rows, cols = rect.as_slices()
    cropped = image[rows, cols].copy()
    if cropped.size == 0:
        return None
    return cropped


def rotate(image: np.ndarray, angle: int) -> np.ndarray:
    """Rotate image by a multiple of 90 degrees (clockwise)."""
    if angle == 90:
        return cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
    elif angle == 180:
        return cv2.rotate(image, cv2.ROTATE_180)
    elif angle == 270:
        return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return image


def enhance_for_ocr(image: np.ndarray) -> np.ndarray:
    """Upscale small images, then apply CLAHE and an unsharp mask."""
    h, w = image.shape[:2]

    # Thin spines: the short side is the text height
    min_dim = min(h, w)
    if 0 < min_dim < MIN_OCR_DIMENSION:
        scale = MIN_OCR_DIMENSION / min_dim
        image = cv2.resize(image, None, fx=scale, fy=scale, interpolation=cv2.INTER_CUBIC)

    if len(image.shape) == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    else:
        gray = image.copy()

    clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
    enhanced = clahe.apply(gray)

    gaussian = cv2.GaussianBlur(enhanced, (0, 0), 3.0)
    sharpened = cv2.addWeighted(enhanced, 1.5, gaussian, -0.5, 0)

    return cv2.cvtColor(sharpened, cv2.COLOR_GRAY2BGR)
