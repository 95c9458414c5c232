"""
Exceptions for ShelfReader

Errors raised at the collaborator boundaries (region detector, OCR engine,
image loading). Per-region failures inside the extraction pipeline are
recorded as outcomes instead of being raised.
"""

from typing import Optional


class ShelfReaderError(Exception):
    """Base exception for ShelfReader errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        detail: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.code = code
        self.detail = detail
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class DetectorError(ShelfReaderError):
    """Region detector failed on the whole image."""

    def __init__(self, detail: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(
            message="Region detection failed",
            code="DETECTOR_ERROR",
            detail=detail or (str(cause) if cause else None),
            cause=cause,
        )


class RecognizerError(ShelfReaderError):
    """Text recognizer failed on an image or crop."""

    def __init__(self, detail: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(
            message="Text recognition failed",
            code="RECOGNITION_ERROR",
            detail=detail or (str(cause) if cause else None),
            cause=cause,
        )


class ImageDecodeError(ShelfReaderError):
    """Image could not be read or decoded."""

    def __init__(self, path: str, detail: Optional[str] = None):
        super().__init__(
            message=f"Could not decode image '{path}'",
            code="IMAGE_DECODE_ERROR",
            detail=detail,
        )
        self.path = path
