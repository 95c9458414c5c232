"""
OCR Module

Text recognition at the collaborator boundary:
- TextLine and the OcrCollaborator protocol used by the extraction core
- OCREngine (EasyOCR / Tesseract) in shelfreader.ocr.ocr_engine, imported
  on demand
"""

from shelfreader.ocr.contracts import TextLine, OcrCollaborator

__all__ = [
    "TextLine",
    "OcrCollaborator",
]
