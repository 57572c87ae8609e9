"""
Module: ocr.pages

Purpose:
    Turns a submission upload into one PNG image per page. Photos pass
    through unchanged (re-encoded as PNG); PDF uploads are rendered page
    by page with PyMuPDF.

Key Functions:
    - is_pdf(): Magic-number check for PDF bytes
    - render_pdf_pages(): PNG bytes per PDF page at a given DPI
    - load_submission_pages(): Dispatch on upload type

Dependencies:
    - fitz (pymupdf): PDF rendering
    - PIL (Pillow): Image decoding

Used By:
    - pipeline: MarkingPipeline.mark_upload()
"""

from __future__ import annotations

import logging
from typing import List

import fitz
from PIL import Image

from .preprocessing import load_image, to_png_bytes

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


def is_pdf(data: bytes) -> bool:
    """True when the bytes start with the PDF header."""
    return data[:1024].lstrip().startswith(PDF_MAGIC)


def render_pdf_pages(data: bytes, dpi: int = 200) -> List[bytes]:
    """
    Render every page of a PDF to PNG bytes.

    Args:
        data: PDF file contents
        dpi: Render resolution

    Returns:
        One PNG byte string per page, in page order

    Raises:
        ValueError: If the PDF cannot be opened or has no pages
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise ValueError(f"Unreadable PDF: {e}") from e

    pages: List[bytes] = []
    matrix = fitz.Matrix(dpi / 72.0, dpi / 72.0)
    with doc:
        if doc.page_count == 0:
            raise ValueError("PDF has no pages")
        for page in doc:
            pix = page.get_pixmap(matrix=matrix, alpha=False)
            image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
            pages.append(to_png_bytes(image))

    logger.debug(f"Rendered {len(pages)} PDF pages at {dpi} DPI")
    return pages


def load_submission_pages(data: bytes, dpi: int = 200) -> List[bytes]:
    """
    Normalise an upload into PNG page images.

    Raises:
        ValueError: If the upload is neither a PDF nor a readable image
    """
    if not data:
        raise ValueError("Empty upload")
    if is_pdf(data):
        return render_pdf_pages(data, dpi=dpi)
    return [to_png_bytes(load_image(data))]
