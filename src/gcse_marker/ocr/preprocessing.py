"""
Module: ocr.preprocessing

Purpose:
    Builds the differently preprocessed copies of a submission image that
    the recognition orchestrator runs through the primary recognizer,
    and crops regions for the math recognizer.

Key Functions:
    - build_passes(): clean / enhanced / sharpened pass images
    - crop_region(): PNG bytes of one block region

Key Classes:
    - PreparedPass: Pass name, PNG bytes and scale factor

Dependencies:
    - PIL (Pillow): Decoding, grayscale, contrast, sharpen, threshold

Used By:
    - ocr.orchestrator: Recognition passes
    - ocr.math_regions: Block crops
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import List

from PIL import Image, ImageFilter, ImageOps

from gcse_marker.config import RecognitionConfig
from gcse_marker.core.models import BoundingBox

logger = logging.getLogger(__name__)

PASS_CLEAN = "clean"
PASS_ENHANCED = "enhanced"
PASS_SHARPENED = "sharpened"


@dataclass(frozen=True)
class PreparedPass:
    """
    One preprocessed copy of the source image.

    Attributes:
        name: Pass name
        image_bytes: PNG-encoded image handed to the recognizer
        scale: Factor the pass was resized by; detections are divided by it
    """
    name: str
    image_bytes: bytes
    scale: float = 1.0


def load_image(image_bytes: bytes) -> Image.Image:
    """
    Decode image bytes into an RGB image.

    Raises:
        ValueError: If the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"Unreadable image: {e}") from e
    return ImageOps.exif_transpose(image).convert("RGB")


def to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _resized(image: Image.Image, factor: int) -> Image.Image:
    if factor == 1:
        return image
    return image.resize((image.width * factor, image.height * factor), Image.Resampling.LANCZOS)


def clean_pass(image: Image.Image) -> PreparedPass:
    """Baseline: the image as received."""
    return PreparedPass(PASS_CLEAN, to_png_bytes(image), 1.0)


def enhanced_pass(image: Image.Image, config: RecognitionConfig) -> PreparedPass:
    """Grayscale plus contrast normalisation, upscaled."""
    gray = ImageOps.autocontrast(ImageOps.grayscale(image))
    resized = _resized(gray, config.resize_factor)
    return PreparedPass(PASS_ENHANCED, to_png_bytes(resized), float(config.resize_factor))


def sharpened_pass(image: Image.Image, config: RecognitionConfig) -> PreparedPass:
    """Grayscale, sharpened and binarised, upscaled."""
    gray = ImageOps.grayscale(image).filter(ImageFilter.SHARPEN)
    level = config.threshold_level
    binary = gray.point(lambda p: 255 if p > level else 0)
    resized = _resized(binary, config.resize_factor)
    return PreparedPass(PASS_SHARPENED, to_png_bytes(resized), float(config.resize_factor))


def build_passes(image_bytes: bytes, config: RecognitionConfig) -> List[PreparedPass]:
    """
    Build every recognition pass for one image.

    A pass whose preprocessing fails is skipped with a warning; the clean
    pass only fails when the bytes are not an image at all.

    Raises:
        ValueError: If the image cannot be decoded
    """
    image = load_image(image_bytes)
    passes = [clean_pass(image)]
    for builder in (enhanced_pass, sharpened_pass):
        try:
            passes.append(builder(image, config))
        except (OSError, ValueError) as e:
            logger.warning(f"Preprocessing step {builder.__name__} failed: {e}")
    return passes


def crop_region(image: Image.Image, bbox: BoundingBox) -> bytes:
    """
    Crop one block region as PNG bytes.

    The crop box is clamped to the image so blocks touching the edge
    still produce a non-empty crop.
    """
    left, top, right, bottom = bbox.pil_box()
    right = min(right, image.width)
    bottom = min(bottom, image.height)
    left = min(left, max(0, right - 1))
    top = min(top, max(0, bottom - 1))
    return to_png_bytes(image.crop((left, top, right, bottom)))
