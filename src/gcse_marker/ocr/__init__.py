"""
Recognition stage: preprocessing passes, clustering, math regions.

Public entry points:
- TextRecognitionOrchestrator.recognize(image_bytes)
- BlockClusterer.cluster(fragments)
- MathRegionDetector.detect(clusters) / refine(image_bytes, blocks)
"""

from .clustering import BlockClusterer, merge_overlapping
from .math_regions import MathRegionDetector, MathRefinementReport, crop_options
from .math_scoring import score_math_likeness, is_suspicious
from .orchestrator import TextRecognitionOrchestrator, RecognitionResult
from .pages import load_submission_pages
from .reading_order import sort_reading_order, group_lines, transcript

__all__ = [
    "BlockClusterer",
    "merge_overlapping",
    "MathRegionDetector",
    "MathRefinementReport",
    "crop_options",
    "score_math_likeness",
    "is_suspicious",
    "TextRecognitionOrchestrator",
    "RecognitionResult",
    "load_submission_pages",
    "sort_reading_order",
    "group_lines",
    "transcript",
]
