"""
Module: ocr.orchestrator

Purpose:
    Runs every recognition pass over one page image, pools the fragments
    and clusters them. When no pass yields anything it degrades to a
    single whole-image block from the math recognizer.

Key Classes:
    - TextRecognitionOrchestrator: recognize() entry point
    - RecognitionResult: Clusters, fragments and pass bookkeeping

Failure Policy:
    - A pass that raises is logged, recorded and excluded
    - All passes failed -> math-only fallback block
    - Fallback failed too -> OCRFailure

Dependencies:
    - asyncio (std): Concurrent passes
    - ocr.preprocessing: Pass images (Pillow)
    - ocr.clustering: BlockClusterer (scikit-learn)

Used By:
    - pipeline: MarkingPipeline
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from gcse_marker.collaborators import MathRecognizer, RawTextDetection, TextRecognizer
from gcse_marker.common.thresholds import RECOGNITION_THRESHOLDS
from gcse_marker.config import ClusteringConfig, RecognitionConfig
from gcse_marker.core.models import BoundingBox, Cluster, DetectedFragment, MathBlock
from gcse_marker.diagnostics import DiagnosticsCollector
from gcse_marker.exceptions import OCRFailure

from .clustering import BlockClusterer
from .preprocessing import PreparedPass, build_passes

logger = logging.getLogger(__name__)


@dataclass
class RecognitionResult:
    """
    Output of one recognize() call.

    Attributes:
        clusters: Non-overlapping clusters in reading order
        fragments: Every pooled fragment (original image coordinates)
        fallback_block: Degraded whole-image block when all passes failed
        passes_succeeded: Names of passes that returned
        passes_failed: Names of passes that raised
        warnings: Human-readable notes for the caller
    """
    clusters: List[Cluster] = field(default_factory=list)
    fragments: List[DetectedFragment] = field(default_factory=list)
    fallback_block: Optional[MathBlock] = None
    passes_succeeded: List[str] = field(default_factory=list)
    passes_failed: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.fallback_block is not None

    @property
    def overall_confidence(self) -> Optional[float]:
        """Mean reported fragment confidence across every pass."""
        reported = [f.confidence for f in self.fragments if f.confidence is not None]
        return sum(reported) / len(reported) if reported else None


def fragments_from_detections(
    detections: Sequence[RawTextDetection],
    pass_name: str,
    scale: float,
) -> List[DetectedFragment]:
    """
    Convert raw detections to fragments in original image coordinates.

    Detections without text or without a polygon are dropped; coordinates
    are divided by the pass scale factor.
    """
    fragments: List[DetectedFragment] = []
    for detection in detections:
        text = (detection.text or "").strip()
        if not text or not detection.vertices:
            continue
        try:
            bbox = BoundingBox.from_vertices(detection.vertices)
        except ValueError:
            continue
        if scale != 1.0:
            bbox = bbox.scaled(scale)
        confidence = detection.confidence
        if confidence is not None:
            confidence = min(1.0, max(0.0, float(confidence)))
        fragments.append(DetectedFragment(pass_name, text, confidence, bbox))
    return fragments


class TextRecognitionOrchestrator:
    """
    Multi-pass recognition for one page.

    Stateless per invocation; recognizers and configuration are injected.

    Example:
        >>> orchestrator = TextRecognitionOrchestrator(vision, mathpix)
        >>> result = await orchestrator.recognize(png_bytes)
        >>> [c.text for c in result.clusters]
    """

    def __init__(
        self,
        text_recognizer: TextRecognizer,
        math_recognizer: Optional[MathRecognizer] = None,
        recognition_config: RecognitionConfig | None = None,
        clustering_config: ClusteringConfig | None = None,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        self.text_recognizer = text_recognizer
        self.math_recognizer = math_recognizer
        self.config = recognition_config or RecognitionConfig()
        self.clusterer = BlockClusterer(clustering_config)
        self.diagnostics = diagnostics

    async def _run_pass(self, prepared: PreparedPass) -> List[DetectedFragment]:
        detections = await self.text_recognizer.recognize(prepared.image_bytes)
        return fragments_from_detections(detections or [], prepared.name, prepared.scale)

    async def recognize(self, image_bytes: bytes, submission_id: str = "") -> RecognitionResult:
        """
        Run all passes concurrently, pool fragments and cluster them.

        Args:
            image_bytes: One page image
            submission_id: Used to tag diagnostics

        Returns:
            RecognitionResult

        Raises:
            OCRFailure: If no pass succeeded (an image that cannot be
                preprocessed runs no pass) and the math-only fallback
                failed as well
        """
        result = RecognitionResult()
        try:
            passes = build_passes(image_bytes, self.config)
        except ValueError as e:
            msg = f"Cannot preprocess submission image: {e}"
            logger.warning(msg)
            result.warnings.append(msg)
            if self.diagnostics is not None:
                self.diagnostics.add_pass_failure("preprocessing", str(e), submission_id)
            passes = []

        outcomes = await asyncio.gather(
            *(self._run_pass(p) for p in passes),
            return_exceptions=True,
        )

        for prepared, outcome in zip(passes, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                msg = f"Recognition pass '{prepared.name}' failed: {outcome}"
                logger.warning(msg, extra={"pass": prepared.name})
                result.passes_failed.append(prepared.name)
                result.warnings.append(msg)
                if self.diagnostics is not None:
                    self.diagnostics.add_pass_failure(prepared.name, str(outcome), submission_id)
                continue
            result.passes_succeeded.append(prepared.name)
            result.fragments.extend(outcome)
            logger.debug(f"Pass '{prepared.name}' returned {len(outcome)} fragments")

        if not result.passes_succeeded:
            result.fallback_block = await self._math_fallback(image_bytes)
            result.warnings.append("All recognition passes failed; using math-only fallback")
            return result

        result.clusters = self.clusterer.cluster(result.fragments)
        logger.info(
            f"Recognition: {len(result.passes_succeeded)}/{len(passes)} passes, "
            f"{len(result.fragments)} fragments, {len(result.clusters)} clusters"
        )
        return result

    async def _math_fallback(self, image_bytes: bytes) -> MathBlock:
        """Whole-image math recognition producing one degraded block."""
        if self.math_recognizer is None or not self.config.enable_math_fallback:
            logger.error("All recognition passes failed and no math fallback is available")
            raise OCRFailure("All recognition passes failed and no math fallback is available")

        try:
            recognition = await self.math_recognizer.recognize(image_bytes)
        except Exception as e:
            logger.error(f"Math-only fallback failed: {e}")
            raise OCRFailure(f"All recognition passes failed; math fallback failed: {e}") from e

        text = (recognition.text or "").strip() if recognition is not None else ""
        if not text:
            logger.error("Math-only fallback returned no text")
            raise OCRFailure("All recognition passes failed; math fallback returned no text")

        size = RECOGNITION_THRESHOLDS.fallback_box_size
        confidence = recognition.confidence
        if confidence is None:
            confidence = RECOGNITION_THRESHOLDS.fallback_confidence
        logger.warning("Using degraded math-only recognition for the whole page")
        return MathBlock(
            bbox=BoundingBox(0, 0, size, size),
            recognized_text=text,
            confidence=confidence,
            math_likeness=1.0,
            math_expression_text=text,
            math_confidence=recognition.confidence,
        )
