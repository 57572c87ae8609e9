"""
Module: ocr.math_regions

Purpose:
    Decides which clusters are mathematical work and re-reads them with
    the specialised math recognizer, skipping calls that would not add
    anything.

Key Classes:
    - MathRegionDetector: detect() clusters -> MathBlocks, refine() them,
      work_blocks() adds the non-math clusters back as plain text
    - MathRefinementReport: Counts of calls, skips and fallbacks

Triage Rules:
    1. Blocks are processed suspicious-first, then by math-likeness
    2. Identical crop regions are requested once
    3. Blocks with unusable coordinates are skipped
    4. Primary confidence >= high_confidence_skip reuses the primary text
    5. A failed or empty math call keeps the primary text

Dependencies:
    - asyncio (std): Delay between sequential calls
    - PIL (Pillow): Cropping via ocr.preprocessing

Used By:
    - ocr.orchestrator
    - pipeline
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from gcse_marker.collaborators import MathRecognizer
from gcse_marker.config import MathDetectionConfig
from gcse_marker.core.models import BoundingBox, Cluster, MathBlock
from gcse_marker.diagnostics import DiagnosticsCollector

from .math_scoring import is_suspicious, score_math_likeness
from .preprocessing import crop_region, load_image

logger = logging.getLogger(__name__)


@dataclass
class MathRefinementReport:
    """
    What refine() did for one submission.

    Attributes:
        requested: Math recognizer calls made
        skipped_confident: Blocks that reused primary text by triage
        deduplicated: Blocks that shared another block's crop result
        invalid: Blocks skipped for unusable coordinates
        failed: Calls that raised or returned nothing
    """
    requested: int = 0
    skipped_confident: int = 0
    deduplicated: int = 0
    invalid: int = 0
    failed: int = 0
    warnings: List[str] = field(default_factory=list)


def crop_options(bbox: BoundingBox) -> Dict[str, int]:
    """Integer crop options: floored, left/top >= 0, width/height >= 1."""
    left, top, width, height = bbox.crop_tuple()
    return {"left": left, "top": top, "width": width, "height": height}


def processing_order(blocks: Sequence[MathBlock]) -> List[MathBlock]:
    """Suspicious blocks first, then by descending math-likeness."""
    return sorted(blocks, key=lambda b: (not b.suspicious, -b.math_likeness))


def block_from_cluster(cluster: Cluster, overall_confidence: Optional[float] = None) -> MathBlock:
    """
    MathBlock carrying a cluster's text and box.

    Confidence falls back to the page-level confidence, then to the
    math-likeness score.
    """
    score = score_math_likeness(cluster.text)
    if cluster.confidence is not None:
        confidence = cluster.confidence
    elif overall_confidence is not None:
        confidence = overall_confidence
    else:
        confidence = score
    return MathBlock(
        bbox=cluster.bbox,
        recognized_text=cluster.text,
        confidence=confidence,
        math_likeness=score,
        suspicious=is_suspicious(cluster.text),
        source_cluster_index=cluster.index,
    )


class MathRegionDetector:
    """
    Detects and refines math regions.

    Stateless apart from configuration and injected collaborators.

    Example:
        >>> detector = MathRegionDetector(math_recognizer, MathDetectionConfig())
        >>> blocks = detector.detect(clusters)
        >>> report = await detector.refine(image_bytes, blocks)
    """

    def __init__(
        self,
        math_recognizer: Optional[MathRecognizer] = None,
        config: MathDetectionConfig | None = None,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        self.math_recognizer = math_recognizer
        self.config = config or MathDetectionConfig()
        self.diagnostics = diagnostics

    # ─────────────────────────────────────────────────────────────────────────
    # Detection
    # ─────────────────────────────────────────────────────────────────────────

    def detect(
        self,
        clusters: Sequence[Cluster],
        threshold: Optional[float] = None,
        overall_confidence: Optional[float] = None,
    ) -> List[MathBlock]:
        """
        Turn clusters that look mathematical into MathBlocks.

        Args:
            clusters: Clusters from BlockClusterer
            threshold: Minimum math-likeness (defaults to config.threshold)
            overall_confidence: Page-level confidence used when a cluster
                has none

        Returns:
            Blocks in cluster order
        """
        limit = self.config.threshold if threshold is None else threshold
        blocks: List[MathBlock] = []
        for cluster in clusters:
            block = block_from_cluster(cluster, overall_confidence)
            if block.math_likeness >= limit:
                blocks.append(block)
        logger.debug(f"Detected {len(blocks)} math blocks from {len(clusters)} clusters (threshold {limit})")
        return blocks

    def work_blocks(
        self,
        clusters: Sequence[Cluster],
        math_blocks: Sequence[MathBlock],
        overall_confidence: Optional[float] = None,
    ) -> List[MathBlock]:
        """
        Every cluster as student work: detected math blocks as given,
        the remaining clusters as plain-text blocks that are never sent
        to the math recognizer.
        """
        detected = {b.source_cluster_index for b in math_blocks}
        plain = [
            block_from_cluster(c, overall_confidence) for c in clusters if c.index not in detected
        ]
        return list(math_blocks) + plain

    # ─────────────────────────────────────────────────────────────────────────
    # Refinement
    # ─────────────────────────────────────────────────────────────────────────

    async def refine(
        self,
        image_bytes: bytes,
        blocks: Sequence[MathBlock],
        submission_id: str = "",
    ) -> MathRefinementReport:
        """
        Re-read blocks with the math recognizer, in place.

        Calls are sequential with config.request_delay_s between them.
        recognized_text is never modified, so a block never loses the
        primary text whatever happens to its math call.

        Args:
            image_bytes: Original page image
            blocks: Blocks from detect(); mutated in place
            submission_id: Used to tag diagnostics

        Returns:
            MathRefinementReport
        """
        report = MathRefinementReport()
        if not blocks:
            return report

        image = load_image(image_bytes)
        results_by_signature: Dict[str, Optional[str]] = {}
        pending: List[MathBlock] = []

        for block in processing_order(blocks):
            if not block.bbox.is_valid:
                report.invalid += 1
                logger.debug(f"Skipping block {block.source_cluster_index}: invalid coordinates {block.bbox}")
                continue
            if block.confidence is not None and block.confidence >= self.config.high_confidence_skip:
                block.skipped_by_triage = True
                report.skipped_confident += 1
                continue
            pending.append(block)

        if pending and self.math_recognizer is None:
            logger.debug("No math recognizer configured; keeping primary text for all blocks")
            return report

        first_call = True
        for block in pending:
            signature = block.bbox.signature
            if signature in results_by_signature:
                report.deduplicated += 1
                cached = results_by_signature[signature]
                if cached:
                    block.math_expression_text = cached
                continue

            if not first_call and self.config.request_delay_s > 0:
                await asyncio.sleep(self.config.request_delay_s)
            first_call = False

            report.requested += 1
            text = await self._recognize_block(image, block, report, submission_id)
            results_by_signature[signature] = text
            if text:
                block.math_expression_text = text

        logger.info(
            f"Math refinement: {report.requested} calls, {report.skipped_confident} confident skips, "
            f"{report.deduplicated} duplicates, {report.failed} failures"
        )
        return report

    async def _recognize_block(
        self,
        image,
        block: MathBlock,
        report: MathRefinementReport,
        submission_id: str,
    ) -> Optional[str]:
        signature = block.bbox.signature
        try:
            crop = crop_region(image, block.bbox)
            result = await self.math_recognizer.recognize(crop)  # type: ignore[union-attr]
        except Exception as e:
            report.failed += 1
            msg = f"Math recognizer failed for block {signature}: {e}"
            logger.warning(msg, extra={"block": signature})
            report.warnings.append(msg)
            if self.diagnostics is not None:
                self.diagnostics.add_math_call_failure(signature, str(e), submission_id)
            return None

        text = (result.text or "").strip() if result is not None else ""
        if not text:
            report.failed += 1
            logger.debug(f"Math recognizer returned no text for block {signature}; keeping primary text")
            return None

        block.math_confidence = result.confidence
        return text
