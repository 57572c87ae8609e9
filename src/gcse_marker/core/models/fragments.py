"""
Module: fragments

Purpose:
    Recognition output models. A DetectedFragment is one text detection
    from one recognition pass; a Cluster is a set of fragments merged by
    spatial density and overlap.

Key Classes:
    - DetectedFragment: Single recognised text fragment
    - Cluster: Merged fragment set with union box and reading-order text

Key Functions:
    - reading_order_key(): Sort key (top, left) used for cluster text

Dependencies:
    - dataclasses (std)
    - core.models.boxes: BoundingBox

Used By:
    - ocr.orchestrator: Produces fragments
    - ocr.clustering: Produces clusters
    - ocr.math_regions: Consumes clusters
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .boxes import BoundingBox


def reading_order_key(fragment: DetectedFragment) -> Tuple[float, float]:
    """Top-to-bottom, then left-to-right."""
    return (fragment.bbox.min_y, fragment.bbox.min_x)


@dataclass(frozen=True, slots=True)
class DetectedFragment:
    """
    One text detection from one recognition pass.

    Attributes:
        source_pass: Name of the pass that produced it ("clean", ...)
        text: Recognised text
        confidence: Recognizer confidence in [0, 1], or None if not reported
        bbox: Position in original image pixels

    Example:
        >>> f = DetectedFragment("clean", "x = 2", 0.95, BoundingBox(10, 10, 40, 12))
        >>> f.bbox.center
        (30.0, 16.0)
    """

    source_pass: str
    text: str
    confidence: Optional[float]
    bbox: BoundingBox

    def __post_init__(self) -> None:
        if self.confidence is not None and not (0.0 <= self.confidence <= 1.0):
            raise ValueError(f"confidence must be in [0, 1]: {self.confidence}")

    def to_dict(self) -> dict:
        return {
            "source_pass": self.source_pass,
            "text": self.text,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class Cluster:
    """
    Merged group of spatially adjacent fragments.

    Always build through from_fragments() so the derived fields stay
    consistent with the members.

    Attributes:
        index: 1-based position after the final merge pass
        fragments: Member fragments in reading order
        bbox: Minimal rectangle covering every member
        text: Member texts joined by single spaces in reading order
        confidence: Mean of reported member confidences, or None

    Invariants:
        - fragments is non-empty
        - bbox == union of member boxes
    """

    index: int
    fragments: Tuple[DetectedFragment, ...]
    bbox: BoundingBox
    text: str
    confidence: Optional[float]

    def __post_init__(self) -> None:
        if not self.fragments:
            raise ValueError("Cluster must contain at least one fragment")

    @classmethod
    def from_fragments(cls, index: int, fragments: Iterable[DetectedFragment]) -> Cluster:
        """
        Build a cluster from member fragments.

        Args:
            index: Cluster index
            fragments: Members in any order

        Returns:
            Cluster with union box, reading-order text and mean confidence
        """
        members = tuple(sorted(fragments, key=reading_order_key))
        if not members:
            raise ValueError("Cluster must contain at least one fragment")

        bbox = BoundingBox.union_of([f.bbox for f in members])
        text = " ".join(f.text.strip() for f in members if f.text and f.text.strip())
        reported = [f.confidence for f in members if f.confidence is not None]
        confidence = sum(reported) / len(reported) if reported else None
        return cls(index=index, fragments=members, bbox=bbox, text=text, confidence=confidence)

    def merged_with(self, other: Cluster, index: Optional[int] = None) -> Cluster:
        """Combine two clusters; text is re-sorted over all members."""
        return Cluster.from_fragments(
            self.index if index is None else index,
            self.fragments + other.fragments,
        )

    def reindexed(self, index: int) -> Cluster:
        return Cluster(index, self.fragments, self.bbox, self.text, self.confidence)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "text": self.text,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict(),
            "fragment_count": len(self.fragments),
        }

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return f"Cluster({self.index}, {len(self.fragments)} fragments, {self.text[:30]!r})"
