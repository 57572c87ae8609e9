"""
Module: boxes

Purpose:
    Provides the BoundingBox dataclass - an axis-aligned pixel rectangle
    on a submission image. Used for recognition fragments, clusters,
    math blocks and annotation positions.

Key Functions:
    - BoundingBox.intersects(other): Strict area intersection
    - BoundingBox.union(other): Minimal rectangle covering both boxes
    - BoundingBox.from_vertices(points): Build from a recognizer polygon
    - BoundingBox.scaled(factor): Map coordinates back from a resized pass
    - BoundingBox.signature: Stable string used for request deduplication
    - BoundingBox.to_dict() / from_dict(): Serialization

Dependencies:
    - dataclasses (std)
    - math (std)

Used By:
    - core.models.fragments: DetectedFragment, Cluster
    - core.models.math_blocks: MathBlock
    - ocr.clustering: Overlap merging
    - ocr.math_regions: Crop options
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """
    Axis-aligned rectangle in image pixels.

    The region is [min_x, min_x + width) x [min_y, min_y + height).

    Attributes:
        min_x: Left edge
        min_y: Top edge
        width: Width in pixels
        height: Height in pixels

    Invariants:
        - width >= 0
        - height >= 0

    Example:
        >>> a = BoundingBox(0, 0, 10, 10)
        >>> b = BoundingBox(5, 5, 10, 10)
        >>> a.intersects(b)
        True
        >>> a.union(b)
        BoundingBox(0, 0, 15, 15)
    """

    min_x: float
    min_y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        """Validate dimensions on construction."""
        if self.width < 0:
            raise ValueError(f"width must be >= 0: {self.width}")
        if self.height < 0:
            raise ValueError(f"height must be >= 0: {self.height}")

    # ─────────────────────────────────────────────────────────────────────────
    # Factory Methods
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def from_edges(cls, min_x: float, min_y: float, max_x: float, max_y: float) -> BoundingBox:
        """Create from left/top/right/bottom edges."""
        return cls(min_x, min_y, max(0.0, max_x - min_x), max(0.0, max_y - min_y))

    @classmethod
    def from_vertices(cls, vertices: Iterable[Tuple[float, float]]) -> BoundingBox:
        """
        Create the bounding rectangle of a polygon.

        Args:
            vertices: (x, y) points; recognizers often return 4 corners

        Raises:
            ValueError: If no vertices are given
        """
        points = list(vertices)
        if not points:
            raise ValueError("Cannot build a bounding box from zero vertices")
        xs = [float(p[0]) for p in points]
        ys = [float(p[1]) for p in points]
        return cls.from_edges(min(xs), min(ys), max(xs), max(ys))

    @classmethod
    def union_of(cls, boxes: Sequence[BoundingBox]) -> BoundingBox:
        """Minimal rectangle covering every box in the sequence."""
        if not boxes:
            raise ValueError("Cannot take the union of zero boxes")
        return cls.from_edges(
            min(b.min_x for b in boxes),
            min(b.min_y for b in boxes),
            max(b.max_x for b in boxes),
            max(b.max_y for b in boxes),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Properties
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def max_x(self) -> float:
        """Right edge (exclusive)."""
        return self.min_x + self.width

    @property
    def max_y(self) -> float:
        """Bottom edge (exclusive)."""
        return self.min_y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        """Centre point used for density clustering."""
        return (self.min_x + self.width / 2.0, self.min_y + self.height / 2.0)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_valid(self) -> bool:
        """True when every coordinate is finite and the box has area."""
        values = (self.min_x, self.min_y, self.width, self.height)
        return all(math.isfinite(v) for v in values) and self.width > 0 and self.height > 0

    @property
    def signature(self) -> str:
        """Deduplication key: "left-top-width-height" of the integer crop."""
        left, top, width, height = self.crop_tuple()
        return f"{left}-{top}-{width}-{height}"

    # ─────────────────────────────────────────────────────────────────────────
    # Query Methods
    # ─────────────────────────────────────────────────────────────────────────

    def intersects(self, other: BoundingBox) -> bool:
        """
        Check whether two boxes share area.

        Boxes that only touch along an edge do NOT intersect.
        """
        return (
            self.min_x < other.max_x
            and self.max_x > other.min_x
            and self.min_y < other.max_y
            and self.max_y > other.min_y
        )

    def vertical_overlap(self, other: BoundingBox) -> float:
        """Height of the shared vertical band (0 when disjoint)."""
        return max(0.0, min(self.max_y, other.max_y) - max(self.min_y, other.min_y))

    def union(self, other: BoundingBox) -> BoundingBox:
        """Minimal rectangle covering both boxes."""
        return BoundingBox.union_of([self, other])

    def scaled(self, factor: float) -> BoundingBox:
        """Divide every coordinate by factor (maps a resized pass back)."""
        if factor <= 0:
            raise ValueError(f"scale factor must be > 0: {factor}")
        return BoundingBox(
            self.min_x / factor,
            self.min_y / factor,
            self.width / factor,
            self.height / factor,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Image Operations
    # ─────────────────────────────────────────────────────────────────────────

    def crop_tuple(self) -> Tuple[int, int, int, int]:
        """
        Integer crop options as (left, top, width, height).

        Values are floored; left/top are at least 0 and width/height at
        least 1 so a crop is never empty.
        """
        left = max(0, int(math.floor(self.min_x)))
        top = max(0, int(math.floor(self.min_y)))
        width = max(1, int(math.floor(self.width)))
        height = max(1, int(math.floor(self.height)))
        return (left, top, width, height)

    def pil_box(self) -> Tuple[int, int, int, int]:
        """Crop options as a (left, top, right, bottom) tuple for PIL."""
        left, top, width, height = self.crop_tuple()
        return (left, top, left + width, top + height)

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """Serialize with the camelCase keys used by the output contract."""
        return {
            "x": self.min_x,
            "y": self.min_y,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict) -> BoundingBox:
        """
        Deserialize from {"x","y","width","height"} or a [x, y, w, h] list.

        Raises:
            ValueError: If the payload has neither shape
        """
        if isinstance(data, (list, tuple)) and len(data) == 4:
            return cls(*(float(v) for v in data))
        if isinstance(data, dict):
            return cls(
                float(data.get("x", data.get("minX", 0.0))),
                float(data.get("y", data.get("minY", 0.0))),
                float(data.get("width", 0.0)),
                float(data.get("height", 0.0)),
            )
        raise ValueError(f"Unsupported bounding box payload: {data!r}")

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        def fmt(v: float) -> str:
            return str(int(v)) if float(v).is_integer() else f"{v:.1f}"
        return (
            f"BoundingBox({fmt(self.min_x)}, {fmt(self.min_y)}, "
            f"{fmt(self.width)}, {fmt(self.height)})"
        )
