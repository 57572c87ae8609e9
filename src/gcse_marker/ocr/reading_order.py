"""
Module: ocr.reading_order

Purpose:
    Orders recognised regions the way a marker reads a page and builds
    the plain-text transcript of student work.

Key Functions:
    - same_line(): Two boxes share a line when their vertical overlap is
      a large enough share of either height
    - sort_reading_order(): Line-aware ordering of blocks
    - group_lines(): Bucket fragments into text lines by Y tolerance
    - transcript(): Newline-joined text of ordered blocks

Dependencies:
    - functools.cmp_to_key (std)

Used By:
    - ocr.orchestrator: Orders final math blocks
    - pipeline: Student work transcript for the marking model
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, List, Sequence

from gcse_marker.common.thresholds import RECOGNITION_THRESHOLDS
from gcse_marker.core.models import BoundingBox, DetectedFragment, MathBlock


def same_line(a: BoundingBox, b: BoundingBox, ratio: float | None = None) -> bool:
    """True when a and b overlap vertically by at least ratio of either height."""
    ratio = RECOGNITION_THRESHOLDS.same_line_overlap_ratio if ratio is None else ratio
    overlap = a.vertical_overlap(b)
    if overlap <= 0:
        return False
    return (a.height > 0 and overlap >= ratio * a.height) or (
        b.height > 0 and overlap >= ratio * b.height
    )


def _compare(a: MathBlock, b: MathBlock) -> int:
    if same_line(a.bbox, b.bbox):
        diff = a.bbox.min_x - b.bbox.min_x
    else:
        diff = a.bbox.min_y - b.bbox.min_y
    return (diff > 0) - (diff < 0)


def sort_reading_order(blocks: Iterable[MathBlock]) -> List[MathBlock]:
    """
    Sort blocks top-to-bottom, left-to-right within a line.

    Blocks are first ordered by top edge so the pairwise line test is
    applied between neighbours.
    """
    by_top = sorted(blocks, key=lambda b: (b.bbox.min_y, b.bbox.min_x))
    return sorted(by_top, key=cmp_to_key(_compare))


def group_lines(
    fragments: Sequence[DetectedFragment],
    y_tolerance: float | None = None,
) -> List[List[DetectedFragment]]:
    """
    Group fragments into lines.

    A fragment joins the current line when its top edge is within
    y_tolerance of the line's first fragment; lines are sorted by x.
    """
    tolerance = RECOGNITION_THRESHOLDS.line_y_tolerance_px if y_tolerance is None else y_tolerance
    lines: List[List[DetectedFragment]] = []
    for fragment in sorted(fragments, key=lambda f: (f.bbox.min_y, f.bbox.min_x)):
        if lines and abs(fragment.bbox.min_y - lines[-1][0].bbox.min_y) <= tolerance:
            lines[-1].append(fragment)
        else:
            lines.append([fragment])
    return [sorted(line, key=lambda f: f.bbox.min_x) for line in lines]


def transcript(blocks: Iterable[MathBlock]) -> str:
    """Student work as one line per block, in reading order."""
    lines = [b.best_text.strip() for b in sort_reading_order(blocks)]
    return "\n".join(line for line in lines if line)
