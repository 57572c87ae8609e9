"""
Module: results.drawings

Purpose:
    Shrinks oversized visual markers placed on drawings and, when several
    sub-questions share one drawing region, stacks them vertically so
    they do not overlap.

Key Functions:
    - fix_oversized_drawings(): Resize VISUAL annotations in place

Used By:
    - results.parser
"""

from __future__ import annotations

import logging
from typing import Sequence

from gcse_marker.common.thresholds import SCORING_THRESHOLDS
from gcse_marker.core.models import Annotation

logger = logging.getLogger(__name__)

VISUAL = "VISUAL"


def fix_oversized_drawings(annotations: Sequence[Annotation]) -> int:
    """
    Normalise visual marker boxes whose width or height is too large.

    With one sub-question the box becomes a fixed size; with n
    sub-questions it becomes span/n and its y is set by the sub-question's
    sorted position.

    Returns:
        Number of annotations resized
    """
    thresholds = SCORING_THRESHOLDS
    sub_questions = sorted({a.sub_question for a in annotations if a.sub_question})
    count = len(sub_questions) or 1
    size = thresholds.single_drawing_size if count == 1 else thresholds.shared_drawing_span / count

    resized = 0
    for annotation in annotations:
        position = annotation.visual_position
        if annotation.match_status != VISUAL or position is None:
            continue
        if position.width < thresholds.oversized_drawing_px and position.height < thresholds.oversized_drawing_px:
            continue
        position.width = size
        position.height = size
        if count > 1 and annotation.sub_question in sub_questions:
            idx = sub_questions.index(annotation.sub_question)
            position.y = thresholds.shared_drawing_top + idx * (thresholds.shared_drawing_span / count)
        resized += 1

    if resized:
        logger.debug(f"Resized {resized} oversized drawing markers to {size:.1f}")
    return resized
