"""Common utilities shared across the marking pipeline."""

from __future__ import annotations

from .text import (
    base_question_number,
    sub_question_part,
    normalize_sub_question_part,
    normalize_label,
    is_sub_question,
    short_subject_name,
)

__all__ = [
    # text
    "base_question_number",
    "sub_question_part",
    "normalize_sub_question_part",
    "normalize_label",
    "is_sub_question",
    "short_subject_name",
    # modules
    "thresholds",
]
