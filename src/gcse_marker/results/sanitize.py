"""
Module: results.sanitize

Purpose:
    Cleans marking model annotations before scoring: text cleanup,
    zero-code deduplication, synthetic ids for marks that would otherwise
    be merged away, merging of repeated annotations, and page correction
    from a trusted sub-question -> page mapping.

Key Functions:
    - sanitize_annotation(): Field cleanup for one annotation
    - dedupe_zero_codes(): "M0 M0 A1 A1" -> "M0 A1 A1"
    - assign_ghost_ids(): ghost_{question}_{n} ids for id-less/unmatched marks
    - merge_redundant(): One annotation per (line id, action)
    - reconcile_pages(): Move annotations to their sub-question's page

Used By:
    - results.parser
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from gcse_marker.core.models import Annotation

logger = logging.getLogger(__name__)

NULL_LITERAL = "null"
UNMATCHED = "UNMATCHED"
GHOST_PREFIX = "ghost"

LINE_ID_PART_PATTERN = re.compile(r"line_\d+([a-z]+)", re.IGNORECASE)
REASONING_PART_PATTERN = re.compile(r"\[(\d*[a-z]+)\]", re.IGNORECASE)
SUB_QUESTION_NOISE_PATTERN = re.compile(r"^\d+[\s()]*|[\s()]+")
WHITESPACE_PATTERN = re.compile(r"\s+")
ZERO_CODE_PATTERN = re.compile(r"^[A-Z]*0$", re.IGNORECASE)


def clean_student_text(text: str) -> str:
    """Drop table separators and stray backslashes from transcribed work."""
    if not text:
        return ""
    cleaned = text.replace("&", " ").replace("\\", "")
    return WHITESPACE_PATTERN.sub(" ", cleaned).strip()


def is_zero_code(code: str) -> bool:
    """A code worth nothing ("M0", "B0", "0"); "A10" is worth ten."""
    return bool(ZERO_CODE_PATTERN.match(code))


def dedupe_zero_codes(text: str) -> str:
    """
    Keep only the first occurrence of each zero-value code.

    Examples:
        >>> dedupe_zero_codes("M0 M0 A1 A1")
        'M0 A1 A1'
        >>> dedupe_zero_codes("A10 A10")
        'A10 A10'
    """
    if not text or not text.strip():
        return ""
    kept: List[str] = []
    seen_zero: set = set()
    for code in text.split():
        if is_zero_code(code):
            if code in seen_zero:
                continue
            seen_zero.add(code)
        kept.append(code)
    return " ".join(kept)


def sanitize_annotation(annotation: Annotation) -> Annotation:
    """Clean one annotation in place and return it."""
    annotation.student_text = clean_student_text(annotation.student_text)
    if annotation.action == NULL_LITERAL:
        annotation.action = ""
    if annotation.text == NULL_LITERAL:
        annotation.text = ""
    annotation.text = dedupe_zero_codes(annotation.text)
    return annotation


def assign_ghost_ids(annotations: Sequence[Annotation], question_number: str) -> int:
    """
    Give id-less and unmatched annotations unique synthetic ids.

    An unmatched annotation keeps its model id under extra["original_line_id"].

    Returns:
        Number of ids assigned
    """
    count = 0
    for annotation in annotations:
        if annotation.line_id and annotation.match_status != UNMATCHED:
            continue
        if annotation.line_id:
            annotation.extra["original_line_id"] = annotation.line_id
        annotation.line_id = f"{GHOST_PREFIX}_{question_number}_{count}"
        annotation.is_ghost = True
        count += 1
    if count:
        logger.debug(f"Q{question_number}: assigned {count} ghost ids")
    return count


def merge_redundant(annotations: Sequence[Annotation]) -> List[Annotation]:
    """
    Merge annotations sharing a line id and action.

    Codes become the ordered union of both texts; distinct reasoning is
    appended with " | ". Ghost annotations are never merged.
    """
    merged: List[Annotation] = []
    seen: Dict[str, Annotation] = {}
    for annotation in annotations:
        if annotation.is_ghost:
            merged.append(annotation)
            continue
        key = f"{annotation.line_id}_{annotation.action}"
        existing = seen.get(key)
        if existing is None:
            seen[key] = annotation
            merged.append(annotation)
            continue
        existing.text = " ".join(dict.fromkeys(existing.codes() + annotation.codes()))
        if annotation.reasoning and annotation.reasoning not in existing.reasoning:
            existing.reasoning = (
                f"{existing.reasoning} | {annotation.reasoning}" if existing.reasoning else annotation.reasoning
            )
    if len(merged) < len(annotations):
        logger.debug(f"Merged {len(annotations) - len(merged)} redundant annotations")
    return merged


def normalize_sub_question_key(label: str) -> str:
    """
    Sub-question key used for page lookups.

    Examples:
        >>> normalize_sub_question_key("2(a)")
        'a'
        >>> normalize_sub_question_key(" (ii) ")
        'ii'
    """
    return SUB_QUESTION_NOISE_PATTERN.sub("", label or "").lower()


def sub_question_of(annotation: Annotation) -> Optional[str]:
    """Sub-question from the field, the line id ("line_3b") or a "[2b]" tag in the reasoning."""
    if annotation.sub_question:
        return annotation.sub_question
    if annotation.line_id:
        match = LINE_ID_PART_PATTERN.search(annotation.line_id)
        if match:
            return match.group(1)
    if annotation.reasoning:
        match = REASONING_PART_PATTERN.search(annotation.reasoning)
        if match:
            return match.group(1)
    return None


def reconcile_pages(
    annotations: Sequence[Annotation],
    sub_question_pages: Dict[str, List[int]],
) -> int:
    """
    Move annotations onto a page their sub-question is known to be on.

    Returns:
        Number of annotations whose page was corrected
    """
    if not sub_question_pages:
        return 0
    pages = {normalize_sub_question_key(k): list(v) for k, v in sub_question_pages.items() if v}
    corrected = 0
    for annotation in annotations:
        label = sub_question_of(annotation)
        if not label:
            continue
        allowed = pages.get(normalize_sub_question_key(label))
        if not allowed or annotation.page_index in allowed:
            continue
        logger.debug(
            f"Moving annotation {annotation.line_id or '?'} ({label}) "
            f"from page {annotation.page_index} to {allowed[0]}"
        )
        annotation.page_index = allowed[0]
        corrected += 1
    return corrected
