"""
Module: results.scoring

Purpose:
    Authoritative score recomputation. The model's own score is never
    trusted: marks are counted from the surviving annotations, capped by
    what the scheme allows, and clamped to a total chosen by precedence.

Key Functions:
    - enforce_mark_limits(): Drop codes used more often than the scheme allows
    - enforce_strict_budget(): Trim annotations past a sub-question's maximum
    - count_awarded_marks(): Sum the marks of awarding annotations
    - resolve_budget(): Pick the authoritative total
    - parse_score(): Read a score the model reported ("7/10", 7, {...})

Counting Rules (per awarding annotation):
    1. Text that looks like LaTeX/maths counts once ("\\sqrt{27}" is 1, not 27)
    2. Code tokens "[BMAPC]n" add n; zero codes add nothing
    3. Bare positive integers add 1
    4. Other affirmative text adds 1

Dependencies:
    - common.thresholds: SCORING_THRESHOLDS

Used By:
    - results.parser
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gcse_marker.common.thresholds import SCORING_THRESHOLDS
from gcse_marker.core.models import Annotation, NormalizedScheme

from .sanitize import is_zero_code, normalize_sub_question_key

logger = logging.getLogger(__name__)

AWARDING_ACTIONS = ("tick", "mark")
MAIN_BUCKET = "main"

TOKEN_SEPARATOR_PATTERN = re.compile(r"[\s,|+]+")
NON_ALNUM_PATTERN = re.compile(r"[^a-zA-Z0-9]")
AWARD_CODE_PATTERN = re.compile(r"^[BMAPC][1-9]$", re.IGNORECASE)
VALUED_CODE_PATTERN = re.compile(r"^[BMAPC](\d+)$", re.IGNORECASE)
ATOMIC_MATH_PATTERN = re.compile(r"[\\{}=\^_()]")
LETTER_VALUE_PATTERN = re.compile(r"[A-Z]+(\d+)", re.IGNORECASE)
NON_DIGIT_PATTERN = re.compile(r"\D")


def _tokens(text: str) -> List[str]:
    return [t for t in TOKEN_SEPARATOR_PATTERN.split(text.strip()) if t]


def _code_of(token: str) -> str:
    """Leading alphanumeric run of a token ("M1," -> "M1", "A1(ft)" -> "A1")."""
    return NON_ALNUM_PATTERN.split(token, maxsplit=1)[0]


def is_awarding(annotation: Annotation) -> bool:
    """Tick/mark actions, or an action that is itself a positive code."""
    action = (annotation.action or "").strip().lower()
    return action in AWARDING_ACTIONS or bool(AWARD_CODE_PATTERN.match(action))


def is_atomic_math(text: str) -> bool:
    """
    True for text that is a mathematical expression rather than mark codes.

    Text carrying any mark code token ("A1(ft)", "B1 (oe)") is never
    atomic; its qualifiers are not maths.

    Examples:
        >>> is_atomic_math("\\\\sqrt{27}")
        True
        >>> is_atomic_math("M1 A1")
        False
        >>> is_atomic_math("M1 A1(ft)")
        False
    """
    if any(VALUED_CODE_PATTERN.match(_code_of(token)) for token in _tokens(text)):
        return False
    return bool(ATOMIC_MATH_PATTERN.search(text)) or "sqrt" in text or "frac" in text


def annotation_value(text: str) -> int:
    """
    Marks carried by one awarding annotation's text.

    Examples:
        >>> annotation_value("M1 A2")
        3
        >>> annotation_value("M0")
        0
        >>> annotation_value("27")
        1
        >>> annotation_value("correct method")
        1
    """
    text = (text or "").strip()
    if not text:
        return 0
    if is_atomic_math(text):
        return 1

    total = 0
    structured = False
    for token in _tokens(text):
        code = _code_of(token)
        valued = VALUED_CODE_PATTERN.match(code)
        if valued:
            structured = True
            total += int(valued.group(1))
        elif code.isdigit():
            structured = True
            if int(code) > 0:
                total += 1
    return total if structured else 1


def count_awarded_marks(annotations: Sequence[Annotation]) -> int:
    """Sum of annotation_value() over awarding annotations."""
    return sum(annotation_value(a.text) for a in annotations if is_awarding(a))


# ─────────────────────────────────────────────────────────────────────────────
# Scheme limits
# ─────────────────────────────────────────────────────────────────────────────


def _limit_map(scheme: NormalizedScheme) -> Tuple[Dict[str, int], int]:
    """Allowed uses per code and the floating pool from bare numeric codes."""
    limits: Dict[str, int] = {}
    pool = 0
    for mark in scheme.all_marks():
        code = mark.code.upper()
        if not code:
            continue
        limits[code] = limits.get(code, 0) + 1
        if scheme.is_generic:
            limits[code] = SCORING_THRESHOLDS.unlimited_code_count
        if mark.is_numeric:
            pool += int(code)
    return limits, pool


def enforce_mark_limits(
    annotations: Sequence[Annotation],
    scheme: NormalizedScheme,
) -> List[Annotation]:
    """
    Drop code tokens used more often than the scheme lists them.

    Listed codes may be used once per listing (generic rubrics: without
    limit). Zero codes not in the scheme are unlimited; other unlisted
    codes are not allowed. A positive code past its limit can still be
    paid for from the pool of bare numeric scheme marks ("2" allows two
    extra single marks). Annotations left with no tokens are removed.
    """
    limits, pool = _limit_map(scheme)
    usage: Dict[str, int] = {}
    kept: List[Annotation] = []
    dropped_tokens = 0

    for annotation in annotations:
        valid: List[str] = []
        for token in _tokens(annotation.text or ""):
            code = _code_of(token).upper()
            count = usage.get(code, 0)
            limit = limits.get(code) or (
                SCORING_THRESHOLDS.unlimited_code_count if is_zero_code(code) else 0
            )
            if count < limit:
                valid.append(token)
                usage[code] = count + 1
            elif AWARD_CODE_PATTERN.match(code) and pool >= int(code[1:]):
                valid.append(token)
                pool -= int(code[1:])
            else:
                dropped_tokens += 1
        if valid:
            annotation.text = " ".join(valid)
            kept.append(annotation)

    if dropped_tokens:
        logger.info(
            f"Q{scheme.question_number}: removed {dropped_tokens} codes over the scheme limit",
            extra={"question_number": scheme.question_number},
        )
    return kept


def _budget_value(text: str) -> int:
    match = LETTER_VALUE_PATTERN.search(text)
    if match:
        return int(match.group(1))
    digits = NON_DIGIT_PATTERN.sub("", text)
    return int(digits) if digits else 0


def enforce_strict_budget(
    annotations: Sequence[Annotation],
    scheme: Optional[NormalizedScheme],
) -> List[Annotation]:
    """
    Trim awarding annotations that would push a sub-question past its maximum.

    Annotations are bucketed by sub-question ("main" without one). The
    budget is the scheme's maximum for that sub-question, else the scheme
    total when there is only one bucket, else unlimited. Annotations are
    kept in order while the running value stays within the budget.
    """
    buckets: Dict[str, List[Annotation]] = {}
    for annotation in annotations:
        key = normalize_sub_question_key(annotation.sub_question) or MAIN_BUCKET
        buckets.setdefault(key, []).append(annotation)

    survivors: List[Annotation] = []
    for key, members in buckets.items():
        budget = SCORING_THRESHOLDS.unknown_budget_ceiling
        if scheme is not None:
            part_max = scheme.max_for_sub_question(key)
            if part_max:
                budget = part_max
            elif len(buckets) == 1 and scheme.total_marks:
                budget = scheme.total_marks

        running = 0
        for annotation in members:
            if not is_awarding(annotation):
                survivors.append(annotation)
                continue
            value = _budget_value(annotation.text or "")
            if running + value <= budget:
                survivors.append(annotation)
                running += value
            else:
                logger.debug(f"Sub-question {key}: cut '{annotation.text}' to stay within {budget}")

    # Bucket iteration regroups annotations; restore the input order
    order = {id(a): i for i, a in enumerate(annotations)}
    return sorted(survivors, key=lambda a: order[id(a)])


# ─────────────────────────────────────────────────────────────────────────────
# Totals
# ─────────────────────────────────────────────────────────────────────────────


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def resolve_budget(meta: Optional[Dict[str, Any]], system_max: float) -> float:
    """
    Choose the authoritative total marks.

    The model's total wins when it is not flagged as an estimate, or when
    the scheme total is one of the generic defaults (0/20/40/100). Otherwise
    the scheme total wins, and the model's estimate is the last resort.

    Examples:
        >>> resolve_budget({"question_total_marks": 6, "isTotalEstimated": True}, 5)
        5
        >>> resolve_budget({"question_total_marks": 6, "isTotalEstimated": True}, 40)
        6.0
    """
    meta = meta or {}
    estimated_flag = meta.get("isTotalEstimated")
    is_estimated = estimated_flag is True or str(estimated_flag).lower() == "true"
    model_total = _as_number(meta.get("question_total_marks"))
    is_default = system_max in SCORING_THRESHOLDS.generic_total_defaults

    if model_total > 0 and (not is_estimated or is_default):
        return model_total
    if system_max > 0 and not is_default:
        return system_max
    return model_total or 0


def parse_score(value: Any) -> Tuple[float, float]:
    """
    Read a self-reported score as (awarded, total).

    Examples:
        >>> parse_score("7/10")
        (7.0, 10.0)
        >>> parse_score({"awardedMarks": 3, "totalMarks": 4})
        (3.0, 4.0)
        >>> parse_score(5)
        (5.0, 0.0)
    """
    if not value:
        return 0.0, 0.0

    if isinstance(value, dict):
        awarded = _as_number(value.get("awardedMarks"))
        total = _as_number(value.get("totalMarks"))
        if total > 0:
            return awarded, total
        text = str(value.get("scoreText") or value.get("awardedMarks") or "0")
    else:
        text = str(value)

    if "/" in text:
        awarded_text, total_text = text.split("/", 1)
        return _as_number(awarded_text.strip()), _as_number(total_text.strip())
    return _as_number(text.strip()), 0.0
