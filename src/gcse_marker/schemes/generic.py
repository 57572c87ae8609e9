"""
Module: schemes.generic

Purpose:
    Synthesises a permissive sequential rubric for questions that match
    no official marking scheme.

Key Functions:
    - generate_sequential_rubric(): M1..Mn, A1..An, B1..Bn plus M0/A0/B0
    - build_generic_scheme(): NormalizedScheme of kind "generic"

Used By:
    - schemes.orchestrator
"""

from __future__ import annotations

from typing import List

from gcse_marker.core.models import NormalizedScheme, SchemeMark

GENERIC_EXAMINER_INSTRUCTION = """\
NO OFFICIAL MARKING SCHEME AVAILABLE (GENERIC MODE).
1. You are the chief examiner. Determine the marking criteria from the question text.
2. Grading strategy:
   - Use M1, M2, M3... for sequential method steps (correct approach).
   - Use A1, A2, A3... for sequential accuracy steps (correct values).
   - Use B1, B2, B3... for independent statements or reasons.
   - Use M0/A0/B0 only to flag incorrect steps explicitly.
3. Scoring limits:
   - If a maximum mark is printed (e.g. [3]), try to align with it.
   - If the student shows valid work beyond that limit, award the marks.
   - Do not cap the score artificially. Prioritise correct mathematics.
"""

METHOD_GUIDANCE = "Method: Correct approach, substitution, or rearrangement."
ACCURACY_GUIDANCE = "Accuracy: Correct final answer or intermediate precision."
INDEPENDENT_GUIDANCE = "Independent: Correct statement, definition, or property."


def generate_sequential_rubric(size: int) -> List[SchemeMark]:
    """
    Sequential rubric with `size` slots per mark type.

    Example:
        >>> [m.mark for m in generate_sequential_rubric(2)]
        ['M1', 'M2', 'A1', 'A2', 'B1', 'B2', 'M0', 'A0', 'B0']
    """
    if size < 1:
        raise ValueError(f"Rubric size must be >= 1: {size}")

    rubric: List[SchemeMark] = []
    for prefix, guidance, comment in (
        ("M", METHOD_GUIDANCE, "Method mark"),
        ("A", ACCURACY_GUIDANCE, "Accuracy mark"),
        ("B", INDEPENDENT_GUIDANCE, "Independent mark"),
    ):
        rubric.extend(
            SchemeMark(f"{prefix}{i}", guidance, comment) for i in range(1, size + 1)
        )
    rubric.append(SchemeMark("M0", "Method: Incorrect approach.", "Method lost"))
    rubric.append(SchemeMark("A0", "Accuracy: Incorrect value.", "Accuracy lost"))
    rubric.append(SchemeMark("B0", "Independent: Invalid statement.", "Mark lost"))
    return rubric


def build_generic_scheme(question_number: str, detected_total: int, default_size: int) -> NormalizedScheme:
    """
    Generic scheme for one unmatched question group.

    The rubric has `detected_total` slots per mark type when a total was
    read from the page, otherwise `default_size`. total_marks carries the
    detected total (0 when unknown).
    """
    size = detected_total if detected_total > 0 else default_size
    return NormalizedScheme(
        question_number=question_number,
        marks=tuple(generate_sequential_rubric(size)),
        total_marks=max(detected_total, 0),
        kind="generic",
        exam_board="Unknown",
        paper_code="Generic Question",
        guidance=GENERIC_EXAMINER_INSTRUCTION,
    )
