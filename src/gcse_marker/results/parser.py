"""
Module: results.parser

Purpose:
    Turns raw marking model output into validated annotations and an
    authoritative score for one question.

Key Classes:
    - ResultParser: parse(raw_text, scheme) -> MarkingResult
    - MarkingResult: Annotations, recomputed score, model meta, warnings

Processing Order:
    1. Extract the JSON block and repair it (MarkingParseFailure on failure)
    2. Validate the response shape (lenient unless strict)
    3. Reconcile pages against the trusted sub-question -> page mapping
    4. Sanitize fields and dedupe zero codes
    5. Ghost ids for id-less/unmatched marks, then merge redundant ones
    6. Enforce scheme mark limits and sub-question budgets
    7. Recount marks, resolve the total and clamp
    8. Normalise oversized drawing markers

Dependencies:
    - core.schemas.validator: jsonschema response validation

Used By:
    - pipeline: MarkingPipeline
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gcse_marker.core.models import Annotation, NormalizedScheme, StudentScore
from gcse_marker.core.schemas import validate_marking_response
from gcse_marker.diagnostics import DiagnosticsCollector
from gcse_marker.exceptions import MarkingParseFailure, SchemeValidationError

from .drawings import fix_oversized_drawings
from .extraction import extract_json_block
from .repair import repair_json
from .sanitize import assign_ghost_ids, merge_redundant, reconcile_pages, sanitize_annotation
from .scoring import (
    count_awarded_marks,
    enforce_mark_limits,
    enforce_strict_budget,
    parse_score,
    resolve_budget,
)

logger = logging.getLogger(__name__)


@dataclass
class MarkingResult:
    """
    Parsed marking output for one question.

    Attributes:
        question_number: Question the output belongs to
        annotations: Sanitized annotations that survived the scheme limits
        student_score: Recomputed score (never the model's own)
        meta: The model's meta block, as returned
        warnings: Non-fatal problems found while parsing
    """
    question_number: str
    annotations: List[Annotation] = field(default_factory=list)
    student_score: StudentScore = field(default_factory=lambda: StudentScore(0, 0))
    meta: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "questionNumber": self.question_number,
            "annotations": [a.to_dict() for a in self.annotations],
            "studentScore": self.student_score.to_dict(),
            "meta": dict(self.meta),
            "warnings": list(self.warnings),
        }


class ResultParser:
    """
    Parser for untrusted marking model output.

    Stateless; one instance may be shared across questions.

    Example:
        >>> parser = ResultParser()
        >>> result = parser.parse(raw_text, scheme, question_number="3")
        >>> result.student_score.score_text
        '2/3'
    """

    def __init__(
        self,
        strict_validation: bool = False,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        self.strict_validation = strict_validation
        self.diagnostics = diagnostics

    def load(self, raw_text: str, question_number: str = "") -> Dict[str, Any]:
        """
        Extract and repair the response JSON.

        Raises:
            MarkingParseFailure: If the output cannot be parsed into an object
        """
        data = repair_json(extract_json_block(raw_text or ""), question_number or None)
        if isinstance(data, list):
            data = {"annotations": data}
        if not isinstance(data, dict):
            raise MarkingParseFailure(
                f"Marking output for Q{question_number} is not an object",
                question_number=question_number,
                raw_excerpt=raw_text or "",
            )
        return data

    def _validate(self, data: Dict[str, Any], raw_text: str, question_number: str) -> List[str]:
        try:
            return validate_marking_response(data, strict=self.strict_validation)
        except SchemeValidationError as e:
            raise MarkingParseFailure(
                f"Q{question_number}: {e}", question_number=question_number, raw_excerpt=raw_text or ""
            ) from e

    def parse(
        self,
        raw_text: str,
        scheme: Optional[NormalizedScheme],
        *,
        sub_question_pages: Optional[Dict[str, List[int]]] = None,
        question_number: str = "",
        submission_id: str = "",
    ) -> MarkingResult:
        """
        Parse and score one question's marking output.

        Args:
            raw_text: Model output, possibly fenced and malformed
            scheme: Scheme the question was marked against
            sub_question_pages: Trusted sub-question -> page indexes
            question_number: Label used for ghost ids and errors
            submission_id: Used to tag diagnostics

        Returns:
            MarkingResult

        Raises:
            MarkingParseFailure: If the output cannot be repaired
        """
        question_number = question_number or (scheme.question_number if scheme else "")
        result = MarkingResult(question_number=question_number)
        try:
            data = self.load(raw_text, question_number)
            problems = self._validate(data, raw_text, question_number)
        except MarkingParseFailure as e:
            if self.diagnostics is not None:
                self.diagnostics.add_parse_failure(question_number, str(e), submission_id)
            raise

        for problem in problems:
            logger.warning(f"Q{question_number} response shape: {problem}", extra={"question_number": question_number})
            result.warnings.append(f"Response shape: {problem}")

        meta = data.get("meta")
        result.meta = meta if isinstance(meta, dict) else {}

        annotations: List[Annotation] = []
        for i, raw in enumerate(data.get("annotations") or []):
            if not isinstance(raw, dict):
                result.warnings.append(f"Skipped annotation {i}: not an object")
                continue
            annotations.append(Annotation.from_dict(raw))

        moved = reconcile_pages(annotations, sub_question_pages or {})
        if moved:
            result.warnings.append(f"Moved {moved} annotations to their sub-question page")

        for annotation in annotations:
            sanitize_annotation(annotation)
        assign_ghost_ids(annotations, question_number)
        annotations = merge_redundant(annotations)

        if scheme is not None:
            annotations = enforce_mark_limits(annotations, scheme)
            if scheme.has_sub_questions:
                annotations = enforce_strict_budget(annotations, scheme)

        result.annotations = annotations
        result.student_score = self._score(annotations, scheme, result, data.get("studentScore"))
        fix_oversized_drawings(annotations)

        logger.info(
            f"Q{question_number}: {len(annotations)} annotations, score {result.student_score.score_text}",
            extra={"question_number": question_number},
        )
        return result

    def _score(
        self,
        annotations: List[Annotation],
        scheme: Optional[NormalizedScheme],
        result: MarkingResult,
        reported: Any = None,
    ) -> StudentScore:
        system_max = scheme.total_marks if scheme is not None else 0
        total = resolve_budget(result.meta, system_max) or system_max

        counted = count_awarded_marks(annotations)
        awarded = min(counted, total)
        if awarded < counted:
            if total:
                result.warnings.append(f"Awarded marks clamped from {counted} to {awarded:g}")
            else:
                result.warnings.append(f"No total marks known; {counted} counted marks not awarded")

        score = StudentScore(awarded, total)
        reported_awarded, reported_total = parse_score(reported)
        if reported_total and (reported_awarded, reported_total) != (score.awarded_marks, score.total_marks):
            logger.debug(
                f"Q{result.question_number}: model reported {reported_awarded:g}/{reported_total:g}, "
                f"recomputed {score.score_text}"
            )
        return score
