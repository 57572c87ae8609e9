"""
Tests for Schema Validation

Tests that the bundled JSON schemas accept well-formed records and
reject or report malformed ones.
"""

import pytest

from gcse_marker.core.schemas import validate_exam_paper, validate_marking_response
from gcse_marker.exceptions import SchemeValidationError


class TestMarkingResponseValidation:
    """Tests for validate_marking_response()."""

    def test_validate_when_valid_response_then_no_problems(self):
        """A well-formed response has no problems."""
        data = {
            "annotations": [{"line_id": "line_1", "action": "tick", "text": "M1", "pageIndex": 0}],
            "studentScore": {"awardedMarks": 1, "totalMarks": 2},
            "meta": {"question_total_marks": 2, "isTotalEstimated": False},
        }
        assert validate_marking_response(data) == []

    def test_validate_when_annotations_missing_then_problem_reported(self):
        """Lenient mode returns problems instead of raising."""
        problems = validate_marking_response({"meta": {}})
        assert problems
        assert "annotations" in problems[0]

    def test_validate_when_strict_and_invalid_then_raises_error(self):
        """Strict mode raises SchemeValidationError."""
        with pytest.raises(SchemeValidationError, match="failed validation") as exc_info:
            validate_marking_response({"annotations": "none"}, strict=True)
        assert exc_info.value.path == "annotations"
        assert exc_info.value.errors


class TestExamPaperValidation:
    """Tests for validate_exam_paper()."""

    def test_validate_when_valid_record_then_passes(self, paper_x_record):
        """The shared fixture record is valid."""
        validate_exam_paper(paper_x_record)

    def test_validate_when_series_missing_then_raises_error(self, paper_x_record):
        """exam_series is required."""
        del paper_x_record["metadata"]["exam_series"]
        with pytest.raises(SchemeValidationError, match="exam_series"):
            validate_exam_paper(paper_x_record)

    def test_validate_when_question_number_missing_then_raises_error(self, paper_x_record):
        """List questions must carry a question_number."""
        paper_x_record["questions"].append({"question_text": "orphan"})
        with pytest.raises(SchemeValidationError, match="missing question_number"):
            validate_exam_paper(paper_x_record)

    def test_validate_when_not_object_then_raises_error(self):
        """Non-object records are rejected."""
        with pytest.raises(SchemeValidationError, match="must be an object"):
            validate_exam_paper(["not", "a", "record"])  # type: ignore[arg-type]
