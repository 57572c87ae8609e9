"""
Unit Tests for Annotation and StudentScore Models
"""

import pytest

from gcse_marker.core.models import Annotation, StudentScore


class TestAnnotation:
    """Tests for Annotation dataclass."""

    def test_from_dict_when_step_id_alias_then_line_id_set(self):
        """step_id and lineId are accepted for line_id."""
        assert Annotation.from_dict({"step_id": "line_4"}).line_id == "line_4"
        assert Annotation.from_dict({"lineId": "line_5"}).line_id == "line_5"

    def test_from_dict_when_unknown_keys_then_kept_in_extra(self):
        """Unrecognised keys survive for the output."""
        annotation = Annotation.from_dict({"line_id": "line_1", "step_type": "method"})
        assert annotation.extra == {"step_type": "method"}
        assert annotation.to_dict()["step_type"] == "method"

    def test_from_dict_when_boolean_page_then_ignored(self):
        """A boolean is not a page index."""
        assert Annotation.from_dict({"pageIndex": True}).page_index is None
        assert Annotation.from_dict({"pageIndex": 2}).page_index == 2

    def test_from_dict_when_match_status_lowercase_then_uppercased(self):
        """Match status is normalised to upper case."""
        assert Annotation.from_dict({"ocr_match_status": "visual"}).match_status == "VISUAL"

    def test_to_dict_when_ghost_then_flagged(self):
        """Ghost annotations are marked in the output."""
        annotation = Annotation(line_id="ghost_2_0", action="tick", text="M1", is_ghost=True)
        data = annotation.to_dict()
        assert data["isGhost"] is True
        assert data["step_id"] == "ghost_2_0"

    def test_codes_when_text_empty_then_empty_list(self):
        """codes() of empty text is empty."""
        assert Annotation().codes() == []
        assert Annotation(text="M1  A1").codes() == ["M1", "A1"]


class TestStudentScore:
    """Tests for StudentScore dataclass."""

    def test_init_when_awarded_exceeds_total_then_raises_error(self):
        """awarded_marks <= total_marks."""
        with pytest.raises(ValueError, match="exceeds total_marks"):
            StudentScore(5, 4)

    def test_init_when_negative_then_raises_error(self):
        """Negative scores are rejected."""
        with pytest.raises(ValueError, match="cannot be negative"):
            StudentScore(-1, 4)

    def test_init_when_total_zero_then_award_must_be_zero(self):
        """A zero total admits only a zero award."""
        assert StudentScore(0, 0).score_text == "0/0"
        with pytest.raises(ValueError, match="exceeds total_marks"):
            StudentScore(3, 0)

    def test_score_text_when_whole_numbers_then_no_decimals(self):
        """score_text renders "a/b"."""
        assert StudentScore(3.0, 4.0).score_text == "3/4"
        assert StudentScore(2.5, 4).score_text == "2.5/4"

    def test_to_dict_when_called_then_camel_case_keys(self):
        """Serialisation uses the output contract keys."""
        assert StudentScore(1, 2).to_dict() == {"awardedMarks": 1, "totalMarks": 2, "scoreText": "1/2"}
