"""
Tests for question label and subject name helpers.
"""

import pytest

from gcse_marker.common import (
    base_question_number,
    is_sub_question,
    normalize_label,
    normalize_sub_question_part,
    short_subject_name,
    sub_question_part,
)


class TestQuestionLabels:
    """Tests for question label parsing."""

    @pytest.mark.parametrize("label,expected", [
        ("12ii", "12"),
        ("Q12ii", "12"),
        ("Question 3(b)", "3"),
        ("a", ""),
        (None, ""),
    ])
    def test_base_question_number_when_label_given_then_leading_digits(self, label, expected):
        """Leading digits survive a Q/Question prefix."""
        assert base_question_number(label) == expected

    @pytest.mark.parametrize("label,expected", [
        ("2a", "a"),
        ("12(ii)", "ii"),
        ("Q4 (b)", "b"),
        ("7", ""),
    ])
    def test_sub_question_part_when_label_given_then_part_lowercase(self, label, expected):
        """The part after the number, without brackets."""
        assert sub_question_part(label) == expected

    def test_normalize_label_when_noisy_then_canonical(self):
        """"Q2 (a)" becomes "2a"."""
        assert normalize_label("Q2 (A)") == "2a"

    def test_is_sub_question_when_part_present_then_true(self):
        """Only labels with both a number and a part are sub-questions."""
        assert is_sub_question("2a")
        assert not is_sub_question("2")
        assert not is_sub_question("a")

    def test_normalize_sub_question_part_when_not_string_then_empty(self):
        """Non-string input normalises to empty."""
        assert normalize_sub_question_part(None) == ""
        assert normalize_sub_question_part(" (iii) ") == "iii"


class TestShortSubjectName:
    """Tests for short_subject_name()."""

    def test_short_subject_name_when_known_then_abbreviated(self):
        """Known subjects are shortened, qualification prefix dropped."""
        assert short_subject_name("GCSE Mathematics") == "Maths"
        assert short_subject_name("Combined Science") == "Comb Sci"

    def test_short_subject_name_when_unknown_then_input_returned(self):
        """Unknown subjects come back unchanged."""
        assert short_subject_name("Geography ") == "Geography"
        assert short_subject_name(None) == ""
