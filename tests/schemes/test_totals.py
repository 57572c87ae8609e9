"""
Tests for reading printed mark totals from page text.
"""

import pytest

from gcse_marker.schemes import estimate_max_marks


class TestEstimateMaxMarks:
    """Tests for estimate_max_marks()."""

    def test_estimate_when_targeted_total_then_that_question_used(self):
        """The question's own total wins over earlier totals."""
        text = "(Total for Question 3 is 5 marks) ... (Total for Question 4 is 2 marks)"
        assert estimate_max_marks(text, "4") == 2

    def test_estimate_when_no_question_number_then_first_total_used(self):
        """Without a number the first plausible total is used."""
        text = "(Total for Question 3 is 5 marks) ... (Total for Question 4 is 2 marks)"
        assert estimate_max_marks(text) == 5

    @pytest.mark.parametrize("text,expected", [
        ("blah (Total 4 marks)", 4),
        ("Work out x [5 marks]", 5),
        ("Write down y [1 mark]", 1),
        ("Total: 6 marks", 6),
        ("Show your working (2 marks)", 2),
    ])
    def test_estimate_when_loose_pattern_then_total_read(self, text, expected):
        """Common printed forms are recognised."""
        assert estimate_max_marks(text) == expected

    def test_estimate_when_value_out_of_range_then_next_pattern_tried(self):
        """Implausible totals are skipped."""
        assert estimate_max_marks("(Total 0 marks) then [3 marks]") == 3
        assert estimate_max_marks("[120 marks]") == 0

    def test_estimate_when_upper_raised_then_larger_totals_accepted(self):
        """The plausibility bound is configurable."""
        assert estimate_max_marks("[60 marks]", upper=80) == 60

    def test_estimate_when_no_text_then_zero(self):
        """Missing text gives 0."""
        assert estimate_max_marks(None) == 0
        assert estimate_max_marks("No totals printed here") == 0
