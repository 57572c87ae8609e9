"""
Tests for the generic sequential rubric.
"""

import pytest

from gcse_marker.schemes import (
    GENERIC_EXAMINER_INSTRUCTION,
    build_generic_scheme,
    estimate_max_marks,
    generate_sequential_rubric,
)


class TestGenerateSequentialRubric:
    """Tests for generate_sequential_rubric()."""

    def test_rubric_when_size_two_then_sequential_codes(self):
        """M, A and B runs followed by the zero codes."""
        codes = [m.mark for m in generate_sequential_rubric(2)]
        assert codes == ["M1", "M2", "A1", "A2", "B1", "B2", "M0", "A0", "B0"]

    def test_rubric_when_default_size_then_33_slots(self):
        """Ten of each type plus three zero codes."""
        rubric = generate_sequential_rubric(10)
        assert len(rubric) == 33
        assert rubric[9].mark == "M10"

    def test_rubric_when_size_zero_then_raises_error(self):
        """A rubric needs at least one slot per type."""
        with pytest.raises(ValueError, match=">= 1"):
            generate_sequential_rubric(0)


class TestBuildGenericScheme:
    """Tests for build_generic_scheme()."""

    def test_build_when_total_printed_then_rubric_sized_to_total(self):
        """A printed "(Total 4 marks)" gives four slots per type."""
        total = estimate_max_marks("Find the gradient of the line. (Total 4 marks)")
        scheme = build_generic_scheme("5", total, default_size=10)

        assert total == 4
        assert [m.mark for m in scheme.marks][:4] == ["M1", "M2", "M3", "M4"]
        assert len(scheme.marks) == 15
        assert scheme.total_marks == 4

    def test_build_when_no_total_then_default_size(self):
        """Unknown totals fall back to the default size with total 0."""
        scheme = build_generic_scheme("5", 0, default_size=10)
        assert len(scheme.marks) == 33
        assert scheme.total_marks == 0

    def test_build_when_called_then_generic_identity(self):
        """Generic schemes carry the virtual paper identity and instruction."""
        scheme = build_generic_scheme("5", 3, default_size=10)
        assert scheme.is_generic
        assert scheme.kind == "generic"
        assert scheme.exam_board == "Unknown"
        assert scheme.paper_code == "Generic Question"
        assert scheme.guidance == GENERIC_EXAMINER_INSTRUCTION
