"""
Tests for reading order, line grouping and the student work transcript.
"""

from gcse_marker.core.models import BoundingBox, DetectedFragment, MathBlock
from gcse_marker.ocr import group_lines, sort_reading_order, transcript
from gcse_marker.ocr.reading_order import same_line


def block(text: str, x: float, y: float, math_text=None) -> MathBlock:
    return MathBlock(BoundingBox(x, y, 30, 20), text, 0.8, 0.5, math_expression_text=math_text)


def frag(text: str, x: float, y: float) -> DetectedFragment:
    return DetectedFragment("clean", text, 0.9, BoundingBox(x, y, 20, 10))


class TestSameLine:
    """Tests for same_line()."""

    def test_same_line_when_large_vertical_overlap_then_true(self):
        """Half-height overlap puts two boxes on one line."""
        assert same_line(BoundingBox(0, 0, 10, 10), BoundingBox(20, 5, 10, 10))

    def test_same_line_when_slight_overlap_then_false(self):
        """A one-pixel overlap is not a shared line."""
        assert not same_line(BoundingBox(0, 0, 10, 10), BoundingBox(20, 9, 10, 10))

    def test_same_line_when_disjoint_then_false(self):
        """Boxes with no vertical overlap are on different lines."""
        assert not same_line(BoundingBox(0, 0, 10, 10), BoundingBox(0, 40, 10, 10))


class TestSortReadingOrder:
    """Tests for sort_reading_order()."""

    def test_sort_when_same_line_then_left_to_right(self):
        """A slightly lower block on the left still comes first."""
        right = block("= 7", 100, 10)
        left = block("2x + 1", 10, 12)
        below = block("x = 3", 10, 60)
        assert sort_reading_order([below, right, left]) == [left, right, below]

    def test_sort_when_empty_then_empty(self):
        """Sorting nothing returns nothing."""
        assert sort_reading_order([]) == []


class TestGroupLines:
    """Tests for group_lines()."""

    def test_group_lines_when_within_tolerance_then_same_line_sorted_by_x(self):
        """Fragments within 10px vertically share a line."""
        right, left, below = frag("b", 50, 10), frag("a", 5, 14), frag("next", 5, 40)
        assert group_lines([below, right, left]) == [[left, right], [below]]

    def test_group_lines_when_tolerance_zero_then_each_line_separate(self):
        """A tighter tolerance splits the line."""
        lines = group_lines([frag("b", 50, 10), frag("a", 5, 14)], y_tolerance=0)
        assert len(lines) == 2


class TestTranscript:
    """Tests for transcript()."""

    def test_transcript_when_math_text_present_then_preferred(self):
        """Each block contributes its best text, in reading order."""
        blocks = [block("x = 3", 10, 60), block("2x + 1 = 7", 10, 10, math_text="2x+1=7")]
        assert transcript(blocks) == "2x+1=7\nx = 3"

    def test_transcript_when_blank_block_then_skipped(self):
        """Blank lines are not emitted."""
        assert transcript([block("  ", 0, 0), block("9", 0, 50)]) == "9"
