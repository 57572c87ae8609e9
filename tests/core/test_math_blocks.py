"""
Unit Tests for the MathBlock Model

Tests for best_text selection and the review flag.
"""

from gcse_marker.core.models import BoundingBox, MathBlock


def block(suspicious: bool = False, math_text=None) -> MathBlock:
    return MathBlock(
        bbox=BoundingBox(10, 10, 80, 20),
        recognized_text="x2 + 3x",
        confidence=0.6,
        math_likeness=0.7,
        suspicious=suspicious,
        math_expression_text=math_text,
    )


class TestMathBlock:
    """Tests for MathBlock dataclass."""

    def test_best_text_when_math_result_then_math_text(self):
        """Recognized math replaces the primary text."""
        assert block(math_text="x^2 + 3x").best_text == "x^2 + 3x"
        assert block(math_text="   ").best_text == "x2 + 3x"

    def test_needs_review_when_suspicious_without_math_result_then_true(self):
        """Garbled-looking text that was never re-read is flagged."""
        assert block(suspicious=True).needs_review
        assert block(suspicious=True, math_text="").needs_review

    def test_needs_review_when_math_result_or_not_suspicious_then_false(self):
        """A math result or clean primary text clears the flag."""
        assert not block(suspicious=True, math_text="x^2 + 3x").needs_review
        assert not block().needs_review

    def test_to_dict_when_called_then_review_flag_included(self):
        """Serialisation carries the review flag."""
        data = block(suspicious=True).to_dict()
        assert data["needsReview"] is True
        assert data["recognizedText"] == "x2 + 3x"
