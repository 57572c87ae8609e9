"""
Tests for marking output JSON repair.

Stages run in order: direct parse, missing brace fix, lone backslash
escape, then aggressive escape.
"""

import pytest

from gcse_marker.exceptions import MarkingParseFailure
from gcse_marker.results import repair_json
from gcse_marker.results.repair import (
    aggressive_escape,
    fix_missing_braces,
    fix_unescaped_backslashes,
)

UNCLOSED_OBJECT = (
    '[\n'
    '  {\n'
    '    "line_id": "line_1",\n'
    '    "text": "M1"\n'
    '  ,\n'
    '  {\n'
    '    "line_id": "line_2"\n'
    '  }\n'
    ']'
)


class TestRepairStages:
    """Tests for the individual repair helpers."""

    def test_fix_missing_braces_when_object_unclosed_then_brace_inserted(self):
        """The brace is inserted at the comma's indent."""
        fixed = fix_missing_braces(UNCLOSED_OBJECT)
        assert '"text": "M1"\n  },\n  {' in fixed

    def test_fix_missing_braces_when_valid_then_unchanged(self):
        """Well-formed arrays are untouched."""
        text = '[{"a": "1"}, {"b": "2"}]'
        assert fix_missing_braces(text) == text

    def test_fix_unescaped_backslashes_when_latex_then_doubled(self):
        r"""\sqrt is escaped; \n and \" are left alone."""
        assert fix_unescaped_backslashes(r'"\sqrt{2}\n\""') == r'"\\sqrt{2}\n\""'

    def test_aggressive_escape_when_called_then_common_escapes_restored(self):
        r"""Every backslash is doubled except the standard escapes."""
        assert aggressive_escape(r'"\sqrt{2}\n"') == r'"\\sqrt{2}\n"'


class TestRepairJson:
    """Tests for repair_json()."""

    def test_repair_when_valid_then_parsed_directly(self):
        """Valid JSON is returned untouched."""
        assert repair_json('{"annotations": [], "meta": {"question_total_marks": 3}}') == {
            "annotations": [],
            "meta": {"question_total_marks": 3},
        }

    def test_repair_when_brace_missing_then_both_objects_parsed(self):
        """An unclosed object before the next one is closed."""
        assert repair_json(UNCLOSED_OBJECT) == [
            {"line_id": "line_1", "text": "M1"},
            {"line_id": "line_2"},
        ]

    def test_repair_when_unescaped_latex_then_backslash_preserved(self):
        """LaTeX commands survive as literal backslashes."""
        data = repair_json(r'{"annotations": [{"student_text": "\sqrt{27} = 3\sqrt{3}"}]}')
        assert data["annotations"][0]["student_text"] == "\\sqrt{27} = 3\\sqrt{3}"

    def test_repair_when_bad_unicode_escape_then_aggressive_escape_used(self):
        r"""\u not followed by hex needs the aggressive stage."""
        assert repair_json(r'{"text": "\unit vector"}') == {"text": "\\unit vector"}

    def test_repair_when_truncated_then_raises_parse_failure(self):
        """Unrepairable output raises a question-scoped failure."""
        with pytest.raises(MarkingParseFailure, match="Unparseable marking output for Q4") as exc_info:
            repair_json('{"annotations": [{"line_id": "line_1"', "4")

        assert exc_info.value.question_number == "4"
        assert exc_info.value.raw_excerpt.startswith('{"annotations"')

    def test_repair_when_long_garbage_then_excerpt_truncated(self):
        """Only the first 500 characters are kept for diagnostics."""
        with pytest.raises(MarkingParseFailure) as exc_info:
            repair_json("x" * 800)
        assert len(exc_info.value.raw_excerpt) == 500
