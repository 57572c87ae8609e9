"""
Tests for JSON block extraction from marking model output.
"""

from gcse_marker.results import extract_json_block


class TestExtractJsonBlock:
    """Tests for extract_json_block()."""

    def test_extract_when_json_fence_then_fence_content(self):
        """A ```json fence is preferred."""
        text = 'Here you go:\n```json\n{"annotations": []}\n```'
        assert extract_json_block(text) == '{"annotations": []}'

    def test_extract_when_bare_fence_then_fence_content(self):
        """A bare fence is used when there is no json fence."""
        text = 'Result\n```\n{"a": 1}\n```\nThanks'
        assert extract_json_block(text) == '{"a": 1}'

    def test_extract_when_several_fences_then_runs_to_last_closing_fence(self):
        """The block ends at the last closing fence."""
        text = '```json\n{"a": "x"}\n```\nnote\n```'
        assert extract_json_block(text) == '{"a": "x"}\n```\nnote'

    def test_extract_when_fence_unterminated_then_rest_of_text(self):
        """A truncated response still yields the JSON after the fence."""
        assert extract_json_block('```json\n{"a": 1}') == '{"a": 1}'

    def test_extract_when_no_fence_then_stripped_text(self):
        """Unfenced output is used whole."""
        assert extract_json_block('  {"a": 1}  \n') == '{"a": 1}'

    def test_extract_when_empty_then_empty(self):
        """Empty output gives an empty string."""
        assert extract_json_block("") == ""
