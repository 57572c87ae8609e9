"""
Unit Tests for Recognition Fragment Models

Tests for DetectedFragment and Cluster construction.
"""

import pytest

from gcse_marker.core.models import BoundingBox, Cluster, DetectedFragment


def frag(text: str, x: float, y: float, confidence=0.9, source: str = "clean") -> DetectedFragment:
    return DetectedFragment(source, text, confidence, BoundingBox(x, y, 20, 10))


class TestDetectedFragment:
    """Tests for DetectedFragment dataclass."""

    def test_init_when_confidence_out_of_range_then_raises_error(self):
        """Confidence must lie in [0, 1]."""
        with pytest.raises(ValueError, match="confidence must be in"):
            frag("x", 0, 0, confidence=1.5)

    def test_init_when_confidence_missing_then_allowed(self):
        """Recognizers may not report a confidence."""
        assert frag("x", 0, 0, confidence=None).confidence is None


class TestCluster:
    """Tests for Cluster dataclass."""

    def test_from_fragments_when_unordered_then_text_in_reading_order(self):
        """Text is joined top-to-bottom, then left-to-right."""
        cluster = Cluster.from_fragments(1, [
            frag("= 7", 60, 0),
            frag("second line", 0, 30),
            frag("2x + 1", 0, 0),
        ])
        assert cluster.text == "2x + 1 = 7 second line"

    def test_from_fragments_when_members_given_then_bbox_is_union(self):
        """The cluster box covers every member."""
        cluster = Cluster.from_fragments(1, [frag("a", 0, 0), frag("b", 100, 50)])
        assert cluster.bbox == BoundingBox(0, 0, 120, 60)

    def test_from_fragments_when_some_confidences_missing_then_mean_of_reported(self):
        """Mean confidence ignores members without one."""
        cluster = Cluster.from_fragments(1, [
            frag("a", 0, 0, 0.8), frag("b", 30, 0, None), frag("c", 60, 0, 0.6)
        ])
        assert cluster.confidence == pytest.approx(0.7)

    def test_from_fragments_when_no_confidences_then_none(self):
        """No reported confidence gives None, not 0."""
        cluster = Cluster.from_fragments(1, [frag("a", 0, 0, None)])
        assert cluster.confidence is None

    def test_from_fragments_when_empty_then_raises_error(self):
        """A cluster needs at least one fragment."""
        with pytest.raises(ValueError, match="at least one fragment"):
            Cluster.from_fragments(1, [])

    def test_merged_with_when_called_then_members_combined(self):
        """merged_with() keeps the first index and re-sorts the text."""
        first = Cluster.from_fragments(3, [frag("below", 0, 50)])
        second = Cluster.from_fragments(4, [frag("above", 0, 0)])
        merged = first.merged_with(second)
        assert merged.index == 3
        assert merged.text == "above below"
        assert len(merged.fragments) == 2

    def test_reindexed_when_called_then_only_index_changes(self):
        """reindexed() keeps members, box and text."""
        cluster = Cluster.from_fragments(7, [frag("x = 1", 5, 5)])
        moved = cluster.reindexed(1)
        assert moved.index == 1
        assert (moved.text, moved.bbox) == (cluster.text, cluster.bbox)
