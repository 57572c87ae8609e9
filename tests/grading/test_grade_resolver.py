"""
Tests for GradeResolver.

Uses the Edexcel June 2022 boundaries from conftest: Higher has paper
tables for 1H and 2H, Foundation only an overall table.
"""

import asyncio

import pytest

from gcse_marker.config import GradingConfig
from gcse_marker.core.models import OVERALL_TOTAL, PAPER_SPECIFIC, ExamPaperMatch
from gcse_marker.diagnostics import DiagnosticsCollector
from gcse_marker.grading import GradeResolver
from gcse_marker.grading.boundaries import SINGLE_PAPER_ONLY_ERROR


class OfflineStore:
    async def query_by_board_and_series(self, board, series):
        raise RuntimeError("boundary store offline")


@pytest.fixture
def diagnostics():
    return DiagnosticsCollector()


@pytest.fixture
def resolver(boundary_store, diagnostics):
    return GradeResolver(boundary_store, diagnostics=diagnostics)


def resolve(resolver, subject="Mathematics", exam_code="1MA1/1H", tier="Higher", score=65, total=80, board="Edexcel"):
    return asyncio.run(resolver.resolve(board, "June 2022", subject, exam_code, tier, score, total, "sub-1"))


class TestResolvePaperSpecific:
    """Tests for single-paper grading."""

    def test_resolve_when_score_between_boundaries_then_grade(self, resolver):
        """65 on 1H reaches grade 8."""
        result = resolve(resolver)

        assert result.grade == "8"
        assert result.error is None
        assert result.boundary_type == PAPER_SPECIFIC
        assert result.boundaries == {"9": 70.0, "8": 60.0, "7": 50.0}
        assert result.matched_boundary.id == "edexcel-gcse-june-2022"

    def test_resolve_when_below_lowest_boundary_then_ungraded_without_error(self, resolver, diagnostics):
        """Ungraded is a result, not a failure."""
        result = resolve(resolver, score=45)
        assert result.grade is None
        assert result.error is None
        assert diagnostics.issues_of_type("grade_miss") == []

    def test_resolve_when_subject_named_differently_then_matched_by_code(self, resolver):
        """The subject code in the exam code matches too."""
        assert resolve(resolver, subject="Maths", exam_code="1MA1/2H", score=60).grade == "8"

    def test_resolve_when_qualification_in_subject_then_normalised(self, resolver):
        """"GCSE Mathematics" matches "Mathematics"."""
        assert resolve(resolver, subject="GCSE Mathematics").grade == "8"

    def test_resolve_when_paper_missing_then_error(self, resolver):
        """A paper without a table cannot be graded."""
        result = resolve(resolver, exam_code="1MA1/3H")
        assert result.grade is None
        assert result.error == "Paper code 3H not found in boundaries"

    def test_resolve_when_exam_code_has_no_paper_then_error(self, resolver):
        """A paper code is required for paper tables."""
        assert resolve(resolver, exam_code="1MA1").error == "Could not extract paper code from exam code"


class TestResolveOverallTotal:
    """Tests for overall-total grading."""

    def test_resolve_when_combined_total_then_overall_grade(self, resolver):
        """A combined Foundation score uses the overall table."""
        result = resolve(resolver, exam_code="1MA1/1F", tier="Foundation", score=160, total=240)
        assert result.grade == "4"
        assert result.boundary_type == OVERALL_TOTAL

    def test_resolve_when_single_paper_on_overall_table_then_error(self, resolver, diagnostics):
        """One Foundation paper cannot use the overall table."""
        result = resolve(resolver, exam_code="1MA1/1F", tier="Foundation Tier", score=60, total=80)

        assert result.grade is None
        assert result.error == SINGLE_PAPER_ONLY_ERROR
        assert result.boundary_type == OVERALL_TOTAL
        assert diagnostics.issues_of_type("grade_miss")[0].submission_id == "sub-1"

    def test_resolve_when_limit_lowered_then_paper_total_counts_as_combined(self, boundary_store):
        """The single-paper limit comes from GradingConfig."""
        resolver = GradeResolver(boundary_store, GradingConfig(single_paper_limit=50))
        result = resolve(resolver, exam_code="1MA1/1F", tier="Foundation", score=75, total=80)
        assert result.error is None
        assert result.grade is None


class TestResolveFailures:
    """Tests for lookups that find no table."""

    def test_resolve_when_board_unknown_then_no_boundary(self, resolver):
        """No entry for the board and series."""
        assert resolve(resolver, board="AQA").error == "No matching grade boundary found"

    def test_resolve_when_tier_unknown_then_available_tiers_listed(self, resolver):
        """The error lists the tiers that exist."""
        result = resolve(resolver, tier="Intermediate")
        assert result.error == (
            'Tier not found in grade boundary. Looking for: "Intermediate", Available: Higher, Foundation Tier'
        )

    def test_resolve_when_store_raises_then_error_result(self, diagnostics):
        """Store failures degrade to an error result."""
        result = resolve(GradeResolver(OfflineStore(), diagnostics=diagnostics))
        assert result.grade is None
        assert result.error == "boundary store offline"
        assert len(diagnostics.issues_of_type("grade_miss")) == 1


class TestResolveForMatch:
    """Tests for GradeResolver.resolve_for_match()."""

    def test_resolve_for_match_when_subject_missing_then_inferred_from_code(self, resolver):
        """A match without a subject is resolved through its exam code."""
        match = ExamPaperMatch(
            board="Edexcel",
            qualification="GCSE",
            paper_code="1MA1/2H",
            exam_series="June 2022",
            tier="Higher",
            question_number="1",
            confidence=0.97,
        )

        result = asyncio.run(resolver.resolve_for_match(match, 60, 80))

        assert result.grade == "8"
        assert result.boundaries["8"] == 58.0
