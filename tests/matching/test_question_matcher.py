"""
Tests for QuestionMatcher.

Uses the two-paper corpus from conftest: 1MA1/1H (questions 1-7) and
1MA1/2H, whose Q6 differs from 1H's Q6 only in its numbers.
"""

import pytest

from gcse_marker.config import MatchingConfig
from gcse_marker.matching import InMemoryQuestionCorpus, QuestionMatcher

HINT_1H = "Edexcel 1MA1/1H June 2022 Higher"
HINT_2H = "Edexcel 1MA1/2H June 2022 Higher"


@pytest.fixture
def matcher(corpus):
    return QuestionMatcher(corpus)


class TestDetectMainQuestions:
    """Tests for detect() on main questions."""

    def test_detect_when_exact_text_then_found_with_scheme(self, matcher, paper_x_questions):
        """An exact question is matched and carries its scheme entry."""
        result = matcher.detect(paper_x_questions["2"], "2")

        assert result.found
        assert result.match.paper_code == "1MA1/1H"
        assert result.match.question_number == "2"
        assert result.match.marks == 2
        assert result.match.confidence == 1.0
        assert [m["mark"] for m in result.match.marking_scheme["questionMarks"]["marks"]] == ["M1", "A1"]
        assert result.message == "Matched with Edexcel Maths - 1MA1/1H (June 2022)"

    def test_detect_when_no_hint_then_best_paper_wins(self, matcher, paper_x_questions, paper_y_question_6):
        """Without hints every main question of every paper is compared."""
        assert matcher.detect(paper_y_question_6).match.paper_code == "1MA1/2H"
        assert matcher.detect(paper_x_questions["6"]).match.paper_code == "1MA1/1H"

    def test_detect_when_main_hint_then_only_that_number_compared(self, matcher, paper_x_questions):
        """A main-question hint restricts the search to that number."""
        result = matcher.detect(paper_x_questions["1"], "6")
        assert not result.found
        assert 0 < result.best_score < 0.5

    def test_detect_when_text_empty_then_not_found(self, matcher):
        """Blank text is rejected before any search."""
        result = matcher.detect("   ", "1")
        assert not result.found
        assert result.message == "No question text provided"

    def test_detect_when_nothing_similar_then_not_found(self, matcher):
        """Unrelated text is not matched."""
        result = matcher.detect("Describe the causes of the First World War")
        assert not result.found
        assert result.match is None

    def test_detect_when_corpus_empty_then_not_found(self):
        """An empty corpus finds nothing."""
        result = QuestionMatcher(InMemoryQuestionCorpus()).detect("Find the area")
        assert result.message == "No exam papers available"

    def test_detect_when_threshold_raised_then_near_match_rejected(self, corpus, paper_y_question_6):
        """The acceptance threshold is configurable."""
        strict = QuestionMatcher(corpus, MatchingConfig(threshold=0.9))
        result = strict.detect(paper_y_question_6, "6", HINT_1H)
        assert not result.found
        assert result.best_score == pytest.approx(0.836, abs=0.01)

    # ─────────────────────────────────────────────────────────────────────────
    # Paper hints
    # ─────────────────────────────────────────────────────────────────────────

    def test_detect_when_paper_hint_then_only_hinted_paper_searched(self, matcher, paper_x_questions):
        """A hint pins the search even when another paper scores higher."""
        result = matcher.detect(paper_x_questions["6"], "6", HINT_2H)
        assert result.found
        assert result.match.paper_code == "1MA1/2H"
        assert result.match.confidence < 1.0

    def test_detect_when_hint_matches_no_paper_then_whole_corpus_searched(self, matcher, paper_x_questions):
        """An unknown paper hint falls back to the whole corpus."""
        assert matcher.hinted_paper_count("AQA 8300/1H November 2021") == 0
        assert len(matcher.candidate_papers("AQA 8300/1H November 2021")) == 2
        assert matcher.detect(paper_x_questions["3"], "3", "AQA 8300/1H November 2021").found

    def test_hinted_paper_count_when_no_hint_then_zero(self, matcher):
        """No hint names no papers."""
        assert matcher.hinted_paper_count(None) == 0
        assert matcher.hinted_paper_count(HINT_1H) == 1


class TestDetectSubQuestions:
    """Tests for detect() with sub-question hints."""

    def test_detect_when_part_text_matches_then_part_match(self, matcher):
        """A sub-question hint matches the part and its marks."""
        result = matcher.detect("Complete the Venn diagram.", "7a")

        assert result.found
        assert result.match.question_number == "7"
        assert result.match.sub_question_number == "a"
        assert result.match.marks == 3
        assert [m["mark"] for m in result.match.marking_scheme["questionMarks"]["marks"]] == ["B1"] * 3

    def test_detect_when_part_text_loosely_similar_then_floor_score(self, matcher):
        """A weak but non-trivial part match is kept at 0.5."""
        result = matcher.detect("cat owners probability answer", "7b")
        assert result.found
        assert result.match.sub_question_number == "b"
        assert result.match.confidence == 0.5
        assert result.match.marks == 2

    def test_detect_when_part_does_not_exist_then_not_found(self, matcher):
        """A hint naming a missing part finds nothing."""
        assert not matcher.detect("Complete the Venn diagram.", "7c").found

    def test_detect_when_main_hint_for_parted_question_then_composite_scheme(self, matcher):
        """Main question with only part schemes gets a composite."""
        result = matcher.detect("100 people were asked if they own a cat or a dog.", "7")
        scheme = result.match.marking_scheme["questionMarks"]

        assert scheme["isComposite"]
        assert [m["mark"] for m in scheme["marks"]] == ["[a] B1", "[a] B1", "[a] B1", "[b] M1", "[b] A1"]
        assert scheme["answer"] == "(a) Venn diagram\n(b) 32/100"

    def test_detect_when_alternative_scheme_then_both_returned(self, matcher, paper_x_questions):
        """Main and alternative schemes are returned together."""
        scheme = matcher.detect(paper_x_questions["3"], "3").match.marking_scheme
        assert scheme["questionMarks"]["hasAlternatives"]
        assert [m["mark"] for m in scheme["questionMarks"]["alt"]["marks"]] == ["B2"]
        assert scheme["generalMarkingGuidance"].startswith("All candidates")
