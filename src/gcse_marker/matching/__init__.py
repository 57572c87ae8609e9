"""
Question matching: fuzzy similarity and corpus lookup.

Public entry points:
- QuestionMatcher.detect(text, question_number_hint, paper_hint)
- question_similarity(a, b)
- InMemoryQuestionCorpus.from_records(records) / from_directory(path)
"""

from .corpus import (
    CorpusQuestion,
    CorpusSubQuestion,
    ExamPaperRecord,
    InMemoryQuestionCorpus,
    parse_exam_paper,
)
from .question_matcher import QuestionMatcher
from .similarity import (
    extract_key_phrases,
    levenshtein,
    normalize_question_text,
    question_similarity,
)

__all__ = [
    "CorpusQuestion",
    "CorpusSubQuestion",
    "ExamPaperRecord",
    "InMemoryQuestionCorpus",
    "parse_exam_paper",
    "QuestionMatcher",
    "extract_key_phrases",
    "levenshtein",
    "normalize_question_text",
    "question_similarity",
]
