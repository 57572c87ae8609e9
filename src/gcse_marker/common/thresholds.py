"""Centralized threshold and magic number configuration.

This module contains the heuristic weights, ratios, and magic numbers
used throughout recognition, matching and scoring. Having these in one
place makes tuning easier and documents why each value was chosen.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RecognitionThresholds:
    """Thresholds for layout of recognised text."""

    line_y_tolerance_px: int = 10  # Fragments within this many px share a line
    same_line_overlap_ratio: float = 0.3  # Vertical overlap share that puts two boxes on one line
    fallback_box_size: int = 100  # Width/height of the degraded whole-image block
    fallback_confidence: float = 0.5  # Used when the math recognizer reports none


@dataclass
class MathScoringThresholds:
    """Weights for math-likeness scoring."""

    feature_weight: float = 0.1  # Added per matched math feature
    detector_default_threshold: float = 0.35  # Detector default; pipeline lowers it
    suspicious_operator_count: int = 2  # More operators than this with no digits is suspicious
    common_word_min_length: int = 3  # Plain prose longer than this can be ruled out


@dataclass
class SimilarityThresholds:
    """Weights for question text similarity."""

    phrase_weight: float = 0.4  # Key-phrase overlap share
    word_weight: float = 0.4  # Token similarity share
    order_weight: float = 0.2  # Order preservation share
    fuzzy_length_divisor: int = 5  # Edit distance allowance is max_len // divisor
    tie_prefix_chars: int = 60  # Raw chars considered when comparing openings
    tie_compare_chars: int = 30  # Normalised prefix length kept
    tie_match_chars: int = 20  # Prefix chars that must agree


@dataclass
class DetectionBands:
    """Similarity bands used by detection statistics."""

    high: float = 0.9
    medium: float = 0.7
    low: float = 0.4


@dataclass
class ScoringThresholds:
    """Thresholds for annotation scoring and drawing normalisation."""

    generic_total_defaults: tuple = (0, 20, 40, 100)  # Scheme totals meaning "unknown"
    unknown_budget_ceiling: int = 99  # Sub-question budget when the scheme gives none
    unlimited_code_count: int = 99  # Usage cap for zero codes and generic schemes
    oversized_drawing_px: float = 65.0  # Visual markers this large are shrunk
    single_drawing_size: float = 45.0  # Size used when only one sub-question
    shared_drawing_span: float = 70.0  # Span divided between sub-questions
    shared_drawing_top: float = 15.0  # Top offset for redistributed markers


# Global instances for easy import
RECOGNITION_THRESHOLDS = RecognitionThresholds()
MATH_SCORING_THRESHOLDS = MathScoringThresholds()
SIMILARITY_THRESHOLDS = SimilarityThresholds()
DETECTION_BANDS = DetectionBands()
SCORING_THRESHOLDS = ScoringThresholds()
