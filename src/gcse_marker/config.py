"""
Module: config

Purpose:
    Configuration dataclasses for the marking pipeline. Provides
    immutable settings for clustering, recognition passes, math region
    triage, question matching, scheme orchestration and grading.

Key Classes:
    - ClusteringConfig: DBSCAN and overlap-merge settings
    - RecognitionConfig: Preprocessing pass settings
    - MathDetectionConfig: Math-likeness threshold and triage settings
    - MatchingConfig: Similarity acceptance thresholds
    - SchemeConfig: Consensus, recovery and generic rubric settings
    - GradingConfig: Boundary type selection settings
    - PipelineConfig: Aggregate configuration for MarkingPipeline

Dependencies:
    - dataclasses: For frozen dataclass support

Used By:
    - pipeline: Uses PipelineConfig for every stage
    - ocr.*, matching.*, schemes.*, grading.*: Stage-specific configs
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class ClusteringConfig:
    """
    Configuration for spatial block clustering.

    Attributes:
        eps_px: DBSCAN neighbourhood radius in pixels (default 40)
        min_samples: Minimum points (including the point itself) for a
            dense region (default 2)
        max_merge_iterations: Cap on overlap-merge passes (default 20)
    """
    eps_px: float = 40.0
    min_samples: int = 2
    max_merge_iterations: int = 20

    def __post_init__(self) -> None:
        if self.eps_px <= 0:
            raise ValueError(f"eps_px must be > 0: {self.eps_px}")
        if self.min_samples < 1:
            raise ValueError(f"min_samples must be >= 1: {self.min_samples}")
        if self.max_merge_iterations < 1:
            raise ValueError(f"max_merge_iterations must be >= 1: {self.max_merge_iterations}")


@dataclass(frozen=True)
class RecognitionConfig:
    """
    Configuration for the multi-pass recognition orchestrator.

    Attributes:
        resize_factor: Upscale applied to the enhanced and sharpened passes
        threshold_level: Binarisation cut-off for the sharpened pass (0-255)
        enable_math_fallback: Call the math recognizer on the whole image
            when every pass fails
        pdf_dpi: Render resolution for PDF submissions
    """
    resize_factor: int = 2
    threshold_level: int = 128
    enable_math_fallback: bool = True
    pdf_dpi: int = 200


@dataclass(frozen=True)
class MathDetectionConfig:
    """
    Configuration for math region detection and triage.

    Attributes:
        threshold: Minimum math-likeness for a cluster to become a block.
            The detector's own default is 0.35; the pipeline is permissive.
        high_confidence_skip: Primary confidence at or above which the
            math recognizer is not called
        request_delay_s: Pause between sequential math recognizer calls
    """
    threshold: float = 0.10
    high_confidence_skip: float = 0.9
    request_delay_s: float = 0.2


@dataclass(frozen=True)
class MatchingConfig:
    """
    Configuration for question matching.

    Attributes:
        threshold: Minimum similarity for a main question match
        sub_question_threshold: Minimum similarity for a sub-question match
    """
    threshold: float = 0.5
    sub_question_threshold: float = 0.4


@dataclass(frozen=True)
class SchemeConfig:
    """
    Configuration for scheme orchestration.

    Attributes:
        consensus_ratio: Vote share needed for a paper to be dominant
        single_paper_min_rate: Detection rate below which a single-paper
            hinted run is restarted without the hint
        multi_paper_min_rate: Same, when several papers matched
        default_rubric_size: Generic rubric slots per mark type when no
            total can be read from the page
        max_estimated_marks: Upper bound on a total parsed from page text
        anchor_tail_chars: Tail length used to skip duplicated fragments
            when combining group anchor text
    """
    consensus_ratio: float = 0.8
    single_paper_min_rate: float = 0.8
    multi_paper_min_rate: float = 0.5
    default_rubric_size: int = 10
    max_estimated_marks: int = 50
    anchor_tail_chars: int = 40


@dataclass(frozen=True)
class GradingConfig:
    """
    Configuration for grade resolution.

    Attributes:
        single_paper_limit: Totals below this are treated as one paper
    """
    single_paper_limit: int = 100


@dataclass(frozen=True)
class PipelineConfig:
    """
    Configuration for the end-to-end marking pipeline.

    Attributes:
        clustering: Block clustering settings
        recognition: Recognition pass settings
        math: Math region settings
        matching: Question matching settings
        schemes: Scheme orchestration settings
        grading: Grade resolution settings
        timing_log_path: If set, timing data is merged into this JSON file
        diagnostics_path: If set, pipeline issues are written here
        outcome_log_path: If set, one JSON line per marked submission is
            appended here
        strict_response_validation: Reject model responses that fail the
            response schema instead of only logging
    """
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    math: MathDetectionConfig = field(default_factory=MathDetectionConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    schemes: SchemeConfig = field(default_factory=SchemeConfig)
    grading: GradingConfig = field(default_factory=GradingConfig)
    timing_log_path: Optional[Path] = None
    diagnostics_path: Optional[Path] = None
    outcome_log_path: Optional[Path] = None
    strict_response_validation: bool = False
