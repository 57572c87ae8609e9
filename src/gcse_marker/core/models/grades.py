"""
Module: grades

Purpose:
    Grade boundary reference data and grade resolution results.
    Boundary entries are read-only and shared across submissions.

Key Classes:
    - PaperBoundaries: Per-paper grade thresholds
    - TierBoundaries: Tier with paper-specific and/or overall boundaries
    - SubjectBoundaries: Subject with its tiers
    - GradeBoundaryEntry: One board/series document
    - GradeResult: Outcome of grade resolution

Dependencies:
    - dataclasses (std)

Used By:
    - grading.store: Loads entries
    - grading.resolver: Selects tables and resolves grades
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

BoundaryType = Literal["Paper-Specific", "Overall-Total"]
PAPER_SPECIFIC: BoundaryType = "Paper-Specific"
OVERALL_TOTAL: BoundaryType = "Overall-Total"


def _boundary_table(data: Any) -> Dict[str, float]:
    if not isinstance(data, dict):
        return {}
    return {str(grade): float(value) for grade, value in data.items()}


@dataclass(frozen=True)
class PaperBoundaries:
    """Boundaries for one paper code ("2H")."""

    code: str
    max_mark: int
    boundaries: Dict[str, float]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PaperBoundaries:
        return cls(
            code=str(data.get("code", "")).strip(),
            max_mark=int(data.get("max_mark", 0) or 0),
            boundaries=_boundary_table(data.get("boundaries")),
        )


@dataclass(frozen=True)
class TierBoundaries:
    """
    Boundaries for one tier.

    Attributes:
        tier_level: "Higher", "Foundation Tier", ...
        paper_codes: Papers that make up the tier
        boundaries_type: Declared boundary type
        papers: Paper-specific tables
        overall_total_boundaries: Aggregate table over all papers
    """

    tier_level: str
    boundaries_type: str = ""
    paper_codes: Tuple[str, ...] = ()
    papers: Tuple[PaperBoundaries, ...] = ()
    overall_total_boundaries: Optional[Dict[str, float]] = None

    @property
    def has_paper_specific(self) -> bool:
        return len(self.papers) > 0

    @property
    def has_overall_total(self) -> bool:
        return bool(self.overall_total_boundaries)

    def paper(self, code: str) -> Optional[PaperBoundaries]:
        for paper in self.papers:
            if paper.code == code:
                return paper
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TierBoundaries:
        overall = data.get("overall_total_boundaries")
        return cls(
            tier_level=str(data.get("tier_level", "")),
            boundaries_type=str(data.get("boundaries_type", "")),
            paper_codes=tuple(str(c) for c in data.get("paper_codes", []) or []),
            papers=tuple(PaperBoundaries.from_dict(p) for p in data.get("papers", []) or []),
            overall_total_boundaries=_boundary_table(overall) if overall else None,
        )


@dataclass(frozen=True)
class SubjectBoundaries:
    """Subject entry inside a boundary document."""

    name: str
    code: str
    max_mark: int = 0
    tiers: Tuple[TierBoundaries, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SubjectBoundaries:
        return cls(
            name=str(data.get("name", "")),
            code=str(data.get("code", "")),
            max_mark=int(data.get("max_mark", 0) or 0),
            tiers=tuple(TierBoundaries.from_dict(t) for t in data.get("tiers", []) or []),
        )


@dataclass(frozen=True)
class GradeBoundaryEntry:
    """
    Grade boundaries published by one board for one series.

    Example:
        >>> entry = GradeBoundaryEntry.from_dict({
        ...     "id": "edexcel-june-2022", "exam_board": "Edexcel",
        ...     "qualification": "GCSE", "exam_series": "June 2022",
        ...     "subjects": [],
        ... })
        >>> entry.exam_board
        'Edexcel'
    """

    id: str
    exam_board: str
    qualification: str
    exam_series: str
    subjects: Tuple[SubjectBoundaries, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GradeBoundaryEntry:
        return cls(
            id=str(data.get("id", "")),
            exam_board=str(data.get("exam_board", "")),
            qualification=str(data.get("qualification", "")),
            exam_series=str(data.get("exam_series", "")),
            subjects=tuple(SubjectBoundaries.from_dict(s) for s in data.get("subjects", []) or []),
        )


@dataclass(frozen=True)
class GradeResult:
    """
    Outcome of grade resolution. Never an exception: failures carry error.

    Attributes:
        grade: Resolved grade, or None (ungraded / unresolved)
        boundary_type: Table type used, if one was chosen
        matched_boundary: Entry the grade came from
        boundaries: The concrete table used
        error: Reason when no grade could be resolved
    """

    grade: Optional[str] = None
    boundary_type: Optional[str] = None
    matched_boundary: Optional[GradeBoundaryEntry] = None
    boundaries: Dict[str, float] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def failure(
        cls,
        error: str,
        boundary_type: Optional[str] = None,
        matched_boundary: Optional[GradeBoundaryEntry] = None,
    ) -> GradeResult:
        return cls(
            grade=None,
            boundary_type=boundary_type,
            matched_boundary=matched_boundary,
            error=error,
        )

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "grade": self.grade,
            "boundaryType": self.boundary_type,
            "boundaries": dict(self.boundaries),
        }
        if self.matched_boundary is not None:
            data["boundaryId"] = self.matched_boundary.id
        if self.error:
            data["error"] = self.error
        return data


def sorted_grades(boundaries: Dict[str, float]) -> List[Tuple[str, float]]:
    """Grades sorted numerically descending (non-numeric grades last)."""
    def grade_number(grade: str) -> int:
        try:
            return int(grade)
        except ValueError:
            return 0
    return sorted(boundaries.items(), key=lambda item: grade_number(item[0]), reverse=True)
