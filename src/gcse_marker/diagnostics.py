"""
Module: diagnostics

Captures recoverable pipeline issues during marking and generates
diagnostic reports for analysis.

Structure:
- Each issue names the stage it happened in and the question it concerns
- Context is a small dict of stage-specific values (pass name, paper code)
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


@dataclass
class PipelineIssue:
    """
    A single recoverable issue with diagnostic context.

    Fields:
    - issue_type: "pass_failure", "math_call_failure", "generic_fallback",
      "consensus_rescue", "hint_restart", "parse_failure", "grade_miss"
    - stage: Component that recorded it
    - question_number: Question concerned, if any
    - context: Extra values, e.g. {"pass": "sharpened"}
    """
    issue_type: str
    stage: str
    message: str
    submission_id: str = ""
    question_number: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "issue_type": self.issue_type,
            "stage": self.stage,
            "message": self.message,
        }
        if self.submission_id:
            d["submission_id"] = self.submission_id
        if self.question_number:
            d["question_number"] = self.question_number
        if self.context:
            d["context"] = self.context
        return d


class DiagnosticsCollector:
    """
    Thread-safe collector for pipeline issues.

    One collector may be shared by concurrent submissions; every issue
    carries its submission id.
    """

    def __init__(self):
        self._issues: List[PipelineIssue] = []
        self._lock = threading.Lock()
        self._submissions: Set[str] = set()

    def _add(self, issue: PipelineIssue) -> None:
        with self._lock:
            self._issues.append(issue)
            if issue.submission_id:
                self._submissions.add(issue.submission_id)

    def add_pass_failure(self, pass_name: str, error: str, submission_id: str = "") -> None:
        """Record a recognition pass that raised."""
        self._add(PipelineIssue(
            issue_type="pass_failure",
            stage="recognition",
            message=f"Pass '{pass_name}' failed: {error}",
            submission_id=submission_id,
            context={"pass": pass_name},
        ))

    def add_math_call_failure(self, signature: str, error: str, submission_id: str = "") -> None:
        """Record a math recognizer call that failed; primary text was kept."""
        self._add(PipelineIssue(
            issue_type="math_call_failure",
            stage="math_regions",
            message=f"Math recognizer failed for block {signature}: {error}",
            submission_id=submission_id,
            context={"block": signature},
        ))

    def add_generic_fallback(self, question_number: str, rubric_size: int, submission_id: str = "") -> None:
        """Record a question that received a synthesized rubric."""
        self._add(PipelineIssue(
            issue_type="generic_fallback",
            stage="schemes",
            message=f"Q{question_number}: no scheme found, generic rubric with {rubric_size} slots",
            submission_id=submission_id,
            question_number=question_number,
            context={"rubric_size": rubric_size},
        ))

    def add_hint_restart(self, reason: str, submission_id: str = "") -> None:
        """Record a detection run restarted without the paper hint."""
        self._add(PipelineIssue(
            issue_type="hint_restart",
            stage="schemes",
            message=f"Restarted detection without hint: {reason}",
            submission_id=submission_id,
        ))

    def add_consensus_rescue(
        self,
        question_number: str,
        paper_title: str,
        adopted: bool,
        submission_id: str = "",
    ) -> None:
        """Record a consensus re-query and whether it was adopted."""
        outcome = "adopted" if adopted else "rejected"
        self._add(PipelineIssue(
            issue_type="consensus_rescue",
            stage="schemes",
            message=f"Q{question_number}: rescue toward {paper_title} {outcome}",
            submission_id=submission_id,
            question_number=question_number,
            context={"paper": paper_title, "adopted": adopted},
        ))

    def add_parse_failure(self, question_number: str, error: str, submission_id: str = "") -> None:
        """Record a question whose marking output could not be repaired."""
        self._add(PipelineIssue(
            issue_type="parse_failure",
            stage="results",
            message=f"Q{question_number}: {error}",
            submission_id=submission_id,
            question_number=question_number,
        ))

    def add_grade_miss(self, reason: str, submission_id: str = "") -> None:
        """Record a grade that could not be resolved."""
        self._add(PipelineIssue(
            issue_type="grade_miss",
            stage="grading",
            message=reason,
            submission_id=submission_id,
        ))

    def generate_report(self) -> "DiagnosticsReport":
        with self._lock:
            return DiagnosticsReport.from_issues(list(self._issues), set(self._submissions))

    def issues_of_type(self, issue_type: str) -> List[PipelineIssue]:
        with self._lock:
            return [i for i in self._issues if i.issue_type == issue_type]

    @property
    def issue_count(self) -> int:
        with self._lock:
            return len(self._issues)

    def summary(self) -> str:
        """One line per issue type, most frequent first."""
        report = self.generate_report()
        if not report.total_issues:
            return "No pipeline issues recorded"
        lines = [f"{report.total_issues} pipeline issues"]
        for issue_type, count in sorted(report.summary_by_type.items(), key=lambda kv: -kv[1]):
            lines.append(f"  {issue_type}: {count}")
        return "\n".join(lines)

    def save(self, path: Path) -> None:
        self.generate_report().save(path)


@dataclass
class DiagnosticsReport:
    """Complete diagnostics report."""
    generated_at: str
    submissions: List[str]
    total_issues: int
    summary_by_type: Dict[str, int]
    issues: List[PipelineIssue]

    @classmethod
    def from_issues(cls, issues: List[PipelineIssue], submissions: Set[str]) -> "DiagnosticsReport":
        summary_by_type: Dict[str, int] = {}
        for issue in issues:
            summary_by_type[issue.issue_type] = summary_by_type.get(issue.issue_type, 0) + 1

        return cls(
            generated_at=datetime.now(timezone.utc).isoformat(),
            submissions=sorted(submissions),
            total_issues=len(issues),
            summary_by_type=summary_by_type,
            issues=issues,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "submissions": self.submissions,
            "total_issues": self.total_issues,
            "summary_by_type": self.summary_by_type,
            "issues": [issue.to_dict() for issue in self.issues],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json())
        logger.info(f"Pipeline diagnostics saved: {path}")
