"""
Module: timing

Purpose:
    Timing instrumentation for the marking pipeline to see where a
    submission spends its time (recognition, math calls, detection,
    model output parsing).

Key Classes:
    - TimingLog: Collects submission-level and question-level durations

Key Functions:
    - timed_phase: Context manager for timing code blocks

Dependencies:
    - time (std)
    - contextlib (std)
    - file_locking: Merged saves from concurrent workers

Used By:
    - pipeline: MarkingPipeline records every stage
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class TimingLog:
    """
    Timing metrics for one marking run.

    Attributes:
        submission_timings: Dict of phase_name -> duration_seconds
        question_timings: Dict of question_number -> {phase_name -> duration_seconds}

    Example:
        >>> log = TimingLog()
        >>> log.log_submission("recognition", 1.234)
        >>> log.log_question("2", "parse", 0.004)
        >>> print(log.summary())
    """
    submission_timings: Dict[str, float] = field(default_factory=dict)
    question_timings: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def log_submission(self, phase: str, duration: float) -> None:
        """Log a submission-level timing metric."""
        self.submission_timings[phase] = duration

    def log_question(self, question_number: str, phase: str, duration: float) -> None:
        """Log a question-level timing metric."""
        self.question_timings.setdefault(question_number, {})[phase] = duration

    def total(self) -> float:
        """Sum of submission-level phases."""
        return sum(self.submission_timings.values())

    def get_slowest_questions(self, n: int = 3) -> List[Tuple[str, float]]:
        """The N questions with the largest total time."""
        totals = [(q, sum(phases.values())) for q, phases in self.question_timings.items()]
        totals.sort(key=lambda x: x[1], reverse=True)
        return totals[:n]

    def summary(self) -> str:
        """Generate human-readable timing summary."""
        lines = ["", "=== Marking Timing Summary ==="]

        if self.submission_timings:
            lines.append("Submission-level:")
            for phase, duration in sorted(self.submission_timings.items()):
                lines.append(f"  {phase:25s} {duration:.3f}s")

        slowest = self.get_slowest_questions(3)
        if slowest:
            lines.append("")
            lines.append("Slowest questions:")
            for question, total in slowest:
                lines.append(f"  Q{question}: {total:.3f}s")

        lines.append("")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Export timing data as dictionary."""
        return {
            "submission_timings": self.submission_timings,
            "question_timings": self.question_timings,
        }

    def save(self, path: Path, submission_id: str = "", merge: bool = True) -> None:
        """
        Save timing data to JSON file.

        PARALLEL SAFE: When merge=True (default), uses file locking to
        merge with timing data written by other submissions, keyed by
        submission id.

        Args:
            path: Path to JSON file.
            submission_id: Key under which this run is stored when merging.
            merge: If True, merge with existing data. If False, overwrite.
        """
        if not merge:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.debug(f"Saved timing data to {path}")
            return

        from .file_locking import locked_read_modify_write_json

        key = submission_id or f"run-{time.time_ns()}"

        def merge_runs(existing: Dict[str, Any]) -> Dict[str, Any]:
            existing.setdefault("runs", {})[key] = self.to_dict()
            return existing

        locked_read_modify_write_json(path, merge_runs, default=lambda: {"runs": {}})
        logger.debug(f"Merged timing data for {key} into {path}")


@contextmanager
def timed_phase(
    log: TimingLog,
    phase: str,
    question_number: Optional[str] = None,
) -> Generator[None, None, None]:
    """
    Context manager for timing a code phase.

    Args:
        log: TimingLog instance to record metrics
        phase: Name of the phase being timed
        question_number: If provided, records as question-level metric;
            otherwise records as submission-level metric

    Example:
        >>> log = TimingLog()
        >>> with timed_phase(log, "recognition"):
        ...     result = await orchestrator.recognize(image)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if question_number:
            log.log_question(question_number, phase, elapsed)
        else:
            log.log_submission(phase, elapsed)
