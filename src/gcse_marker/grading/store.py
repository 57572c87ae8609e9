"""
Module: grading.store

Purpose:
    In-memory grade boundary store. Entries are loaded once from JSON
    records and shared read-only across submissions.

Key Classes:
    - InMemoryGradeBoundaryStore: query_by_board_and_series(board, series)

Used By:
    - grading.resolver (through the GradeBoundaryStore protocol)
    - pipeline
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from gcse_marker.core.models import GradeBoundaryEntry

logger = logging.getLogger(__name__)


class InMemoryGradeBoundaryStore:
    """
    Grade boundary entries held in memory.

    Example:
        >>> store = InMemoryGradeBoundaryStore.from_records([record])
        >>> entries = await store.query_by_board_and_series("Edexcel", "June 2022")
    """

    def __init__(self, entries: Iterable[GradeBoundaryEntry] = ()):
        self._entries: List[GradeBoundaryEntry] = list(entries)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> InMemoryGradeBoundaryStore:
        return cls(GradeBoundaryEntry.from_dict(r) for r in records)

    @classmethod
    def from_directory(cls, directory: Path) -> InMemoryGradeBoundaryStore:
        """Load every *.json file; a file may hold one entry or a list."""
        entries: List[GradeBoundaryEntry] = []
        for path in sorted(Path(directory).glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping boundary file {path.name}: {e}")
                continue
            records = data if isinstance(data, list) else [data]
            entries.extend(GradeBoundaryEntry.from_dict(r) for r in records if isinstance(r, dict))
        logger.info(f"Loaded {len(entries)} grade boundary entries from {directory}")
        return cls(entries)

    @property
    def entries(self) -> Sequence[GradeBoundaryEntry]:
        return tuple(self._entries)

    async def query_by_board_and_series(self, board: str, series: str) -> Sequence[GradeBoundaryEntry]:
        return [e for e in self._entries if e.exam_board == board and e.exam_series == series]
