"""
Analysis Repository - Upsert-by-key storage for analyses and comps

Holds at most one AnalysisResult per subject property; recomputation
replaces it. Writes for the same subject are serialised with a per-key
lock (last write wins). This is an in-memory implementation with optional
JSON file persistence.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from deal_engine.comp_engine.models import AnalysisResult, ComparableSale
from deal_engine.errors import AnalysisNotFoundError


logger = logging.getLogger(__name__)


class _KeyedLocks:
    """One lock per key, created on demand."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = defaultdict(threading.RLock)

    def __call__(self, key: str) -> threading.RLock:
        with self._guard:
            return self._locks[key]


# =============================================================================
# Analysis Repository
# =============================================================================


class AnalysisRepository:
    """
    Repository for the authoritative analysis of each subject property.

    Uses in-memory storage with optional file persistence.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self._analyses: dict[str, AnalysisResult] = {}
        self._locks = _KeyedLocks()
        self._file_lock = threading.Lock()
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        with self._file_lock:
            data = {
                "analyses": {
                    sid: analysis.to_dict()
                    for sid, analysis in list(self._analyses.items())
                },
                "saved_at": datetime.utcnow().isoformat(),
            }
            self._persist_path.parent.mkdir(parents=True, exist_ok=True)
            self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text())
            for sid, analysis_data in data.get("analyses", {}).items():
                self._analyses[sid] = AnalysisResult.from_dict(analysis_data)
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            # Start fresh rather than refuse to serve
            logger.warning("Could not load analysis repository data: %s", e)

    # =========================================================================
    # Operations
    # =========================================================================

    def upsert(self, analysis: AnalysisResult) -> AnalysisResult:
        """
        Insert or replace the analysis for a subject.

        The stored version is bumped on every replacement.

        Returns:
            The stored AnalysisResult
        """
        with self._locks(analysis.subject_id):
            existing = self._analyses.get(analysis.subject_id)
            analysis.version = existing.version + 1 if existing else 1
            self._analyses[analysis.subject_id] = analysis
            self._save_to_file()
            return analysis

    def update(
        self,
        subject_id: str,
        change: Callable[[AnalysisResult], AnalysisResult],
    ) -> AnalysisResult:
        """
        Read-modify-write the analysis for a subject under its lock.

        Args:
            subject_id: Subject key
            change: Receives the stored analysis, returns the replacement

        Returns:
            The stored AnalysisResult

        Raises:
            AnalysisNotFoundError: If no analysis exists for the subject
        """
        with self._locks(subject_id):
            existing = self._analyses.get(subject_id)
            if existing is None:
                raise AnalysisNotFoundError(subject_id)
            updated = change(existing)
            updated.version = existing.version + 1
            self._analyses[subject_id] = updated
            self._save_to_file()
            return updated

    def get(self, subject_id: str) -> Optional[AnalysisResult]:
        """Get the analysis for a subject, or None."""
        return self._analyses.get(subject_id)

    def delete(self, subject_id: str) -> bool:
        """Delete the analysis for a subject; returns whether one existed."""
        with self._locks(subject_id):
            removed = self._analyses.pop(subject_id, None) is not None
            if removed:
                self._save_to_file()
            return removed

    def __len__(self) -> int:
        return len(self._analyses)

    def __iter__(self) -> Iterator[AnalysisResult]:
        return iter(list(self._analyses.values()))


# =============================================================================
# Comparable Repository
# =============================================================================


class ComparableRepository:
    """
    Comps per subject, unique by (subject, data source, source id).

    Records without a source id are keyed by normalised address. A new
    search supersedes the subject's previous comp set.
    """

    def __init__(self) -> None:
        self._comps: dict[str, dict[tuple[str, str], ComparableSale]] = {}
        self._locks = _KeyedLocks()

    @staticmethod
    def key(comp: ComparableSale) -> tuple[str, str]:
        source = comp.data_source.value if comp.data_source else ""
        return (source, comp.dedupe_key)

    def upsert(self, subject_id: str, comp: ComparableSale) -> ComparableSale:
        """Insert or replace one comp for a subject."""
        with self._locks(subject_id):
            self._comps.setdefault(subject_id, {})[self.key(comp)] = comp
            return comp

    def replace_all(self, subject_id: str, comps: List[ComparableSale]) -> List[ComparableSale]:
        """Supersede a subject's comps with the results of a new search."""
        with self._locks(subject_id):
            fresh: dict[tuple[str, str], ComparableSale] = {}
            for comp in comps:
                fresh[self.key(comp)] = comp
            self._comps[subject_id] = fresh
            return list(fresh.values())

    def for_subject(self, subject_id: str) -> List[ComparableSale]:
        return list(self._comps.get(subject_id, {}).values())

    def get(self, subject_id: str, data_source: str, dedupe_key: str) -> Optional[ComparableSale]:
        return self._comps.get(subject_id, {}).get((data_source, dedupe_key))

    def get_by_id(self, subject_id: str, comp_id: str) -> Optional[ComparableSale]:
        """Look up a comp by the "source:key" reference it is served with."""
        source, sep, dedupe_key = comp_id.partition(":")
        if not sep:
            return None
        return self.get(subject_id, source, dedupe_key)


# =============================================================================
# Singleton Access
# =============================================================================

_repository_instance: Optional[AnalysisRepository] = None
_comp_repository_instance: Optional[ComparableRepository] = None


def get_analysis_repository(persist_path: Optional[str] = None) -> AnalysisRepository:
    """
    Get the analysis repository singleton.

    Args:
        persist_path: Optional path for persistence (only used on first call)

    Returns:
        AnalysisRepository instance
    """
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = AnalysisRepository(persist_path or "data/analyses.json")
    return _repository_instance


def get_comparable_repository() -> ComparableRepository:
    """Get the comparable repository singleton."""
    global _comp_repository_instance
    if _comp_repository_instance is None:
        _comp_repository_instance = ComparableRepository()
    return _comp_repository_instance
