"""Exact cosine-scan issue store held in memory, optionally backed by a JSON file."""

import json
import threading
from dataclasses import replace
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import numpy as np

from issue_brain.models import Issue, SyncBookmark, parse_timestamp
from issue_brain.store import DEFAULT_MATCH_THRESHOLD, IssueStore
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)


def _copy(issue: Issue) -> Issue:
    """Detached copy, so callers never share mutable lists with the cache."""
    return replace(
        issue,
        labels=list(issue.labels),
        linked_prs=list(issue.linked_prs),
        comments=list(issue.comments),
        embedding=list(issue.embedding) if issue.embedding is not None else None,
    )


class LocalIssueStore(IssueStore):
    """Issue store for single-process use and tests.

    Rows live in an explicit cache that is loaded from ``path`` on first use
    and only re-read when ``reload()`` is called. Writes go to the cache and,
    when a path is set, are flushed to disk.
    """

    def __init__(self, path: Path | str | None = None, dimensions: int = 1536) -> None:
        self.path = Path(path) if path else None
        self.dimensions = dimensions
        self._lock = threading.RLock()
        self._rows: dict[int, Issue] | None = None
        self._bookmark = SyncBookmark()

    @property
    def rows(self) -> dict[int, Issue]:
        with self._lock:
            if self._rows is None:
                self._load()
            return self._rows

    def _load(self) -> None:
        self._rows = {}
        self._bookmark = SyncBookmark()
        if self.path is None or not self.path.exists():
            return

        data = json.loads(self.path.read_text(encoding="utf-8"))
        for row in data.get("issues", []):
            issue = Issue.from_dict(row)
            self._rows[issue.issue_number] = issue
        meta = data.get("sync_metadata") or {}
        self._bookmark = SyncBookmark(
            last_synced_at=parse_timestamp(meta.get("last_synced_at")),
            total_issues=meta.get("total_issues") or 0,
        )
        logger.info("local_store_loaded", path=str(self.path), issues=len(self._rows))

    def _flush(self) -> None:
        if self.path is None:
            return
        data = {
            "issues": [issue.to_dict() for issue in self._rows.values()],
            "sync_metadata": {
                "last_synced_at": (
                    self._bookmark.last_synced_at.isoformat()
                    if self._bookmark.last_synced_at
                    else None
                ),
                "total_issues": self._bookmark.total_issues,
            },
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def reload(self) -> None:
        if self.path is None:
            return
        with self._lock:
            self._rows = None
            logger.info("local_store_invalidated")

    def upsert(self, issues: list[Issue]) -> None:
        for issue in issues:
            if issue.embedding is None or len(issue.embedding) != self.dimensions:
                raise ValueError(
                    f"Issue #{issue.issue_number} embedding must have {self.dimensions} dimensions"
                )
        with self._lock:
            rows = self.rows
            for issue in issues:
                rows[issue.issue_number] = _copy(issue)
            self._flush()
        logger.debug("local_store_upserted", count=len(issues))

    def nearest_neighbors(
        self,
        query_vector: list[float],
        k: int,
        min_similarity: float = DEFAULT_MATCH_THRESHOLD,
    ) -> list[tuple[Issue, float]]:
        with self._lock:
            issues = list(self.rows.values())
        if not issues or k <= 0:
            return []

        matrix = np.asarray([issue.embedding for issue in issues], dtype=float)
        query = np.asarray(query_vector, dtype=float)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            similarities = np.where(norms > 0, matrix @ query / norms, 0.0)

        # Stable sort keeps insertion order among equal scores.
        order = np.argsort(-similarities, kind="stable")
        results = [
            (_copy(issues[i]), float(similarities[i]))
            for i in order
            if similarities[i] > min_similarity
        ]
        return results[:k]

    def get_by_numbers(self, numbers: Iterable[int]) -> list[Issue]:
        rows = self.rows
        return [_copy(rows[number]) for number in dict.fromkeys(numbers) if number in rows]

    def search_by_keywords(self, words: list[str]) -> list[Issue]:
        issues = list(self.rows.values())
        if not words:
            return [_copy(issue) for issue in issues]
        lowered = [word.lower() for word in words]
        return [
            _copy(issue)
            for issue in issues
            if any(word in issue.content.lower() for word in lowered)
        ]

    def get_bookmark(self) -> SyncBookmark:
        with self._lock:
            if self._rows is None:
                self._load()
            return SyncBookmark(
                last_synced_at=self._bookmark.last_synced_at,
                total_issues=self._bookmark.total_issues,
            )

    def set_bookmark(self, last_synced_at: datetime, total_issues: int) -> None:
        with self._lock:
            if self._rows is None:
                self._load()
            self._bookmark = SyncBookmark(last_synced_at=last_synced_at, total_issues=total_issues)
            self._flush()

    def count_all(self) -> int:
        return len(self.rows)
