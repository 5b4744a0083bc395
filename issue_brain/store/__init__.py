"""Persistent issue stores."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from functools import lru_cache

from issue_brain.config import get_settings
from issue_brain.models import Issue, SyncBookmark

DEFAULT_MATCH_THRESHOLD = 0.15


class IssueStore(ABC):
    """System of record for synced issues.

    Rows are keyed by ``issue_number``. Writes replace whole rows, so calling
    ``upsert`` repeatedly with overlapping issues is safe.
    """

    @abstractmethod
    def upsert(self, issues: list[Issue]) -> None:
        """Insert new rows or replace existing ones by issue number."""

    @abstractmethod
    def nearest_neighbors(
        self,
        query_vector: list[float],
        k: int,
        min_similarity: float = DEFAULT_MATCH_THRESHOLD,
    ) -> list[tuple[Issue, float]]:
        """Up to ``k`` issues with cosine similarity above ``min_similarity``, best first."""

    @abstractmethod
    def get_by_numbers(self, numbers: Iterable[int]) -> list[Issue]:
        """Exact-key lookup; numbers without a row are omitted."""

    @abstractmethod
    def search_by_keywords(self, words: list[str]) -> list[Issue]:
        """Issues whose content contains any of ``words`` (case-insensitive)."""

    @abstractmethod
    def get_bookmark(self) -> SyncBookmark:
        """Read the sync bookmark."""

    @abstractmethod
    def set_bookmark(self, last_synced_at: datetime, total_issues: int) -> None:
        """Replace the sync bookmark."""

    @abstractmethod
    def count_all(self) -> int:
        """Total number of stored issues."""

    def reload(self) -> None:
        """Drop any cached rows so the next read sees the backing storage."""


@lru_cache(maxsize=1)
def get_issue_store() -> IssueStore:
    """Get or create the configured issue store."""
    settings = get_settings()
    if settings.store_backend == "local":
        from issue_brain.store.local import LocalIssueStore

        return LocalIssueStore(
            path=settings.local_store_path,
            dimensions=settings.embedding_dimensions,
        )

    from issue_brain.store.postgres import PostgresIssueStore

    return PostgresIssueStore(settings.database_url, dimensions=settings.embedding_dimensions)
