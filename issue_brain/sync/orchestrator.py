"""Incremental GitHub issue sync into the issue store."""

from collections.abc import Callable, Iterator
from datetime import datetime, timezone

from issue_brain.config import get_settings
from issue_brain.models import Issue, IssueRecord, SyncResult
from issue_brain.retrieval.embeddings import EmbeddingClient, get_embedding_client
from issue_brain.store import IssueStore, get_issue_store
from issue_brain.sync.content import build_content
from issue_brain.sync.notifications import IssueNotifier
from issue_brain.sync.references import extract_closing_references, extract_pr_links
from issue_brain.sync.sources.github import GitHubIssueSource, get_github_source
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _chunks(items: list[Issue], size: int) -> Iterator[list[Issue]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class IssueSyncer:
    """Pulls issues from GitHub, embeds them and upserts them into the store.

    One call to ``sync()`` is one pass: read the bookmark, fetch and classify
    everything updated since, link pull requests to the issues they close,
    embed and persist in chunks, then commit the bookmark. A run that dies
    before the commit leaves the old bookmark, so the next run repeats the
    same window; upserts make the repetition harmless.
    """

    def __init__(
        self,
        source: GitHubIssueSource | None = None,
        store: IssueStore | None = None,
        embedder: EmbeddingClient | None = None,
        notifier: IssueNotifier | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = get_settings()
        self.source = source or get_github_source()
        self.store = store or get_issue_store()
        self.embedder = embedder or get_embedding_client()
        self.notifier = notifier or IssueNotifier()
        self.now = now
        self.repo = self.settings.github_repo
        self.batch_size = self.settings.embedding_batch_size

    def sync(self) -> SyncResult:
        """
        Run one sync pass.

        Returns:
            SyncResult with counts and the numbers of skipped issues

        Raises:
            httpx.HTTPError: The issue source failed for a reason other than
                rate limiting; the bookmark is left untouched
        """
        # Issues updated while this run is in flight must fall inside the next window.
        started_at = self.now()
        bookmark = self.store.get_bookmark()
        since = bookmark.last_synced_at
        logger.info(
            "sync_started",
            last_synced_at=since.isoformat() if since else None,
            mode="incremental" if since else "full",
        )

        issues, pr_references = self._fetch(since)

        if not issues:
            logger.info("sync_no_new_issues")
            if self.notifier.test_mode:
                self.notifier.send_summary("No new or updated issues found.")
            return SyncResult()

        self._link_pull_requests(issues, pr_references)
        logger.info("sync_issues_collected", issues=len(issues), pull_requests=len(pr_references))

        result = SyncResult()
        ordered = list(issues.values())
        chunk_count = (len(ordered) + self.batch_size - 1) // self.batch_size
        for index, chunk in enumerate(_chunks(ordered, self.batch_size), 1):
            logger.info("sync_chunk_started", chunk=index, chunks=chunk_count)
            try:
                persisted, notified = self._persist_chunk(chunk)
            except Exception as e:
                logger.error("sync_chunk_error", chunk=index, error=str(e))
                result.skipped.extend(issue.issue_number for issue in chunk)
                continue
            result.synced += len(persisted)
            result.notified += notified
            result.skipped.extend(
                issue.issue_number for issue in chunk if issue.issue_number not in persisted
            )

        if self.notifier.test_mode and result.notified == 0:
            self.notifier.send_summary(f"Synced {len(ordered)} issues, none were new.")

        self._commit_bookmark(result, issues, started_at)
        logger.info(
            "sync_completed",
            synced=result.synced,
            skipped=len(result.skipped),
            total=result.total,
            notified=result.notified,
        )
        return result

    def _fetch(self, since: datetime | None) -> tuple[dict[int, Issue], dict[int, set[int]]]:
        """Stream the source, building issues and collecting PR closing references."""
        issues: dict[int, Issue] = {}
        pr_references: dict[int, set[int]] = {}

        for record in self.source.list_issues(since=since):
            if record.is_pull_request:
                references = extract_closing_references(record.body)
                if references:
                    pr_references[record.number] = references
                continue

            # Pages shift while items are updated mid-sync; keep the first copy.
            if record.number in issues:
                continue
            issues[record.number] = self._build_issue(record)

        return issues, pr_references

    def _build_issue(self, record: IssueRecord) -> Issue:
        comments = self.source.list_comments(record.number) if record.comments_count > 0 else []

        linked_prs = extract_pr_links(record.body, self.repo)
        for comment in comments:
            linked_prs |= extract_pr_links(comment.body, self.repo)

        return Issue(
            issue_number=record.number,
            title=record.title,
            body=record.body,
            state=record.state,
            labels=record.labels,
            author=record.author,
            url=record.url,
            created_at=record.created_at,
            updated_at=record.updated_at,
            comments_count=record.comments_count,
            comments=comments,
            linked_prs=sorted(linked_prs),
            content=build_content(
                record,
                comments,
                max_tokens=self.settings.content_max_tokens,
                chars_per_token=self.settings.chars_per_token,
            ),
        )

    @staticmethod
    def _link_pull_requests(issues: dict[int, Issue], pr_references: dict[int, set[int]]) -> None:
        for pr_number, issue_numbers in pr_references.items():
            for issue_number in issue_numbers:
                issue = issues.get(issue_number)
                if issue is not None:
                    issue.add_linked_prs([pr_number])

    def _embed(self, chunk: list[Issue]) -> list[Issue]:
        """Attach embeddings, falling back to one request per issue when the batch fails."""
        try:
            vectors = self.embedder.embed_batch([issue.content for issue in chunk])
        except Exception as e:
            logger.warning("batch_embedding_fallback", count=len(chunk), error=str(e))
        else:
            for issue, vector in zip(chunk, vectors, strict=True):
                issue.embedding = vector
            return chunk

        embedded = []
        for issue in chunk:
            try:
                issue.embedding = self.embedder.embed_batch([issue.content])[0]
            except Exception as e:
                logger.warning(
                    "issue_embedding_skipped",
                    issue_number=issue.issue_number,
                    error=str(e)[:80],
                )
                continue
            embedded.append(issue)
        return embedded

    def _upsert(self, issues: list[Issue]) -> set[int]:
        """Upsert issues, retrying one by one when the batch write fails."""
        if not issues:
            return set()
        try:
            self.store.upsert(issues)
            return {issue.issue_number for issue in issues}
        except Exception as e:
            logger.warning("batch_upsert_fallback", count=len(issues), error=str(e))

        persisted = set()
        for issue in issues:
            try:
                self.store.upsert([issue])
            except Exception as e:
                logger.error("issue_upsert_error", issue_number=issue.issue_number, error=str(e))
                continue
            persisted.add(issue.issue_number)
        return persisted

    def _persist_chunk(self, chunk: list[Issue]) -> tuple[set[int], int]:
        """Merge with stored rows, embed, notify and upsert one chunk."""
        existing = {
            issue.issue_number: issue
            for issue in self.store.get_by_numbers([issue.issue_number for issue in chunk])
        }
        for issue in chunk:
            stored = existing.get(issue.issue_number)
            if stored is None:
                continue
            # PR links are only ever added.
            issue.add_linked_prs(stored.linked_prs)
            issue.notified_at = stored.notified_at

        embedded = self._embed(chunk)
        notified = self.notifier.notify(embedded, existing)

        synced_at = self.now()
        for issue in embedded:
            issue.synced_at = synced_at
        return self._upsert(embedded), notified

    def _commit_bookmark(
        self, result: SyncResult, issues: dict[int, Issue], started_at: datetime
    ) -> None:
        total = self.store.count_all()
        last_synced_at = started_at

        # Hold the bookmark back so skipped issues fall inside the next window.
        skipped_updates = [
            issues[number].updated_at
            for number in result.skipped
            if issues[number].updated_at is not None
        ]
        if skipped_updates:
            last_synced_at = min(last_synced_at, *skipped_updates)
            logger.warning(
                "sync_bookmark_held_back",
                skipped=len(result.skipped),
                last_synced_at=last_synced_at.isoformat(),
            )

        self.store.set_bookmark(last_synced_at, total)
        result.total = total
        result.bookmark_advanced = True


# Singleton instance
_syncer: IssueSyncer | None = None


def get_syncer() -> IssueSyncer:
    """Get or create issue syncer instance."""
    global _syncer
    if _syncer is None:
        _syncer = IssueSyncer()
    return _syncer
