"""GitHub issues API as a paginated, rate-limit aware issue source."""

import time
from collections.abc import Callable, Iterator
from datetime import datetime
from enum import Enum
from typing import Any

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_never

from issue_brain.config import get_settings
from issue_brain.models import IssueComment, IssueRecord, parse_timestamp
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimitExceeded(Exception):
    """The API quota is exhausted until ``reset_at`` (epoch seconds)."""

    def __init__(self, reset_at: float) -> None:
        super().__init__(f"GitHub rate limit exhausted, resets at {reset_at:.0f}")
        self.reset_at = reset_at


class RateLimitState(str, Enum):
    READY = "ready"
    RATE_LIMITED = "rate_limited"
    WAITING = "waiting"
    RETRYING = "retrying"


def normalize_labels(labels: list[Any] | None) -> list[str]:
    """Reduce GitHub label entries (strings or {name} objects) to unique names."""
    names: list[str] = []
    for label in labels or []:
        name = label if isinstance(label, str) else (label or {}).get("name")
        if name and name not in names:
            names.append(name)
    return names


def _login(user: dict | None) -> str:
    return (user or {}).get("login") or "unknown"


class GitHubIssueSource:
    """Client for the GitHub issues REST API of a single repository."""

    def __init__(
        self,
        repo: str | None = None,
        token: str | None = None,
        http_client: httpx.Client | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        rate_limit_buffer: float | None = None,
        page_size: int | None = None,
    ) -> None:
        self.settings = get_settings()
        self.repo = repo or self.settings.github_repo
        self.page_size = page_size or self.settings.sync_page_size
        self.rate_limit_buffer = (
            self.settings.rate_limit_buffer_seconds
            if rate_limit_buffer is None
            else rate_limit_buffer
        )
        self.clock = clock
        self.sleep = sleep
        self.state = RateLimitState.READY
        self.client = http_client or httpx.Client(
            base_url=self.settings.github_api_url,
            timeout=30,
            headers={
                "Authorization": f"Bearer {token or self.settings.github_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )
        self._retrying = Retrying(
            retry=retry_if_exception_type(RateLimitExceeded),
            stop=stop_never,
            wait=self._wait_for_reset,
            sleep=self._sleep,
            before=self._before_attempt,
        )

    def _wait_for_reset(self, retry_state: RetryCallState) -> float:
        """Seconds until the quota resets, plus the skew buffer."""
        self.state = RateLimitState.RATE_LIMITED
        error = retry_state.outcome.exception()
        return max(error.reset_at - self.clock(), 0) + self.rate_limit_buffer

    def _sleep(self, seconds: float) -> None:
        self.state = RateLimitState.WAITING
        logger.warning(
            "github_rate_limited",
            wait_seconds=round(seconds, 1),
            wait_minutes=round(seconds / 60, 1),
        )
        self.sleep(seconds)

    def _before_attempt(self, retry_state: RetryCallState) -> None:
        if retry_state.attempt_number > 1:
            self.state = RateLimitState.RETRYING
            logger.info("github_request_retrying", attempt=retry_state.attempt_number)

    def _send(self, endpoint: str, params: dict | None) -> Any:
        response = self.client.get(endpoint, params=params)
        if (
            response.status_code in (403, 429)
            and response.headers.get("x-ratelimit-remaining") == "0"
        ):
            raise RateLimitExceeded(float(response.headers.get("x-ratelimit-reset", "0")))
        response.raise_for_status()
        return response.json()

    def _request(self, endpoint: str, params: dict | None = None) -> Any:
        """GET an endpoint, waiting out rate limits; other errors propagate."""
        result = self._retrying(self._send, endpoint, params)
        self.state = RateLimitState.READY
        return result

    def list_issues(self, since: datetime | None = None) -> Iterator[IssueRecord]:
        """
        Page through every issue and pull request of the repository.

        Args:
            since: Only return items updated at or after this time

        Yields:
            IssueRecord objects, most recently updated first
        """
        page = 1
        while True:
            params: dict[str, Any] = {
                "state": "all",
                "per_page": self.page_size,
                "page": page,
                "sort": "updated",
                "direction": "desc",
            }
            if since is not None:
                params["since"] = since.isoformat()

            items = self._request(f"/repos/{self.repo}/issues", params=params)
            if not items:
                break

            logger.info("github_page_fetched", page=page, count=len(items))
            for item in items:
                yield self._to_record(item)
            page += 1

    def list_comments(self, issue_number: int) -> list[IssueComment]:
        """Fetch every comment of an issue in chronological order."""
        comments: list[IssueComment] = []
        page = 1
        while True:
            items = self._request(
                f"/repos/{self.repo}/issues/{issue_number}/comments",
                params={"per_page": self.page_size, "page": page},
            )
            comments.extend(
                IssueComment(
                    body=item.get("body") or "",
                    author=_login(item.get("user")),
                    created_at=parse_timestamp(item.get("created_at")),
                )
                for item in items
            )
            if len(items) < self.page_size:
                break
            page += 1
        return comments

    def _to_record(self, item: dict[str, Any]) -> IssueRecord:
        return IssueRecord(
            number=item["number"],
            title=item.get("title") or "",
            body=item.get("body") or "",
            state=item.get("state") or "open",
            labels=normalize_labels(item.get("labels")),
            author=_login(item.get("user")),
            url=item.get("html_url") or "",
            created_at=parse_timestamp(item.get("created_at")),
            updated_at=parse_timestamp(item.get("updated_at")),
            comments_count=item.get("comments") or 0,
            is_pull_request="pull_request" in item,
        )


# Singleton instance
_source: GitHubIssueSource | None = None


def get_github_source() -> GitHubIssueSource:
    """Get or create GitHub issue source instance."""
    global _source
    if _source is None:
        _source = GitHubIssueSource()
    return _source
