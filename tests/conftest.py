"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from issue_brain.models import IssueComment, IssueRecord

DIMENSIONS = 3
BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Set up test environment variables."""
    env_vars = {
        "GITHUB_TOKEN": "test-github-token",
        "GITHUB_REPO": "vercel/ai",
        "OPENAI_API_KEY": "test-openai-key",
        "ANTHROPIC_API_KEY": "test-anthropic-key",
        "STORE_BACKEND": "local",
        "REDIS_URL": "redis://localhost:6379",
        "NOTIFICATION_WEBHOOK_URL": "",
        "NOTIFICATION_TEST_MODE": "false",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def mock_redis(monkeypatch):
    """Mock the Redis client."""
    import issue_brain.utils.cache as cache

    monkeypatch.setattr(cache, "_redis_client", None)
    with patch("redis.from_url") as mock:
        client = MagicMock()
        mock.return_value = client
        client.get.return_value = None  # Cache miss by default
        yield client


@pytest.fixture
def mock_tiktoken():
    """Character-level tokenizer so tests never download BPE files."""
    with patch("issue_brain.retrieval.embeddings.tiktoken") as mock:
        tokenizer = MagicMock()
        tokenizer.encode.side_effect = lambda text: list(text)
        tokenizer.decode.side_effect = lambda tokens: "".join(tokens)
        mock.encoding_for_model.return_value = tokenizer
        yield tokenizer


class FakeEmbedder:
    """Embedding provider returning fixed-length vectors.

    Texts containing ``fail_marker`` make any request that includes them fail.
    ``vectors`` maps a substring to the vector for texts containing it.
    """

    def __init__(self, fail_marker: str | None = None, vectors: dict | None = None):
        self.fail_marker = fail_marker
        self.vectors = vectors or {}
        self.batch_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    def _vector(self, text: str) -> list[float]:
        for needle, vector in self.vectors.items():
            if needle in text:
                return list(vector)
        return [1.0, 0.0, 0.0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls.append(list(texts))
        if self.fail_marker and any(self.fail_marker in text for text in texts):
            raise RuntimeError("invalid input")
        return [self._vector(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self._vector(text)


class FakeSource:
    """Issue source over in-memory records, honouring ``since``."""

    def __init__(self, records=None, comments=None):
        self.records: list[IssueRecord] = list(records or [])
        self.comments: dict[int, list[IssueComment]] = dict(comments or {})
        self.since_calls: list = []
        self.comment_calls: list[int] = []

    def list_issues(self, since=None):
        self.since_calls.append(since)
        for record in sorted(self.records, key=lambda r: r.updated_at, reverse=True):
            if since is None or record.updated_at >= since:
                yield record

    def list_comments(self, issue_number):
        self.comment_calls.append(issue_number)
        return list(self.comments.get(issue_number, []))


def make_record(number: int, body: str = "", minutes: int = 0, **kwargs) -> IssueRecord:
    """IssueRecord updated ``minutes`` after BASE_TIME."""
    values = {
        "number": number,
        "title": f"Issue {number}",
        "body": body,
        "state": "open",
        "labels": [],
        "author": "octocat",
        "url": f"https://github.com/vercel/ai/issues/{number}",
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME + timedelta(minutes=minutes),
        "comments_count": 0,
        "is_pull_request": False,
    }
    values.update(kwargs)
    return IssueRecord(**values)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def local_store():
    from issue_brain.store.local import LocalIssueStore

    return LocalIssueStore(dimensions=DIMENSIONS)


@pytest.fixture
def disabled_notifier():
    from issue_brain.sync.notifications import IssueNotifier

    return IssueNotifier(webhook_url="", test_mode=False)
