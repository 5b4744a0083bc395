"""Domain records shared by the sync pipeline, the stores and retrieval."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class IssueComment:
    """A single comment on an issue."""

    body: str
    author: str
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "body": self.body,
            "user": self.author,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IssueComment":
        return cls(
            body=data.get("body") or "",
            author=data.get("user") or data.get("author") or "unknown",
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class IssueRecord:
    """An issue or pull request as reported by the issue source."""

    number: int
    title: str
    body: str
    state: str
    labels: list[str]
    author: str
    url: str
    created_at: datetime | None
    updated_at: datetime | None
    comments_count: int = 0
    is_pull_request: bool = False


@dataclass
class Issue:
    """A stored issue row."""

    issue_number: int
    title: str
    body: str
    state: str
    labels: list[str]
    author: str
    url: str
    content: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    comments_count: int = 0
    comments: list[IssueComment] = field(default_factory=list)
    linked_prs: list[int] = field(default_factory=list)
    embedding: list[float] | None = None
    synced_at: datetime | None = None
    notified_at: datetime | None = None

    def __post_init__(self) -> None:
        self.linked_prs = sorted(set(self.linked_prs))

    def add_linked_prs(self, prs) -> None:
        """Add PR numbers, keeping the list unique and ascending."""
        self.linked_prs = sorted(set(self.linked_prs) | set(prs))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable row."""
        return {
            "issue_number": self.issue_number,
            "title": self.title,
            "body": self.body,
            "state": self.state,
            "labels": list(self.labels),
            "author": self.author,
            "url": self.url,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
            "comments_count": self.comments_count,
            "comments": [c.to_dict() for c in self.comments],
            "linked_prs": list(self.linked_prs),
            "content": self.content,
            "embedding": self.embedding,
            "synced_at": _isoformat(self.synced_at),
            "notified_at": _isoformat(self.notified_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Issue":
        """Build an issue from a row produced by to_dict()."""
        return cls(
            issue_number=int(data["issue_number"]),
            title=data["title"],
            body=data.get("body") or "",
            state=data["state"],
            labels=list(data.get("labels") or []),
            author=data.get("author") or "unknown",
            url=data.get("url") or "",
            content=data["content"],
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            comments_count=data.get("comments_count") or 0,
            comments=[IssueComment.from_dict(c) for c in data.get("comments") or []],
            linked_prs=list(data.get("linked_prs") or []),
            embedding=data.get("embedding"),
            synced_at=parse_timestamp(data.get("synced_at")),
            notified_at=parse_timestamp(data.get("notified_at")),
        )


@dataclass
class SyncBookmark:
    """Cursor marking the last completed sync."""

    last_synced_at: datetime | None = None
    total_issues: int = 0


@dataclass
class SearchResult:
    """An issue returned by retrieval, with how it was found."""

    issue: Issue
    similarity: float
    explicit: bool = False
    analytical: bool = False

    @property
    def number(self) -> int:
        return self.issue.issue_number


@dataclass
class SyncResult:
    """Summary of one sync run."""

    synced: int = 0
    total: int | None = None
    notified: int = 0
    skipped: list[int] = field(default_factory=list)
    bookmark_advanced: bool = False


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by GitHub or stored rows."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
