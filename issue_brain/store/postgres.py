"""PostgreSQL + pgvector issue store."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, insert
from sqlmodel import Column, Field, Session, SQLModel, select

from issue_brain.models import Issue, IssueComment, SyncBookmark
from issue_brain.store import DEFAULT_MATCH_THRESHOLD, IssueStore
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)

EMBEDDING_DIMENSIONS = 1536

MATCH_ISSUES_FUNCTION = f"""
create or replace function match_issues(
  query_embedding vector({EMBEDDING_DIMENSIONS}),
  match_count int default 5,
  match_threshold float default {DEFAULT_MATCH_THRESHOLD}
) returns table (
  id bigint, issue_number integer, title text, body text, state text,
  labels text[], author text, url text, created_at timestamptz,
  updated_at timestamptz, comments_count integer, comments jsonb,
  linked_prs integer[], content text, similarity float
) language sql stable as $$
  select i.id, i.issue_number, i.title, i.body, i.state, i.labels,
    i.author, i.url, i.created_at, i.updated_at, i.comments_count,
    i.comments, i.linked_prs, i.content,
    1 - (i.embedding <=> query_embedding) as similarity
  from issues i
  where 1 - (i.embedding <=> query_embedding) > match_threshold
  order by i.embedding <=> query_embedding, i.id
  limit match_count;
$$;
"""


def _timestamp_column() -> Any:
    return Field(default=None, sa_column=Column(sa.DateTime(timezone=True)))


class IssueRow(SQLModel, table=True):
    __tablename__ = "issues"

    id: int | None = Field(default=None, sa_column=Column(sa.BigInteger, primary_key=True))
    issue_number: int = Field(sa_column=Column(sa.Integer, nullable=False, unique=True))
    title: str = Field(sa_column=Column(sa.Text, nullable=False))
    body: str | None = Field(default=None, sa_column=Column(sa.Text))
    state: str = Field(sa_column=Column(sa.Text, nullable=False))
    labels: list[str] = Field(default_factory=list, sa_column=Column(ARRAY(sa.Text)))
    author: str | None = Field(default=None, sa_column=Column(sa.Text))
    url: str | None = Field(default=None, sa_column=Column(sa.Text))
    created_at: datetime | None = _timestamp_column()
    updated_at: datetime | None = _timestamp_column()
    comments_count: int = Field(default=0)
    comments: list[dict] = Field(default_factory=list, sa_column=Column(JSONB))
    linked_prs: list[int] = Field(default_factory=list, sa_column=Column(ARRAY(sa.Integer)))
    content: str = Field(sa_column=Column(sa.Text, nullable=False))
    embedding: list[float] | None = Field(
        default=None, sa_column=Column(Vector(EMBEDDING_DIMENSIONS))
    )
    synced_at: datetime | None = _timestamp_column()
    notified_at: datetime | None = _timestamp_column()


class SyncMetadata(SQLModel, table=True):
    __tablename__ = "sync_metadata"

    id: int = Field(default=1, primary_key=True)
    last_synced_at: datetime | None = _timestamp_column()
    total_issues: int = Field(default=0)


def issue_to_row(issue: Issue) -> dict[str, Any]:
    """Column values for an upsert of ``issue``."""
    return {
        "issue_number": issue.issue_number,
        "title": issue.title,
        "body": issue.body,
        "state": issue.state,
        "labels": list(issue.labels),
        "author": issue.author,
        "url": issue.url,
        "created_at": issue.created_at,
        "updated_at": issue.updated_at,
        "comments_count": issue.comments_count,
        "comments": [comment.to_dict() for comment in issue.comments],
        "linked_prs": sorted(set(issue.linked_prs)),
        "content": issue.content,
        "embedding": issue.embedding,
        "synced_at": issue.synced_at,
        "notified_at": issue.notified_at,
    }


def row_to_issue(data: dict[str, Any]) -> Issue:
    """Build an Issue from column values."""
    embedding = data.get("embedding")
    return Issue(
        issue_number=data["issue_number"],
        title=data["title"],
        body=data.get("body") or "",
        state=data["state"],
        labels=list(data.get("labels") or []),
        author=data.get("author") or "unknown",
        url=data.get("url") or "",
        content=data["content"],
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
        comments_count=data.get("comments_count") or 0,
        comments=[IssueComment.from_dict(c) for c in data.get("comments") or []],
        linked_prs=list(data.get("linked_prs") or []),
        embedding=[float(v) for v in embedding] if embedding is not None else None,
        synced_at=data.get("synced_at"),
        notified_at=data.get("notified_at"),
    )


class PostgresIssueStore(IssueStore):
    """Issue store over the ``issues`` and ``sync_metadata`` tables."""

    def __init__(self, database_url: str, dimensions: int = EMBEDDING_DIMENSIONS) -> None:
        if dimensions != EMBEDDING_DIMENSIONS:
            raise ValueError(
                f"Schema is built for {EMBEDDING_DIMENSIONS}-dimension embeddings, got {dimensions}"
            )
        self.dimensions = dimensions
        self.engine = sa.create_engine(database_url, pool_pre_ping=True)

    def create_schema(self) -> None:
        """Create the extension, tables, vector index and match function."""
        with self.engine.begin() as conn:
            conn.execute(sa.text("create extension if not exists vector"))
        SQLModel.metadata.create_all(self.engine, tables=[IssueRow.__table__, SyncMetadata.__table__])
        with self.engine.begin() as conn:
            conn.execute(
                sa.text(
                    "create index if not exists issues_embedding_idx on issues "
                    "using ivfflat (embedding vector_cosine_ops) with (lists = 100)"
                )
            )
            conn.execute(sa.text(MATCH_ISSUES_FUNCTION))
            conn.execute(
                sa.text("insert into sync_metadata (id) values (1) on conflict (id) do nothing")
            )
        logger.info("postgres_schema_created")

    def upsert(self, issues: list[Issue]) -> None:
        if not issues:
            return
        for issue in issues:
            if issue.embedding is None or len(issue.embedding) != self.dimensions:
                raise ValueError(
                    f"Issue #{issue.issue_number} embedding must have {self.dimensions} dimensions"
                )

        table = IssueRow.__table__
        stmt = insert(table).values([issue_to_row(issue) for issue in issues])
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.issue_number],
            set_={
                column.name: stmt.excluded[column.name]
                for column in table.columns
                if column.name not in ("id", "issue_number")
            },
        )
        with Session(self.engine) as session:
            session.execute(stmt)
            session.commit()
        logger.debug("postgres_upserted", count=len(issues))

    def nearest_neighbors(
        self,
        query_vector: list[float],
        k: int,
        min_similarity: float = DEFAULT_MATCH_THRESHOLD,
    ) -> list[tuple[Issue, float]]:
        stmt = sa.text(
            "select * from match_issues(:query_embedding, :match_count, :match_threshold)"
        ).bindparams(sa.bindparam("query_embedding", type_=Vector(self.dimensions)))

        with Session(self.engine) as session:
            rows = session.execute(
                stmt,
                {
                    "query_embedding": query_vector,
                    "match_count": k,
                    "match_threshold": min_similarity,
                },
            ).mappings().all()
        return [(row_to_issue(dict(row)), float(row["similarity"])) for row in rows]

    def get_by_numbers(self, numbers: Iterable[int]) -> list[Issue]:
        wanted = list(dict.fromkeys(numbers))
        if not wanted:
            return []
        with Session(self.engine) as session:
            rows = session.exec(select(IssueRow).where(IssueRow.issue_number.in_(wanted))).all()
            found = {row.issue_number: row_to_issue(row.model_dump()) for row in rows}
        return [found[number] for number in wanted if number in found]

    def search_by_keywords(self, words: list[str]) -> list[Issue]:
        stmt = select(IssueRow)
        if words:
            stmt = stmt.where(sa.or_(*[IssueRow.content.ilike(f"%{word}%") for word in words]))
        with Session(self.engine) as session:
            return [row_to_issue(row.model_dump()) for row in session.exec(stmt).all()]

    def get_bookmark(self) -> SyncBookmark:
        with Session(self.engine) as session:
            meta = session.get(SyncMetadata, 1)
            if meta is None:
                return SyncBookmark()
            return SyncBookmark(last_synced_at=meta.last_synced_at, total_issues=meta.total_issues)

    def set_bookmark(self, last_synced_at: datetime, total_issues: int) -> None:
        with Session(self.engine) as session:
            session.merge(
                SyncMetadata(id=1, last_synced_at=last_synced_at, total_issues=total_issues)
            )
            session.commit()

    def count_all(self) -> int:
        with Session(self.engine) as session:
            return session.exec(select(sa.func.count()).select_from(IssueRow)).one()
