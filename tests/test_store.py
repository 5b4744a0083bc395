"""Tests for issue stores."""

from datetime import datetime, timezone

import pytest

from issue_brain.models import Issue, IssueComment
from issue_brain.store.local import LocalIssueStore


def _issue(number, embedding=(1.0, 0.0, 0.0), **kwargs):
    values = {
        "issue_number": number,
        "title": f"Issue {number}",
        "body": "",
        "state": "open",
        "labels": [],
        "author": "octocat",
        "url": f"https://github.com/vercel/ai/issues/{number}",
        "content": f"Title: Issue {number}",
        "embedding": list(embedding) if embedding is not None else None,
    }
    values.update(kwargs)
    return Issue(**values)


class TestLocalIssueStore:
    """Tests for the in-memory exact scan store."""

    def test_upsert_replaces_by_issue_number(self, local_store):
        local_store.upsert([_issue(1, title="First")])
        local_store.upsert([_issue(1, title="Second")])

        rows = local_store.get_by_numbers([1])
        assert local_store.count_all() == 1
        assert rows[0].title == "Second"

    def test_upsert_is_idempotent(self, local_store):
        issues = [_issue(1), _issue(2)]
        local_store.upsert(issues)
        local_store.upsert(issues)
        assert local_store.count_all() == 2

    def test_linked_prs_are_stored_sorted(self, local_store):
        local_store.upsert([_issue(1, linked_prs=[5, 3, 9])])
        assert local_store.get_by_numbers([1])[0].linked_prs == [3, 5, 9]

    def test_upsert_rejects_wrong_dimensions(self, local_store):
        with pytest.raises(ValueError):
            local_store.upsert([_issue(1, embedding=(1.0, 0.0))])
        with pytest.raises(ValueError):
            local_store.upsert([_issue(2, embedding=None)])
        assert local_store.count_all() == 0

    def test_get_by_numbers_omits_missing(self, local_store):
        local_store.upsert([_issue(1), _issue(2)])
        assert [i.issue_number for i in local_store.get_by_numbers([2, 99, 1])] == [2, 1]
        assert local_store.get_by_numbers([]) == []

    def test_nearest_neighbors_ranked_and_thresholded(self, local_store):
        local_store.upsert(
            [
                _issue(1, embedding=(0.0, 1.0, 0.0)),  # orthogonal, similarity 0
                _issue(2, embedding=(1.0, 0.0, 0.0)),  # identical
                _issue(3, embedding=(1.0, 1.0, 0.0)),  # ~0.707
            ]
        )

        results = local_store.nearest_neighbors([1.0, 0.0, 0.0], k=5)

        assert [issue.issue_number for issue, _ in results] == [2, 3]
        assert results[0][1] == pytest.approx(1.0)
        assert results[1][1] == pytest.approx(0.7071, rel=1e-3)

    def test_nearest_neighbors_caps_at_k(self, local_store):
        local_store.upsert([_issue(n) for n in range(1, 6)])
        assert len(local_store.nearest_neighbors([1.0, 0.0, 0.0], k=2)) == 2

    def test_nearest_neighbors_ties_keep_insertion_order(self, local_store):
        local_store.upsert([_issue(30), _issue(10), _issue(20)])
        results = local_store.nearest_neighbors([1.0, 0.0, 0.0], k=3)
        assert [issue.issue_number for issue, _ in results] == [30, 10, 20]

    def test_nearest_neighbors_custom_threshold(self, local_store):
        local_store.upsert([_issue(1, embedding=(1.0, 1.0, 0.0))])
        assert local_store.nearest_neighbors([1.0, 0.0, 0.0], k=5, min_similarity=0.9) == []

    def test_nearest_neighbors_zero_query_vector(self, local_store):
        local_store.upsert([_issue(1)])
        assert local_store.nearest_neighbors([0.0, 0.0, 0.0], k=5) == []

    def test_nearest_neighbors_empty_store(self, local_store):
        assert local_store.nearest_neighbors([1.0, 0.0, 0.0], k=5) == []

    def test_search_by_keywords(self, local_store):
        local_store.upsert(
            [
                _issue(1, content="Streaming breaks with tools"),
                _issue(2, content="Docs typo"),
            ]
        )
        assert [i.issue_number for i in local_store.search_by_keywords(["STREAMING"])] == [1]
        assert local_store.count_all() == 2

    def test_bookmark_defaults_and_replace(self, local_store):
        assert local_store.get_bookmark().last_synced_at is None

        when = datetime(2025, 5, 1, tzinfo=timezone.utc)
        local_store.set_bookmark(when, 12)

        bookmark = local_store.get_bookmark()
        assert bookmark.last_synced_at == when
        assert bookmark.total_issues == 12

    def test_stored_rows_are_copies(self, local_store):
        issue = _issue(1, linked_prs=[2])
        local_store.upsert([issue])
        issue.linked_prs.append(99)
        assert local_store.get_by_numbers([1])[0].linked_prs == [2]

    def test_returned_rows_are_copies(self, local_store):
        local_store.upsert([_issue(1, linked_prs=[2], labels=["bug"])])

        local_store.get_by_numbers([1])[0].linked_prs.append(99)
        local_store.nearest_neighbors([1.0, 0.0, 0.0], k=1)[0][0].labels.append("ui")
        local_store.search_by_keywords(["issue"])[0].title = "Changed"

        stored = local_store.get_by_numbers([1])[0]
        assert stored.linked_prs == [2]
        assert stored.labels == ["bug"]
        assert stored.title == "Issue 1"


class TestLocalIssueStorePersistence:
    """Tests for the JSON file backing."""

    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "issues.json"
        store = LocalIssueStore(path=path, dimensions=3)
        synced = datetime(2025, 5, 1, tzinfo=timezone.utc)
        store.upsert(
            [
                _issue(
                    7,
                    labels=["bug"],
                    linked_prs=[4, 2],
                    comments=[IssueComment(body="hi", author="bob", created_at=synced)],
                    synced_at=synced,
                )
            ]
        )
        store.set_bookmark(synced, 1)

        reopened = LocalIssueStore(path=path, dimensions=3)
        issue = reopened.get_by_numbers([7])[0]

        assert issue.labels == ["bug"]
        assert issue.linked_prs == [2, 4]
        assert issue.comments[0].author == "bob"
        assert issue.synced_at == synced
        assert reopened.get_bookmark().last_synced_at == synced

    def test_reload_picks_up_external_writes(self, tmp_path):
        path = tmp_path / "issues.json"
        reader = LocalIssueStore(path=path, dimensions=3)
        assert reader.count_all() == 0

        writer = LocalIssueStore(path=path, dimensions=3)
        writer.upsert([_issue(1)])

        assert reader.count_all() == 0
        reader.reload()
        assert reader.count_all() == 1


class TestPostgresRowMapping:
    """Tests for Postgres row conversion."""

    def test_issue_to_row_sorts_linked_prs(self):
        from issue_brain.store.postgres import issue_to_row

        row = issue_to_row(_issue(1, linked_prs=[9, 3, 5, 3]))

        assert row["linked_prs"] == [3, 5, 9]
        assert row["issue_number"] == 1
        assert "id" not in row

    def test_row_to_issue(self):
        from issue_brain.store.postgres import row_to_issue

        issue = row_to_issue(
            {
                "issue_number": 4,
                "title": "T",
                "body": None,
                "state": "closed",
                "labels": None,
                "author": None,
                "url": None,
                "content": "c",
                "comments": [{"body": "x", "user": "amy", "created_at": None}],
                "linked_prs": [8, 2],
                "similarity": 0.5,
            }
        )

        assert issue.body == ""
        assert issue.labels == []
        assert issue.author == "unknown"
        assert issue.linked_prs == [2, 8]
        assert issue.comments[0].author == "amy"
        assert issue.embedding is None

    def test_rejects_other_dimensions(self):
        from issue_brain.store.postgres import PostgresIssueStore

        with pytest.raises(ValueError):
            PostgresIssueStore("postgresql+psycopg://localhost/test", dimensions=3)
