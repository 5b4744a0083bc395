"""Tests for issue and pull request reference extraction."""

from issue_brain.sync.references import (
    extract_closing_references,
    extract_issue_numbers,
    extract_pr_links,
)

REPO = "vercel/ai"


class TestExtractPRLinks:
    """Tests for PR links found in issue text."""

    def test_none_and_empty_return_empty_set(self):
        assert extract_pr_links(None, REPO) == set()
        assert extract_pr_links("", REPO) == set()

    def test_pull_request_url(self):
        text = "See https://github.com/vercel/ai/pull/1234 for the fix"
        assert extract_pr_links(text, REPO) == {1234}

    def test_url_of_other_repository_is_ignored(self):
        text = "Upstream https://github.com/other/repo/pull/55 changed this"
        assert extract_pr_links(text, REPO) == set()

    def test_natural_language_mentions(self):
        text = "Fixed in PR #12, also pull request 34 and pull 56. pr#78 too."
        assert extract_pr_links(text, REPO) == {12, 34, 56, 78}

    def test_repo_shorthand(self):
        assert extract_pr_links("Duplicate of vercel/ai#999", REPO) == {999}

    def test_same_number_from_several_patterns_appears_once(self):
        text = (
            "PR #42 (https://github.com/vercel/ai/pull/42, vercel/ai#42) "
            "and pull request 42 again"
        )
        result = extract_pr_links(text, REPO)
        assert result == {42}

    def test_plain_issue_reference_is_not_a_pr(self):
        assert extract_pr_links("Related to #77", REPO) == set()


class TestExtractClosingReferences:
    """Tests for closing keywords in pull request bodies."""

    def test_none_returns_empty_set(self):
        assert extract_closing_references(None) == set()

    def test_all_keywords(self):
        text = (
            "fix #1, fixes #2, fixed #3, close #4, closes #5, closed #6, "
            "resolve #7, resolves #8, resolved #9"
        )
        assert extract_closing_references(text) == set(range(1, 10))

    def test_case_insensitive(self):
        assert extract_closing_references("Fixes #42\nCLOSES #43") == {42, 43}

    def test_mentions_without_keyword_are_ignored(self):
        assert extract_closing_references("Related to #42, see #43") == set()

    def test_duplicates_collapse(self):
        assert extract_closing_references("Fixes #42. Also fixes #42.") == {42}


class TestExtractIssueNumbers:
    """Tests for the broad query grammar."""

    def test_hash_reference(self):
        assert extract_issue_numbers("tell me about #7000") == [7000]

    def test_issue_word(self):
        assert extract_issue_numbers("what happened in issue 12 and issues #34") == [12, 34]

    def test_bare_large_number(self):
        assert extract_issue_numbers("is 4521 fixed?") == [4521]

    def test_short_bare_number_is_not_a_reference(self):
        assert extract_issue_numbers("top 5 bugs") == []

    def test_order_of_first_appearance_without_duplicates(self):
        assert extract_issue_numbers("#200 and issue 100, again #200 and 1234") == [200, 100, 1234]

    def test_empty_query(self):
        assert extract_issue_numbers("") == []
        assert extract_issue_numbers(None) == []
