"""Issue and pull request references found in free text."""

import re

PR_MENTION_PATTERN = re.compile(r"\b(?:PR|pull request|pull)\s*#?(\d+)", re.IGNORECASE)

# GitHub closing keywords: https://docs.github.com/issues/tracking-your-work-with-issues/linking-a-pull-request-to-an-issue
CLOSING_KEYWORD_PATTERN = re.compile(
    r"\b(?:fix(?:es|ed)?|close(?:s|d)?|resolve(?:s|d)?)\s+#(\d+)",
    re.IGNORECASE,
)

QUERY_ISSUE_PATTERNS = (
    re.compile(r"#(\d+)"),
    re.compile(r"\bissues?\s+#?(\d+)", re.IGNORECASE),
    re.compile(r"\b(\d{4,})\b"),
)


def _repo_patterns(repo: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    escaped = re.escape(repo)
    return (
        re.compile(rf"https?://github\.com/{escaped}/pull/(\d+)", re.IGNORECASE),
        re.compile(rf"{escaped}#(\d+)", re.IGNORECASE),
    )


def _collect(text: str, patterns) -> set[int]:
    numbers: set[int] = set()
    for pattern in patterns:
        numbers.update(int(match) for match in pattern.findall(text))
    return numbers


def extract_pr_links(text: str | None, repo: str) -> set[int]:
    """
    Find pull request numbers mentioned in issue text.

    Matches pull request URLs of ``repo``, natural-language mentions
    ("PR #12", "pull request 12", "pull 12") and ``owner/name#12`` shorthand.

    Args:
        text: Issue body or comment, may be None
        repo: Repository in ``owner/name`` form

    Returns:
        Set of PR numbers
    """
    if not text:
        return set()
    url_pattern, shorthand_pattern = _repo_patterns(repo)
    return _collect(text, (url_pattern, PR_MENTION_PATTERN, shorthand_pattern))


def extract_closing_references(text: str | None) -> set[int]:
    """Find issue numbers a pull request body declares it closes ("Fixes #12")."""
    if not text:
        return set()
    return _collect(text, (CLOSING_KEYWORD_PATTERN,))


def extract_issue_numbers(text: str | None) -> list[int]:
    """
    Find issue numbers a user query refers to.

    Broader than extract_pr_links: bare ``#N``, ``issue N`` and any bare
    number with four or more digits all count.

    Returns:
        Unique numbers in order of first appearance
    """
    if not text:
        return []
    found: list[tuple[int, int]] = []
    for pattern in QUERY_ISSUE_PATTERNS:
        for match in pattern.finditer(text):
            found.append((match.start(1), int(match.group(1))))

    numbers: list[int] = []
    for _, number in sorted(found):
        if number not in numbers:
            numbers.append(number)
    return numbers
