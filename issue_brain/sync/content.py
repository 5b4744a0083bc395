"""Build the text stored and embedded for each issue."""

import re

from issue_brain.models import IssueComment, IssueRecord

TRUNCATION_MARKER = "\n\n[... truncated for length ...]"

# Raw NUL and its JSON escape both break the embedding request.
_NUL_PATTERN = re.compile(r"\\u0000|\x00")


def sanitize(text: str) -> str:
    """Strip NUL characters and literal NUL escapes, including ones exposed by a removal."""
    cleaned = _NUL_PATTERN.sub("", text)
    while cleaned != text:
        text = cleaned
        cleaned = _NUL_PATTERN.sub("", text)
    return cleaned


def truncate_text(text: str, max_chars: int) -> str:
    """Cut text to ``max_chars`` and append a visible marker when it was cut."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def max_chars_for(max_tokens: int, chars_per_token: float = 1.5) -> int:
    """Character cap approximating a token budget."""
    return int(max_tokens * chars_per_token)


def build_content(
    issue: IssueRecord,
    comments: list[IssueComment],
    max_tokens: int = 7000,
    chars_per_token: float = 1.5,
) -> str:
    """
    Render an issue and its comments as one text blob.

    The layout is title, number, state, labels, author, description and
    comments, in that order. The result is sanitized and then capped at
    ``max_tokens * chars_per_token`` characters, keeping the prefix.

    Args:
        issue: Issue as reported by the source
        comments: Comments in chronological order
        max_tokens: Token budget for the content
        chars_per_token: Characters assumed per token

    Returns:
        Content string, identical for identical input
    """
    comments_text = "\n\n".join(
        f"Comment by {comment.author}: {comment.body}" for comment in comments
    )
    comments_section = f"Comments:\n{comments_text}" if comments_text else ""

    text = (
        f"Title: {issue.title}\n"
        f"Number: #{issue.number}\n"
        f"State: {issue.state}\n"
        f"Labels: {', '.join(sorted(issue.labels))}\n"
        f"Author: {issue.author}\n"
        "\n"
        "Description:\n"
        f"{issue.body or ''}\n"
        "\n"
        f"{comments_section}"
    )
    return truncate_text(sanitize(text).strip(), max_chars_for(max_tokens, chars_per_token))
