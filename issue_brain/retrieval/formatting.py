"""Render retrieved issues as LLM context."""

from issue_brain.models import SearchResult


def relevance_label(result: SearchResult) -> str:
    """Describe how a result was found."""
    if result.explicit:
        return "Explicitly mentioned"
    if result.analytical:
        return "Retrieved for analysis"
    return f"{result.similarity * 100:.1f}% match"


def format_issues_context(results: list[SearchResult], repo: str) -> str:
    """
    Format search results into the context block given to the model.

    Args:
        results: Ranked search results
        repo: Repository in ``owner/name`` form, used for PR links

    Returns:
        One block per issue, separated by ``---`` lines
    """
    blocks = []
    for result in results:
        issue = result.issue
        pr_links = (
            ", ".join(f"https://github.com/{repo}/pull/{pr}" for pr in issue.linked_prs)
            or "None"
        )
        blocks.append(
            f"[Issue #{issue.issue_number}] {issue.title}\n"
            f"State: {issue.state}\n"
            f"Labels: {', '.join(issue.labels) or 'None'}\n"
            f"URL: {issue.url}\n"
            f"Linked PRs: {pr_links}\n"
            f"Relevance: {relevance_label(result)}\n"
            "\n"
            "Content:\n"
            f"{issue.content}\n"
            "---\n"
        )
    return "\n".join(blocks)


def format_issues_context_lightweight(results: list[SearchResult]) -> str:
    """One ``#N: title`` line per result."""
    return "\n".join(f"#{r.issue.issue_number}: {r.issue.title}" for r in results)


def build_conversation_query(message: str, history: list[dict[str, str]] | None = None) -> str:
    """
    Fold the last two conversation turns into the retrieval query.

    Assistant turns are summarised to their first 100 characters.
    """
    recent = (history or [])[-4:]
    if not recent:
        return message

    parts = []
    for turn in recent:
        if turn.get("role") == "user":
            parts.append(turn.get("content", ""))
        elif turn.get("role") == "assistant":
            parts.append(turn.get("content", "")[:100].replace("\n", " "))

    return f"{' '.join(parts)}\n\nCurrent question: {message}"
