"""Issue retrieval and RAG question answering."""

from typing import Any

from issue_brain.config import get_settings
from issue_brain.llm.client import ClaudeClient, get_claude_client
from issue_brain.models import SearchResult
from issue_brain.retrieval.embeddings import EmbeddingClient, get_embedding_client
from issue_brain.retrieval.formatting import (
    build_conversation_query,
    format_issues_context,
    format_issues_context_lightweight,
)
from issue_brain.store import IssueStore, get_issue_store
from issue_brain.sync.references import extract_issue_numbers
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)

STOP_WORDS = frozenset({"what", "how", "many", "the", "is", "are", "of", "in", "to", "a", "an"})


class SearchError(Exception):
    """Retrieval failed; wraps the underlying store or embedding error."""


class RetrievalEngine:
    """Finds the issues most relevant to a free-text query."""

    def __init__(
        self,
        store: IssueStore | None = None,
        embedder: EmbeddingClient | None = None,
    ) -> None:
        self.settings = get_settings()
        self.store = store or get_issue_store()
        self.embedder = embedder or get_embedding_client()

    def search(self, query: str, k: int | None = None) -> list[SearchResult]:
        """
        Combine explicitly referenced issues with semantic matches.

        Issues the query names ("#123", "issue 123", "12345") come first with
        similarity 1.0 and are never dropped. The remaining ``k - len(explicit)``
        slots are filled with nearest neighbors not already listed.

        Args:
            query: User query
            k: Result cap (defaults to settings.retrieval_top_k)

        Returns:
            Ranked list of SearchResult

        Raises:
            SearchError: The store or the embedding call failed
        """
        if k is None:
            k = self.settings.retrieval_top_k

        try:
            explicit = [
                SearchResult(issue=issue, similarity=1.0, explicit=True)
                for issue in self.store.get_by_numbers(extract_issue_numbers(query))
            ]

            remaining = k - len(explicit)
            semantic: list[SearchResult] = []
            if remaining > 0:
                seen = {result.number for result in explicit}
                query_vector = self.embedder.embed_query(query)
                matches = self.store.nearest_neighbors(
                    query_vector, k, self.settings.similarity_threshold
                )
                semantic = [
                    SearchResult(issue=issue, similarity=similarity)
                    for issue, similarity in matches
                    if issue.issue_number not in seen
                ][:remaining]
        except Exception as e:
            logger.error("issue_search_error", error=str(e))
            raise SearchError(f"Issue search failed: {e}") from e

        logger.info(
            "issue_search_completed",
            query_length=len(query),
            explicit=len(explicit),
            semantic=len(semantic),
        )
        return explicit + semantic

    def search_all(self, query: str) -> list[SearchResult]:
        """Every issue whose content mentions a non-stopword term of ``query``."""
        words = [
            word
            for word in query.lower().split()
            if len(word) > 2 and word not in STOP_WORDS
        ]
        try:
            issues = self.store.search_by_keywords(words)
        except Exception as e:
            logger.error("issue_search_all_error", error=str(e))
            raise SearchError(f"Issue search failed: {e}") from e
        return [SearchResult(issue=issue, similarity=0.0, analytical=True) for issue in issues]

    def count_all(self) -> int:
        """Total number of stored issues."""
        try:
            return self.store.count_all()
        except Exception as e:
            raise SearchError(f"Issue count failed: {e}") from e

    def refresh(self) -> None:
        """Reload cached store contents after an out-of-process sync."""
        self.store.reload()


class RAGQueryEngine:
    """Answers questions about the repository from retrieved issues."""

    def __init__(
        self,
        retrieval: RetrievalEngine | None = None,
        claude_client: ClaudeClient | None = None,
    ) -> None:
        self.settings = get_settings()
        self.retrieval = retrieval or get_retrieval_engine()
        self.claude_client = claude_client or get_claude_client()

    def query(
        self,
        question: str,
        history: list[dict[str, str]] | None = None,
        analytical: bool = False,
    ) -> dict[str, Any]:
        """
        Process a question using RAG.

        Args:
            question: User's question
            history: Earlier turns as {"role", "content"} dicts
            analytical: Answer over every keyword match ("how many issues mention X")
                instead of the top semantic matches

        Returns:
            Dict with 'answer', 'sources' and 'issues'
        """
        logger.info("rag_query_started", question=question[:100], analytical=analytical)

        if analytical:
            results = self.retrieval.search_all(question)
            total = self.retrieval.count_all()
            context = (
                f"Total issues in {self.settings.github_repo}: {total}\n"
                f"Issues matching the question: {len(results)}\n\n"
                f"{format_issues_context_lightweight(results)}"
            )
        else:
            search_query = build_conversation_query(question, history)
            results = self.retrieval.search(search_query, self.settings.retrieval_top_k)
            context = format_issues_context(results, self.settings.github_repo)

        answer = self.claude_client.generate_response(question, context, history)

        logger.info("rag_query_completed", context_issues=len(results))
        return {
            "answer": answer,
            "sources": [r.issue.url for r in results if r.issue.url],
            "issues": [
                {
                    "number": r.number,
                    "title": r.issue.title,
                    "url": r.issue.url,
                    "similarity": r.similarity,
                    "explicit": r.explicit,
                    "linked_prs": r.issue.linked_prs,
                }
                for r in results
            ],
        }


# Singleton instances
_retrieval: RetrievalEngine | None = None
_engine: RAGQueryEngine | None = None


def get_retrieval_engine() -> RetrievalEngine:
    """Get or create retrieval engine instance."""
    global _retrieval
    if _retrieval is None:
        _retrieval = RetrievalEngine()
    return _retrieval


def get_rag_engine() -> RAGQueryEngine:
    """Get or create RAG query engine instance."""
    global _engine
    if _engine is None:
        _engine = RAGQueryEngine()
    return _engine
