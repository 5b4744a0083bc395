"""OpenAI embeddings for semantic search."""

from functools import lru_cache

import tiktoken
from openai import OpenAI

from issue_brain.config import get_settings
from issue_brain.utils.cache import cached
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)


class EmbeddingClient:
    """Client for generating text embeddings using OpenAI."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.client = OpenAI(api_key=self.settings.openai_api_key)
        self.model = self.settings.embedding_model
        self.dimensions = self.settings.embedding_dimensions
        self.max_input_tokens = self.settings.embedding_max_input_tokens
        try:
            self.tokenizer = tiktoken.encoding_for_model(self.model)
        except KeyError:
            self.tokenizer = tiktoken.get_encoding("cl100k_base")

    def count_tokens(self, text: str) -> int:
        """Count tokens in text."""
        return len(self.tokenizer.encode(text))

    def _fit(self, text: str) -> str:
        """Clip text to the model's input ceiling."""
        tokens = self.tokenizer.encode(text)
        if len(tokens) <= self.max_input_tokens:
            return text
        logger.warning("embedding_input_clipped", tokens=len(tokens))
        return self.tokenizer.decode(tokens[: self.max_input_tokens])

    def embed_text(self, text: str) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats
        """
        if not text.strip():
            logger.warning("empty_text_for_embedding")
            return [0.0] * self.dimensions

        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=self._fit(text),
            )
            if not response.data:
                raise ValueError("Embedding response contained no data")
            embedding = response.data[0].embedding
            logger.debug(
                "text_embedded",
                tokens=response.usage.total_tokens,
            )
            return embedding

        except Exception as e:
            logger.error("embedding_error", error=str(e))
            raise

    def embed_query(self, text: str) -> list[float]:
        """Embed a search query, caching the vector in Redis."""
        return self._query_embedding(self.model, self.dimensions, text)

    # Model and dimensions are part of the key so a model change never serves stale vectors.
    @cached(prefix="query_embedding", method=True)
    def _query_embedding(self, model: str, dimensions: int, text: str) -> list[float]:
        return self.embed_text(text)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for multiple texts in one request.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors, aligned with texts

        Raises:
            Exception: Any API failure; callers decide how to fall back
        """
        if not texts:
            return []

        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=[self._fit(text) for text in texts],
            )
            if len(response.data) != len(texts):
                raise ValueError(
                    f"Expected {len(texts)} embeddings, got {len(response.data)}"
                )

            embeddings = [item.embedding for item in response.data]
            logger.info(
                "batch_embedded",
                count=len(texts),
                tokens=response.usage.total_tokens,
            )
            return embeddings

        except Exception as e:
            logger.error("batch_embedding_error", error=str(e), count=len(texts))
            raise


@lru_cache(maxsize=1)
def get_embedding_client() -> EmbeddingClient:
    """Get or create embedding client instance."""
    return EmbeddingClient()
