"""Claude client for generating responses."""

import anthropic

from issue_brain.config import get_settings
from issue_brain.llm.prompts import ANSWER_WITH_CONTEXT_PROMPT, SYSTEM_PROMPT
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)


class ClaudeClient:
    """Client for interacting with Claude API."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.client = (
            anthropic.Anthropic(api_key=self.settings.anthropic_api_key)
            if self.settings.anthropic_api_key
            else None
        )

    def generate_response(
        self,
        question: str,
        context: str,
        conversation_history: list[dict] | None = None,
    ) -> str:
        """
        Generate a response to a question using provided context.

        Args:
            question: The user's question
            context: Formatted issues retrieved for the question
            conversation_history: Optional previous messages for context

        Returns:
            Generated response text
        """
        logger.info("generating_response", question=question[:100])

        if self.client is None:
            logger.warning("answer_generation_disabled")
            return "Answer generation is disabled because no Anthropic API key is configured."

        messages: list[dict] = []
        if conversation_history:
            messages.extend(conversation_history)

        user_message = ANSWER_WITH_CONTEXT_PROMPT.format(
            question=question,
            repo=self.settings.github_repo,
            context=context if context else "No relevant issues found.",
        )
        messages.append({"role": "user", "content": user_message})

        try:
            response = self.client.messages.create(
                model=self.settings.claude_model,
                max_tokens=2048,
                system=SYSTEM_PROMPT.format(repo=self.settings.github_repo),
                messages=messages,
            )

            answer = response.content[0].text
            logger.info(
                "response_generated",
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            )
            return answer

        except anthropic.APIError as e:
            logger.error("claude_api_error", error=str(e))
            return (
                "I'm sorry, I encountered an error while processing your question. "
                "Please try again in a moment."
            )


# Singleton instance
_client: ClaudeClient | None = None


def get_claude_client() -> ClaudeClient:
    """Get or create Claude client instance."""
    global _client
    if _client is None:
        _client = ClaudeClient()
    return _client
