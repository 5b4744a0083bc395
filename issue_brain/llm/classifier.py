"""Semantic urgency classification for newly synced issues."""

import json

import anthropic

from issue_brain.config import get_settings
from issue_brain.llm.prompts import URGENCY_PROMPT
from issue_brain.models import Issue
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)


class UrgencyClassifier:
    """Asks Claude whether an issue describes an urgent problem."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.client = (
            anthropic.Anthropic(api_key=self.settings.anthropic_api_key)
            if self.settings.anthropic_api_key
            else None
        )

    def is_urgent(self, issue: Issue) -> bool:
        """
        Classify an issue as urgent or not.

        Args:
            issue: Issue to classify

        Returns:
            True only when the model clearly says so; any failure counts as not urgent
        """
        if self.client is None:
            return False

        try:
            message = self.client.messages.create(
                model=self.settings.claude_model,
                max_tokens=256,
                messages=[
                    {
                        "role": "user",
                        "content": URGENCY_PROMPT.format(
                            title=issue.title,
                            body=issue.body[:1000] or "No description",
                        ),
                    }
                ],
            )

            response_text = message.content[0].text.strip()

            try:
                result = json.loads(response_text)
            except json.JSONDecodeError:
                logger.warning(
                    "urgency_parse_error",
                    issue_number=issue.issue_number,
                    raw_response=response_text,
                )
                return False

            urgent = result.get("is_urgent") is True
            if urgent:
                logger.info(
                    "issue_semantically_urgent",
                    issue_number=issue.issue_number,
                    reason=result.get("reason", ""),
                )
            return urgent

        except anthropic.APIError as e:
            logger.error("urgency_api_error", issue_number=issue.issue_number, error=str(e))
            return False


# Singleton instance
_classifier: UrgencyClassifier | None = None


def get_classifier() -> UrgencyClassifier:
    """Get or create classifier instance."""
    global _classifier
    if _classifier is None:
        _classifier = UrgencyClassifier()
    return _classifier
