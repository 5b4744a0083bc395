"""Tests for urgency classification."""

from unittest.mock import MagicMock, patch

import pytest

from issue_brain.models import Issue


def _issue():
    return Issue(
        issue_number=12,
        title="Production outage after upgrade",
        body="All requests fail with 500",
        state="open",
        labels=[],
        author="alice",
        url="https://github.com/vercel/ai/issues/12",
        content="c",
    )


class TestUrgencyClassifier:
    """Tests for the urgency classifier."""

    @pytest.fixture
    def mock_anthropic_client(self):
        """Create a mock Anthropic client."""
        with patch("anthropic.Anthropic") as mock:
            client = MagicMock()
            mock.return_value = client
            yield client

    def test_urgent_response(self, mock_env_vars, mock_anthropic_client):
        message = MagicMock()
        message.content = [MagicMock(text='{"is_urgent": true, "reason": "outage"}')]
        mock_anthropic_client.messages.create.return_value = message

        from issue_brain.llm.classifier import UrgencyClassifier

        assert UrgencyClassifier().is_urgent(_issue()) is True
        prompt = mock_anthropic_client.messages.create.call_args[1]["messages"][0]["content"]
        assert "Production outage after upgrade" in prompt

    def test_not_urgent_response(self, mock_env_vars, mock_anthropic_client):
        message = MagicMock()
        message.content = [MagicMock(text='{"is_urgent": false, "reason": "question"}')]
        mock_anthropic_client.messages.create.return_value = message

        from issue_brain.llm.classifier import UrgencyClassifier

        assert UrgencyClassifier().is_urgent(_issue()) is False

    def test_invalid_json_is_not_urgent(self, mock_env_vars, mock_anthropic_client):
        message = MagicMock()
        message.content = [MagicMock(text="invalid json")]
        mock_anthropic_client.messages.create.return_value = message

        from issue_brain.llm.classifier import UrgencyClassifier

        assert UrgencyClassifier().is_urgent(_issue()) is False

    def test_api_error_is_not_urgent(self, mock_env_vars, mock_anthropic_client):
        import anthropic

        mock_anthropic_client.messages.create.side_effect = anthropic.APIError(
            message="API Error",
            request=MagicMock(),
            body=None,
        )

        from issue_brain.llm.classifier import UrgencyClassifier

        assert UrgencyClassifier().is_urgent(_issue()) is False

    def test_without_api_key_never_calls_model(self, mock_anthropic_client):
        from issue_brain.llm.classifier import UrgencyClassifier

        classifier = UrgencyClassifier()
        classifier.client = None

        assert classifier.is_urgent(_issue()) is False
        mock_anthropic_client.messages.create.assert_not_called()
