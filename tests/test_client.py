"""Tests for the Claude answer client."""

from unittest.mock import MagicMock, patch


class TestClaudeClient:
    """Tests for answer generation."""

    def test_without_api_key_never_calls_model(self, mock_env_vars):
        settings = MagicMock(anthropic_api_key="", github_repo="vercel/ai")

        with (
            patch("issue_brain.llm.client.get_settings", return_value=settings),
            patch("anthropic.Anthropic") as mock_anthropic,
        ):
            from issue_brain.llm.client import ClaudeClient

            client = ClaudeClient()
            answer = client.generate_response("Why does streaming stop?", "context")

        assert client.client is None
        assert "disabled" in answer
        mock_anthropic.assert_not_called()

    def test_generates_answer_with_context(self, mock_env_vars):
        with patch("anthropic.Anthropic") as mock_anthropic:
            api = MagicMock()
            mock_anthropic.return_value = api
            response = MagicMock()
            response.content = [MagicMock(text="Streaming stops on tool calls.")]
            api.messages.create.return_value = response

            from issue_brain.llm.client import ClaudeClient

            answer = ClaudeClient().generate_response("Why?", "[Issue #1] Streaming")

        assert answer == "Streaming stops on tool calls."
        prompt = api.messages.create.call_args[1]["messages"][-1]["content"]
        assert "[Issue #1] Streaming" in prompt
