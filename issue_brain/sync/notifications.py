"""Webhook notifications for urgent issues found during sync."""

from datetime import datetime, timezone
from typing import Any

import httpx

from issue_brain.config import get_settings
from issue_brain.llm.classifier import UrgencyClassifier, get_classifier
from issue_brain.models import Issue
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)

URGENT_LABELS = frozenset({"bug", "critical", "urgent", "breaking", "regression", "security"})

COLOR_LABELED_URGENT = 0xFF0000
COLOR_SEMANTIC_URGENT = 0xFFA500
COLOR_SUMMARY = 0x00FF00


def has_urgent_label(labels: list[str] | None) -> bool:
    """Whether any label is one of the urgent labels (case-insensitive)."""
    return any(label.lower() in URGENT_LABELS for label in labels or [])


def build_issue_payload(issue: Issue) -> dict[str, Any]:
    """Webhook embed payload for one issue."""
    labeled_urgent = has_urgent_label(issue.labels)
    return {
        "content": "@here New urgent issue!" if labeled_urgent else None,
        "embeds": [
            {
                "title": f"#{issue.issue_number}: {issue.title}",
                "url": issue.url,
                "color": COLOR_LABELED_URGENT if labeled_urgent else COLOR_SEMANTIC_URGENT,
                "fields": [
                    {"name": "State", "value": issue.state, "inline": True},
                    {"name": "Author", "value": issue.author, "inline": True},
                    {"name": "Labels", "value": ", ".join(issue.labels) or "None", "inline": True},
                ],
                "description": issue.body[:500] or "No description",
                "timestamp": issue.created_at.isoformat() if issue.created_at else None,
            }
        ],
    }


def build_summary_payload(summary: str) -> dict[str, Any]:
    """Webhook embed payload for a test-mode sync summary."""
    return {
        "embeds": [
            {
                "title": "Sync Complete (Test Mode)",
                "color": COLOR_SUMMARY,
                "description": summary,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ]
    }


class IssueNotifier:
    """Decides which synced issues deserve a notification and posts them."""

    def __init__(
        self,
        webhook_url: str | None = None,
        test_mode: bool | None = None,
        classifier: UrgencyClassifier | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        settings = get_settings()
        self.webhook_url = (
            settings.notification_webhook_url if webhook_url is None else webhook_url
        )
        self.test_mode = settings.notification_test_mode if test_mode is None else test_mode
        self._classifier = classifier
        self.http_client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    @property
    def classifier(self) -> UrgencyClassifier:
        if self._classifier is None:
            self._classifier = get_classifier()
        return self._classifier

    def should_notify(self, issue: Issue, existing: Issue | None) -> bool:
        """
        Decide whether ``issue`` needs a notification.

        Args:
            issue: Issue as built by the current sync
            existing: Stored row for the same issue, if any
        """
        if self.test_mode:
            return existing is None

        if existing is not None and existing.notified_at is not None:
            # Only re-notify when an urgent label was just added.
            return not has_urgent_label(existing.labels) and has_urgent_label(issue.labels)

        if has_urgent_label(issue.labels):
            logger.info("issue_has_urgent_label", issue_number=issue.issue_number)
            return True

        return self.classifier.is_urgent(issue)

    def _post(self, payload: dict[str, Any]) -> bool:
        try:
            if self.http_client is not None:
                response = self.http_client.post(self.webhook_url, json=payload)
            else:
                with httpx.Client(timeout=10) as client:
                    response = client.post(self.webhook_url, json=payload)
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error("notification_error", error=str(e))
            return False

    def send(self, issue: Issue) -> bool:
        """Post a notification for one issue."""
        if not self.enabled:
            return False
        sent = self._post(build_issue_payload(issue))
        if sent:
            logger.info("notification_sent", issue_number=issue.issue_number)
        return sent

    def send_summary(self, summary: str) -> bool:
        """Post a test-mode sync summary."""
        if not self.enabled:
            return False
        sent = self._post(build_summary_payload(summary))
        if sent:
            logger.info("summary_notification_sent")
        return sent

    def notify(self, issues: list[Issue], existing: dict[int, Issue]) -> int:
        """
        Notify for every issue that needs it, stamping ``notified_at`` on success.

        Returns:
            Number of notifications sent
        """
        if not self.enabled:
            return 0

        sent = 0
        for issue in issues:
            if not self.should_notify(issue, existing.get(issue.issue_number)):
                continue
            if self.send(issue):
                issue.notified_at = datetime.now(timezone.utc)
                sent += 1
        return sent
