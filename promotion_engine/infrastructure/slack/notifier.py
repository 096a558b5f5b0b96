#promotion_engine\infrastructure\slack\notifier.py

import logging

import requests

from promotion_engine.core.notifications import NotificationSink, Severity

logger = logging.getLogger(__name__)


class SlackNotificationError(RuntimeError):
    pass


class SlackNotificationSink(NotificationSink):
    """Posts notifications to a Slack incoming webhook as colored attachments."""

    def __init__(self, webhook_url: str, cluster: str, service: str, timeout: float = 10):
        self.webhook_url = webhook_url
        self.cluster = cluster
        self.service = service
        self.timeout = timeout

    def build_payload(self, message: str, severity: Severity) -> dict:
        return {
            "attachments": [
                {
                    "color": severity.value,
                    "title": f"{self.cluster}/{self.service}",
                    "text": message,
                    "fallback": message,
                }
            ]
        }

    def notify(self, message: str, severity: Severity = Severity.NORMAL) -> None:
        response = requests.post(
            self.webhook_url,
            json=self.build_payload(message, severity),
            timeout=self.timeout,
        )

        if response.status_code != 200:
            raise SlackNotificationError(
                f"Slack webhook failed [{response.status_code}]: {response.text}"
            )

        logger.debug(f"[slack] delivered {severity.value} notification")
