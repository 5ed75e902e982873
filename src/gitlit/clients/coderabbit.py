"""CodeRabbit report client."""

import logging
from datetime import date, timedelta

import requests

from gitlit.clients.errors import CodeRabbitError

logger = logging.getLogger(__name__)

REPORT_URL = "https://api.coderabbit.ai/api/v1/report.generate"
GROUP_BY_CHOICES = ("REPOSITORY", "USER", "TEAM", "NONE")


class CodeRabbitClient:
    """Generates date-ranged review reports through the CodeRabbit API."""

    def __init__(self, api_key: str, timeout: float = 60.0, session: requests.Session | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_payload(
        self,
        group_by: str | None = None,
        prompt: str | None = None,
        days: int = 30,
        today: date | None = None,
    ) -> dict:
        end = today or date.today()
        start = end - timedelta(days=days)
        payload = {
            "from": start.isoformat(),
            "to": end.isoformat(),
            "groupBy": group_by or "REPOSITORY",
        }
        if prompt:
            payload["prompt"] = prompt
        return payload

    def generate_report(
        self,
        group_by: str | None = None,
        prompt: str | None = None,
        days: int = 30,
        today: date | None = None,
    ):
        """Request a report covering the last ``days`` days. Returns the decoded JSON."""
        payload = self.build_payload(group_by=group_by, prompt=prompt, days=days, today=today)
        logger.info("CodeRabbit report request: %s", payload)
        try:
            resp = self.session.post(
                REPORT_URL,
                json=payload,
                headers={"x-coderabbitai-api-key": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CodeRabbitError(502, "CodeRabbit request failed", str(e)) from e

        if not resp.ok:
            raise CodeRabbitError(resp.status_code, "Failed to get review from CodeRabbit", resp.text)
        return resp.json()
