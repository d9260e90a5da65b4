"""
Slack notifications for tension alerts.

Posts to a Slack incoming webhook. Failures are logged and never fail the
analysis that triggered them.
"""

from typing import Any, Dict, Optional

import httpx

from patchgate.core.logging import get_logger
from patchgate.models.tension import TensionReport, TensionSeverity

logger = get_logger(__name__)

NOTIFY_SEVERITIES = (TensionSeverity.BLOCK, TensionSeverity.AMBER)

SEVERITY_EMOJI = {
    TensionSeverity.BLOCK: ":red_circle:",
    TensionSeverity.AMBER: ":large_yellow_circle:",
    TensionSeverity.YELLOW: ":large_green_circle:",
    TensionSeverity.CLEAR: ":white_circle:",
}


def build_slack_message(
    report: TensionReport, channel: str, details_url: Optional[str] = None
) -> Dict[str, Any]:
    """Build the Block Kit payload for a tension alert."""
    headline = ":rotating_light:" if report.max_severity == TensionSeverity.BLOCK else ":warning:"
    blocks: list = [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": f"Patch Tension Alert: {report.package}",
            },
        },
        {
            "type": "section",
            "fields": [
                {
                    "type": "mrkdwn",
                    "text": f"*{rule.name}*\n{SEVERITY_EMOJI[rule.severity]} {rule.severity.value}",
                }
                for rule in report.triggered_rules
            ],
        },
    ]
    if details_url:
        blocks.append(
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View Details"},
                        "action_id": "view_tension_details",
                        "url": details_url,
                    }
                ],
            }
        )
    return {
        "channel": channel,
        "text": f"{headline} Patch tension detected in {report.package}",
        "blocks": blocks,
    }


class SlackNotifier:
    """Client for posting tension alerts to Slack."""

    def __init__(
        self,
        webhook_url: str,
        channel: str = "#security-alerts",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.channel = channel
        self.transport = transport

    async def notify(self, report: TensionReport, details_url: Optional[str] = None) -> bool:
        """
        Send an alert when the report's verdict is BLOCK or AMBER.

        Returns:
            True if a message was delivered.
        """
        if report.max_severity not in NOTIFY_SEVERITIES:
            return False

        payload = build_slack_message(report, self.channel, details_url)
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=10.0) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to send Slack notification: %s", e)
            return False

        logger.info("Slack notification sent to %s", self.channel)
        return True
