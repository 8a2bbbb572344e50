"""
SNS alerts for failed monitoring runs.

When a monitoring pass produces an ``errorMessage``, the analysis is
published to the topic named by ``TOPIC_ARN``. Per-request latency arrays
are left out of the message to keep it readable.
"""

import copy
import json
import logging
import re
from typing import Any, Mapping, Optional

import boto3

from .config import config as default_config
from .metrics import get_metrics_emitter

logger = logging.getLogger(__name__)

# SNS rejects subjects longer than 100 characters or containing control characters.
MAX_SUBJECT_LENGTH = 100
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]+")

MISSING_TOPIC_BANNER = "\n".join([
    "#########################################################",
    "##         ! Required Configuration Missing !          ##",
    "## in order to send the alert, an environment variable ##",
    "## TOPIC_ARN must be available.  An alert was supposed ##",
    "## to be sent but one cannot be sent!                  ##",
    "#########################################################",
])


def brief_analysis(analysis: Mapping[str, Any]) -> str:
    """Render an analysis as indented JSON without the per-report latencies."""
    brief = copy.deepcopy(dict(analysis))
    for report in brief.get("reports") or []:
        if isinstance(report, dict):
            report.pop("latencies", None)
    return json.dumps(brief, indent=2, default=str)


def build_alert(analysis: Mapping[str, Any]) -> tuple[str, str]:
    """Return the (subject, message) pair for an analysis."""
    error_message = analysis.get("errorMessage", "")
    subject = _CONTROL_CHARS.sub(" ", f"Alert: {error_message}")
    if len(subject) > MAX_SUBJECT_LENGTH:
        subject = subject[: MAX_SUBJECT_LENGTH - 3] + "..."
    message = (
        f"Alert:\n"
        f"  {error_message}\n"
        f"\n"
        f"Logs:\n"
        f"Full analysis:\n"
        f"{brief_analysis(analysis)}\n"
    )
    return subject, message


class Alerter:
    """Publishes monitoring alerts to an SNS topic."""

    def __init__(self, topic_arn: Optional[str] = None, sns_client: Any = None):
        self.topic_arn = default_config.topic_arn if topic_arn is None else topic_arn
        self._client = sns_client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("sns")
        return self._client

    def send(self, script: Mapping[str, Any], analysis: Mapping[str, Any]) -> Optional[dict[str, Any]]:
        """
        Publish an alert for a failed analysis.

        Returns:
            The SNS publish response, or None when no topic is configured
        """
        metrics = get_metrics_emitter()
        if not self.topic_arn:
            logger.error(MISSING_TOPIC_BANNER)
            metrics.record_alert(sent=False)
            return None

        subject, message = build_alert(analysis)
        response = self.client.publish(
            TopicArn=self.topic_arn,
            Subject=subject,
            Message=message,
        )
        logger.info("Published alert to %s: %s", self.topic_arn, subject)
        metrics.record_alert(sent=True)
        return response
