"""Run report emails sent through the Resend HTTP API.

Reports are fire-and-forget: a delivery failure is logged and never
affects the run record.
"""

import logging
from typing import Optional

import httpx

from bjj_curator.models.curation_run import CurationRun, RunStatus

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def build_run_report(run: CurationRun) -> tuple[str, str]:
    """Subject and plain-text body for a finished run."""
    kind = run.run_type.value.capitalize()

    if run.status == RunStatus.FAILED:
        subject = f"❌ {kind} Curation Failed"
        lines = [
            f"Curation run {run.id} failed.",
            "",
            f"Error: {run.error_message or 'unknown error'}",
            f"Videos analyzed before failure: {run.videos_analyzed}",
            f"Videos added before failure: {run.videos_added}",
        ]
    else:
        subject = f"✅ {kind} Curation Complete: {run.videos_added} videos added"
        rate = f"{run.acceptance_rate:.1f}%" if run.acceptance_rate is not None else "n/a"
        lines = [
            f"Curation run {run.id} completed.",
            "",
            f"Analyzed: {run.videos_analyzed}",
            f"Approved: {run.videos_added}",
            f"Rejected: {run.videos_rejected}",
            f"Approval rate: {rate} ({run.guardrail_status or 'no-data'})",
            f"Quota used: {run.quota_used} units",
            "",
            "Skipped:",
            *(f"  {reason}: {count}" for reason, count in run.skip_breakdown.items()),
        ]

    lines += ["", f"Started: {run.started_at or run.created_at}", f"Finished: {run.completed_at}"]
    return subject, "\n".join(lines)


class NotificationService:
    """Sends run reports by email."""

    def __init__(
        self,
        api_key: Optional[str],
        recipient: Optional[str],
        sender: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.recipient = recipient
        self.sender = sender
        self.client = client
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.recipient)

    async def send_run_report(self, run: CurationRun) -> bool:
        """Email a report for a finished run.

        Returns:
            True if the provider accepted the email, False otherwise
        """
        if not self.enabled:
            logger.debug("Run report email skipped: RESEND_API_KEY or NOTIFICATION_EMAIL not set")
            return False

        subject, body = build_run_report(run)
        payload = {
            "from": self.sender,
            "to": [self.recipient],
            "subject": subject,
            "text": body,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self.client is not None:
                response = await self.client.post(RESEND_API_URL, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(RESEND_API_URL, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send run report for {run.id}: {e}")
            return False

        logger.info(f"Sent run report for {run.id} to {self.recipient}")
        return True
