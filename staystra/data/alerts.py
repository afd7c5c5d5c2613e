import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from .base import AlertSink
from ..core.config import settings
from ..core.metrics import ALERTS_SENT

logger = logging.getLogger(__name__)

def format_alert(address: Optional[str], **fields: object) -> str:
    """
    Alert body: the address line, one bullet per field, then a UTC timestamp.
    Field names are rendered Title Case ("response_body" -> "Response Body").
    """
    lines = [f"Address: {address or 'N/A'}"]
    for name, value in fields.items():
        lines.append(f"• {name.replace('_', ' ').title()}: {value}")
    lines.append(f"• Time: {datetime.now(timezone.utc).isoformat()}")
    return "\n".join(lines)

class LogAlertSink(AlertSink):
    """No webhook configured: alerts only land in the log stream."""
    def notify(self, subject: str, body: str) -> None:
        logger.warning("ALERT %s\n%s", subject, body)
        ALERTS_SENT.labels(delivered="false").inc()

    async def aclose(self) -> None:
        return None

class WebhookAlertSink(AlertSink):
    """
    POSTs {subject, body} to a webhook (n8n, Slack relay, ...) on a
    background task. The caller never waits on delivery and delivery
    failures are logged, never raised.
    """
    def __init__(self, url: str, timeout: float = settings.ALERT_TIMEOUT_SECONDS,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport
        self._pending: set[asyncio.Task] = set()

    def notify(self, subject: str, body: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("Alert dropped, no running event loop: %s", subject)
            return
        task = loop.create_task(self._deliver(subject, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, subject: str, body: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(self.url, json={"subject": subject, "body": body})
        except httpx.HTTPError as exc:
            logger.error("Failed to send alert %r: %s", subject, exc)
            ALERTS_SENT.labels(delivered="false").inc()
            return False
        if r.is_success:
            ALERTS_SENT.labels(delivered="true").inc()
            return True
        logger.error("Alert webhook returned non-OK status %s for %r", r.status_code, subject)
        ALERTS_SENT.labels(delivered="false").inc()
        return False

    async def aclose(self) -> None:
        """Wait for in-flight deliveries (called on shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

def alert_sink() -> AlertSink:
    if settings.ALERT_WEBHOOK_URL:
        return WebhookAlertSink(settings.ALERT_WEBHOOK_URL)
    return LogAlertSink()
