"""
Slack notifications for change sets that need manual attention.

Delivery failures are logged and never fail the pull request event.
"""

from typing import Optional

import httpx

from pr_resolver.models.run import RunConfig
from pr_resolver.utils.logging import get_logger
from pr_resolver.utils.resilience import retry_with_backoff

logger = get_logger(__name__)


def update_set_link(config: RunConfig) -> str:
    """Slack-formatted link to the update set in the change-management host."""
    host = config.host.name.rstrip("/")
    return f"<{host}/sys_update_set.do?sys_id={config.update_set.sys_id}|{config.update_set.name}>"


class SlackNotifier:
    """Posts plain-text messages to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            webhook_url: Incoming webhook URL; messages are only logged when unset
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    @retry_with_backoff(max_retries=3, base_delay=1.0, exceptions=(httpx.TransportError,))
    async def _post(self, text: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.webhook_url, json={"text": text})
            response.raise_for_status()

    async def send(self, text: str) -> None:
        """Send `text` to the channel."""
        if not self.webhook_url:
            logger.info(f"Slack webhook not configured, notification not sent: {text}")
            return

        try:
            await self._post(text)
            logger.info("Slack notification sent")
        except httpx.HTTPError as e:
            logger.error(f"Failed to send Slack notification: {e}")
