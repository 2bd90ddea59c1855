from typing import Optional

import httpx
from loguru import logger

from ...digest.render import build_digest_markdown
from ...domain.models import Digest
from .base import NotificationError


class WebhookNotifier:
    """
    Post the digest as a markdown message to a chat robot webhook.

    Payload shape: {"msgtype": "markdown", "markdown": {"content": "..."}}.
    Robots that answer with a JSON body report failures through a non-zero
    ``errcode``.
    """

    name = "webhook"

    def __init__(self, url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def notify(self, digest: Digest, date: str) -> None:
        content = build_digest_markdown(digest, date)
        payload = {"msgtype": "markdown", "markdown": {"content": content}}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(self.url, json=payload)

        if resp.status_code >= 400:
            raise NotificationError(f"webhook returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("errcode", 0) != 0:
            raise NotificationError(f"webhook rejected message: {data}")

        logger.info("[notify] Webhook message sent successfully.")
