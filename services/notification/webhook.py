"""
Webhook notification channel.
"""
import json
from typing import Any, Dict, Optional

import aiohttp

from core import constants
from core.config import settings
from core.exceptions import WebhookException
from core.logger import get_logger
from core.utils import truncate_text
from models.diff import Diff, DiffMetadata
from models.fetch import ClassifiedFailure
from models.target import Target, WebhookConfig
from services.diff.renderer import render_html, render_text
from services.notification.base import NotificationChannel

logger = get_logger(__name__)


def change_payload(diff: Diff, metadata: DiffMetadata) -> Dict[str, Any]:
    return {
        "event": "change",
        "name": metadata.name,
        "url": metadata.url,
        "description": metadata.description,
        "diff": [{"content": line.content, "mode": line.mode.value} for line in diff.lines],
        "request_duration": metadata.request_duration,
        "status_code": metadata.status_code,
        "body_length": metadata.body_length,
        "last_fetch": metadata.last_fetch.isoformat(),
        "text": render_text(diff, metadata),
        "html": render_html(diff, metadata),
    }


def failure_payload(target: Target, failure: ClassifiedFailure) -> Dict[str, Any]:
    return {
        "event": "error",
        "name": target.name,
        "url": target.url,
        "description": target.description,
        "message": failure.message,
        "status_code": failure.status_code,
        "body_length": len(failure.body),
        "request_duration": failure.duration,
    }


class WebhookNotifier(NotificationChannel):
    """Sends JSON payloads to a single configured webhook."""

    def __init__(self, webhook: WebhookConfig, timeout: Optional[float] = None):
        self.webhook = webhook
        self.timeout = aiohttp.ClientTimeout(total=timeout or constants.WEBHOOK_TIMEOUT)

    @property
    def channel_name(self) -> str:
        return "webhook"

    def is_enabled(self) -> bool:
        return bool(self.webhook.url)

    async def send_change(
        self,
        session: aiohttp.ClientSession,
        target: Target,
        diff: Diff,
        metadata: DiffMetadata,
    ) -> None:
        await self._send(session, change_payload(diff, metadata))

    async def send_failure(
        self,
        session: aiohttp.ClientSession,
        target: Target,
        failure: ClassifiedFailure,
    ) -> None:
        await self._send(session, failure_payload(target, failure))

    async def _send(self, session: aiohttp.ClientSession, payload: Dict[str, Any]) -> None:
        method = self.webhook.method
        data = None
        headers = {"User-Agent": self.webhook.useragent or settings.USER_AGENT}

        # Only methods with a request body carry the payload
        if method in constants.WEBHOOK_BODY_METHODS:
            data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            headers["Content-Type"] = "application/json"

        headers.update(self.webhook.header)

        logger.info(f"[WEBHOOK] Sending {payload['event']} via {method}")
        try:
            async with session.request(
                method, self.webhook.url, data=data, headers=headers, timeout=self.timeout
            ) as resp:
                if not 200 <= resp.status < 300:
                    text = await resp.text(errors="replace")
                    raise WebhookException(
                        f"webhook returned status code {resp.status}",
                        {"status": resp.status, "response": truncate_text(text, constants.BODY_EXCERPT_LENGTH)},
                    )
        except aiohttp.ClientError as e:
            raise WebhookException(f"could not send webhook: {e}") from e
