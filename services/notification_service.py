"""
Notification service - fans reports out to every webhook of a target.
"""
import asyncio
from typing import List, Optional

import aiohttp

from core.config import settings
from core.exceptions import NotificationException
from core.logger import get_logger
from models.diff import Diff, DiffMetadata
from models.fetch import ClassifiedFailure
from models.target import Target, WebhookConfig
from services.notification.base import NotificationChannel
from services.notification.webhook import WebhookNotifier

logger = get_logger(__name__)


class NotificationService:
    """
    Delivers change and failure reports.

    Each target is reported to its own webhooks plus the globally configured
    WEBHOOK_URLS. A failing channel is logged and does not stop the others.
    """

    def __init__(self, global_webhooks: Optional[List[str]] = None):
        urls = global_webhooks if global_webhooks is not None else settings.WEBHOOK_URLS
        self.global_webhooks = [WebhookConfig(url=url) for url in urls]

    def channels_for(self, target: Target) -> List[NotificationChannel]:
        channels: List[NotificationChannel] = [
            WebhookNotifier(webhook) for webhook in [*target.webhooks, *self.global_webhooks]
        ]
        return [channel for channel in channels if channel.is_enabled()]

    async def notify_change(
        self,
        session: aiohttp.ClientSession,
        target: Target,
        diff: Diff,
        metadata: DiffMetadata,
    ) -> None:
        channels = self.channels_for(target)
        if not channels:
            logger.info("[NOTIFY] No channels configured for change", context={"name": target.name})
            return
        await self._dispatch(
            target,
            [channel.send_change(session, target, diff, metadata) for channel in channels],
            channels,
        )

    async def notify_failure(
        self,
        session: aiohttp.ClientSession,
        target: Target,
        failure: ClassifiedFailure,
    ) -> None:
        channels = self.channels_for(target)
        if not channels:
            return
        await self._dispatch(
            target,
            [channel.send_failure(session, target, failure) for channel in channels],
            channels,
        )

    async def _dispatch(self, target: Target, sends, channels: List[NotificationChannel]) -> None:
        results = await asyncio.gather(*sends, return_exceptions=True)
        for channel, result in zip(channels, results):
            if isinstance(result, NotificationException):
                logger.error(
                    f"[NOTIFY] {channel.channel_name} delivery failed: {result}",
                    context={"name": target.name},
                )
            elif isinstance(result, BaseException):
                raise result
