"""
Notification System - Strategy Pattern Implementation

This module defines the abstract interface for notification channels.
"""
from abc import ABC, abstractmethod

import aiohttp

from models.diff import Diff, DiffMetadata
from models.fetch import ClassifiedFailure
from models.target import Target


class NotificationChannel(ABC):
    """
    Abstract base class for notification channels (Strategy Pattern).

    New channels can be added without modifying NotificationService.

    Usage:
        class SlackChannel(NotificationChannel):
            async def send_change(self, session, target, diff, metadata):
                # Slack-specific implementation
                ...
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Returns the name of this notification channel (e.g., 'webhook')."""
        pass

    @abstractmethod
    async def send_change(
        self,
        session: aiohttp.ClientSession,
        target: Target,
        diff: Diff,
        metadata: DiffMetadata,
    ) -> None:
        """
        Delivers a detected change.

        Raises:
            NotificationException: If the channel rejected the message
        """
        pass

    @abstractmethod
    async def send_failure(
        self,
        session: aiohttp.ClientSession,
        target: Target,
        failure: ClassifiedFailure,
    ) -> None:
        """
        Delivers a target failure.

        Raises:
            NotificationException: If the channel rejected the message
        """
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Returns True if the channel has the configuration it needs."""
        pass
