"""
Notification channels.
"""

from services.notification.base import NotificationChannel
from services.notification.webhook import WebhookNotifier

__all__ = ["NotificationChannel", "WebhookNotifier"]
