"""
Custom exception hierarchy for site-watcher.
Provides specific exceptions for better error handling and debugging.
"""
import asyncio


class WatcherException(Exception):
    """Base exception for all watcher-related errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# =============================================================================
# Fetch Exceptions
# =============================================================================


class NetworkException(WatcherException):
    """Exception for transport-level errors (connection, DNS, timeout)."""

    pass


class InvalidResponseException(WatcherException):
    """
    A classified failure: the target could not be resolved this cycle.

    Carries the last observed response so it can be reported, and is raised
    both on retry exhaustion and when an extraction pattern does not match.
    """

    def __init__(self, failure, details: dict = None):
        self.failure = failure
        super().__init__(failure.message, details)

    @property
    def status_code(self) -> int:
        return self.failure.status_code


class RetriesExhaustedException(InvalidResponseException):
    """Every attempt failed at the transport layer."""

    @property
    def is_timeout(self) -> bool:
        """True when the last attempt ended in a timeout, anywhere in the cause chain."""
        cause = self.__cause__
        while cause is not None:
            if isinstance(cause, (asyncio.TimeoutError, TimeoutError)):
                return True
            cause = cause.__cause__
        return False


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(WatcherException):
    """Exception for configuration errors."""

    pass


class PatternCompileException(ConfigurationException):
    """Exception when a configured regex or jq program does not compile."""

    pass


# =============================================================================
# Pipeline Exceptions
# =============================================================================


class TransformException(WatcherException):
    """Exception when a transformation stage cannot process the body."""

    pass


class DiffToolException(WatcherException):
    """Exception when the external diff tool fails or times out."""

    pass


# =============================================================================
# Database Exceptions
# =============================================================================


class DatabaseException(WatcherException):
    """Base exception for database errors."""

    pass


class ConnectionException(DatabaseException):
    """Exception for database connection errors."""

    pass


class QueryException(DatabaseException):
    """Exception for database query errors."""

    pass


class ArtifactNotFoundException(DatabaseException):
    """No artifact stored yet for the requested target."""

    pass


# =============================================================================
# Notification Exceptions
# =============================================================================


class NotificationException(WatcherException):
    """Base exception for notification delivery errors."""

    pass


class WebhookException(NotificationException):
    """Exception for webhook-related errors."""

    pass
