"""
RetryController runs fetch attempts until the classifier accepts a response
or the retry budget is used up.
"""
import asyncio
from typing import Iterable, Optional

import aiohttp

from core.config import settings
from core.exceptions import (
    InvalidResponseException,
    NetworkException,
    RetriesExhaustedException,
)
from core.logger import get_logger
from models.fetch import ClassifiedFailure, FetchResult
from models.target import Target
from services.watch.classifier import SoftErrorClassifier
from services.watch.fetcher import WatchFetcher

logger = get_logger(__name__)

class RetryController:
    """
    Fetch/retry state machine:

        Idle -> Attempting -> Accepted
                           -> Retrying -> Attempting
                           -> Exhausted

    Cancellation while sleeping between attempts propagates
    asyncio.CancelledError immediately.
    """

    def __init__(
        self,
        fetcher: Optional[WatchFetcher] = None,
        classifier: Optional[SoftErrorClassifier] = None,
        retries: Optional[int] = None,
        delay: Optional[float] = None,
        global_patterns: Optional[Iterable[str]] = None,
    ):
        self.fetcher = fetcher or WatchFetcher()
        self.classifier = classifier or SoftErrorClassifier()
        self.retries = retries if retries is not None else settings.RETRY_COUNT
        self.delay = delay if delay is not None else settings.RETRY_DELAY
        self.global_patterns = list(
            global_patterns if global_patterns is not None else settings.RETRY_ON_MATCH
        )
        if self.retries < 1:
            raise ValueError("retries must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    async def fetch_with_retries(
        self, session: aiohttp.ClientSession, target: Target
    ) -> FetchResult:
        """
        Returns the first accepted FetchResult.

        Raises:
            RetriesExhaustedException: The last attempt failed at the transport layer
            InvalidResponseException: The last response was rejected by the classifier
            PatternCompileException: A retry_on_match pattern is invalid
        """
        last_result: Optional[FetchResult] = None

        for attempt in range(1, self.retries + 1):
            # no sleep on first try
            if attempt > 1:
                if self.delay > 0:
                    logger.info(
                        f"[RETRY] Waiting {self.delay}s before retrying",
                        context={"name": target.name, "try": attempt},
                    )
                    await asyncio.sleep(self.delay)
                else:
                    logger.info(
                        "[RETRY] Retrying without delay",
                        context={"name": target.name, "try": attempt},
                    )

            logger.info("[RETRY] Checking watch", context={"name": target.name, "try": attempt})

            try:
                result = await self.fetcher.fetch(session, target)
            except NetworkException as e:
                error_text = e.message
                logger.error(
                    f"[RETRY] Received error: {error_text}",
                    context={"name": target.name, "try": attempt},
                )
                if attempt < self.retries:
                    continue
                raise RetriesExhaustedException(
                    ClassifiedFailure.from_result(
                        f"still an error after {self.retries} retries: {error_text}",
                        last_result,
                    ),
                    {"name": target.name, "url": target.url},
                ) from e

            last_result = result
            retry, cause = self.classifier.should_retry(result, self.global_patterns, target)
            if not retry:
                return result

            logger.info(
                f"[RETRY] Retry check failed: {cause}",
                context={"name": target.name, "try": attempt},
            )
            if attempt < self.retries:
                continue
            raise InvalidResponseException(
                ClassifiedFailure.from_result(
                    f"still a response error after {self.retries} retries: {cause}",
                    result,
                ),
                {"name": target.name, "url": target.url},
            )

        # The loop always returns or raises on the last attempt
        raise RuntimeError(f"Unexpected retry loop exit for {target.name}")
