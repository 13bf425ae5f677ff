import asyncio
import time
from typing import Dict, Optional

import aiohttp

from core.config import settings
from core.exceptions import NetworkException
from core.logger import get_logger
from models.fetch import FetchResult
from models.target import Target

logger = get_logger(__name__)


class WatchFetcher:
    """
    Handles network operations for a single fetch attempt.
    """

    def __init__(self, user_agent: Optional[str] = None, timeout: Optional[float] = None):
        self.user_agent = user_agent or settings.USER_AGENT
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.HTTP_TIMEOUT)
        self.proxy = settings.PROXY_URL
        self.proxy_auth = None
        if settings.PROXY_USERNAME and settings.PROXY_PASSWORD:
            self.proxy_auth = aiohttp.BasicAuth(settings.PROXY_USERNAME, settings.PROXY_PASSWORD)

    async def create_session(self) -> aiohttp.ClientSession:
        """Creates and returns a new aiohttp session."""
        connector = aiohttp.TCPConnector(limit=settings.PARALLEL_CHECKS * 2)
        return aiohttp.ClientSession(timeout=self.timeout, connector=connector)

    def build_headers(self, target: Target) -> Dict[str, str]:
        """
        Builds request headers for a target.

        User-Agent precedence: the target's header overrides, then the
        target's useragent, then the global default.
        """
        headers = dict(target.header)
        if not any(name.lower() == "user-agent" for name in headers):
            headers["User-Agent"] = target.useragent or self.user_agent
        return headers

    async def fetch(self, session: aiohttp.ClientSession, target: Target) -> FetchResult:
        """
        Performs one request for the target and reads the full body.

        Raises:
            NetworkException: On transport errors (connection, DNS, timeout).
                The caller decides whether to retry.
        """
        try:
            return await self._request(session, target)
        except asyncio.TimeoutError as e:
            raise NetworkException(f"timeout fetching {target.url}", {"url": target.url}) from e
        except aiohttp.ClientError as e:
            raise NetworkException(str(e) or type(e).__name__, {"url": target.url}) from e

    async def _request(self, session: aiohttp.ClientSession, target: Target) -> FetchResult:
        data = target.body.encode("utf-8") if target.body else None

        start = time.monotonic()
        async with session.request(
            target.method,
            target.url,
            data=data,
            headers=self.build_headers(target),
            proxy=self.proxy,
            proxy_auth=self.proxy_auth,
        ) as resp:
            body = await resp.read()
            duration = time.monotonic() - start

            headers: Dict[str, str] = {}
            for name, value in resp.headers.items():
                # Repeated headers are folded like RFC 9110 allows
                headers[name] = f"{headers[name]}, {value}" if name in headers else value

            logger.debug(
                f"[FETCHER] {target.method} {target.url} -> {resp.status}",
                context={"name": target.name, "bodylen": len(body)},
                duration=duration,
            )
            return FetchResult(
                status_code=resp.status,
                headers=headers,
                duration=duration,
                body=body,
            )
