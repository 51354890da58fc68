"""
Outbound HTTP transport.

The dispatcher only needs "perform a GET with a timeout and give me
status + body". HttpGetter is that capability; AiohttpTransport backs it
with a shared aiohttp session whose lifecycle is tied to the app.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol

import aiohttp
import structlog
from yarl import URL

from .exceptions import TransportError

logger = structlog.get_logger(__name__)


@dataclass
class TransportResponse:
    """Response received from the downstream endpoint."""
    status: int
    body: str


class HttpGetter(Protocol):
    """Capability to issue a single GET bounded by a timeout."""

    async def get(self, url: str, timeout_seconds: float) -> TransportResponse:
        """
        Raises:
            TransportError: the request could not be completed
        """
        ...


class AiohttpTransport:
    """
    aiohttp-backed HttpGetter.

    Follows redirects and verifies TLS. Every transport-level failure is
    raised as TransportError with one of the TransportError categories.
    """

    def __init__(self, user_agent: str, timeout_seconds: float) -> None:
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info("aiohttp transport initialized", timeout_seconds=timeout_seconds)

    async def start(self) -> None:
        """Open the shared client session."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={"User-Agent": self.user_agent},
        )
        logger.info("aiohttp transport started")

    async def stop(self) -> None:
        """Close the shared client session."""
        if self.session:
            await self.session.close()
            self.session = None

        logger.info("aiohttp transport stopped")

    async def get(self, url: str, timeout_seconds: float) -> TransportResponse:
        if not self.session:
            raise TransportError("Transport not started", category=TransportError.CLIENT)

        timeout = aiohttp.ClientTimeout(total=timeout_seconds, connect=timeout_seconds)
        # url is already query-encoded and goes out byte-for-byte
        try:
            async with self.session.get(URL(url, encoded=True), timeout=timeout, allow_redirects=True) as response:
                body = await response.text(errors="replace")
                return TransportResponse(status=response.status, body=body)

        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Request timed out after {timeout_seconds}s",
                category=TransportError.TIMEOUT,
            ) from e
        except aiohttp.ClientSSLError as e:
            raise TransportError(str(e), category=TransportError.SSL) from e
        except aiohttp.ClientConnectionError as e:
            raise TransportError(str(e), category=TransportError.CONNECTION) from e
        except aiohttp.ClientError as e:
            raise TransportError(str(e), category=TransportError.CLIENT) from e
