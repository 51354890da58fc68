"""
Outbound event dispatcher.

Features:
- Builds the strictly encoded postback URL for each event
- One bounded-timeout GET per event, no retries
- Transport failures are recorded per event and never stop the branch
"""

import time
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Tuple
from urllib.parse import urlencode

import structlog

from ..config import DispatchSettings
from ..models.conversion import OutboundEvent
from .exceptions import TransportError
from .transport import HttpGetter

logger = structlog.get_logger(__name__)


@dataclass
class DispatchResult:
    """Result of one outbound delivery attempt."""
    succeeded: bool
    status_code: int
    url: str
    body_excerpt: str = ""
    error_detail: Optional[str] = None
    duration_seconds: float = 0.0


def build_event_url(base_url: str, event: OutboundEvent) -> str:
    """Append the event's query parameters to the base URL."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode(event.query_params())}"


def is_success_status(status_code: int) -> bool:
    """2xx and 3xx count as delivered."""
    return 200 <= status_code < 400


class EventDispatcher:
    """Sends outbound events through an injected HttpGetter."""

    def __init__(self, settings: DispatchSettings, transport: HttpGetter) -> None:
        self.settings = settings
        self.transport = transport

    async def dispatch(self, event: OutboundEvent) -> DispatchResult:
        """
        Deliver a single event.

        Args:
            event: Event to deliver

        Returns:
            DispatchResult, including for transport failures
        """
        url = build_event_url(self.settings.base_url, event)
        started = time.monotonic()

        try:
            response = await self.transport.get(url, self.settings.timeout_seconds)
        except TransportError as e:
            detail = f"{e.category}: {e}" if str(e) else e.category
            logger.warning(
                "Outbound postback failed",
                category=event.category,
                error_category=e.category,
                error=str(e),
            )
            return DispatchResult(
                succeeded=False,
                status_code=0,
                url=url,
                error_detail=detail,
                duration_seconds=time.monotonic() - started,
            )

        result = DispatchResult(
            succeeded=is_success_status(response.status),
            status_code=response.status,
            url=url,
            body_excerpt=(response.body or "")[:self.settings.body_excerpt_chars],
            duration_seconds=time.monotonic() - started,
        )

        logger.debug(
            "Outbound postback sent",
            category=event.category,
            status=response.status,
            ok=result.succeeded,
        )
        return result

    async def iter_dispatch(
        self, events: List[OutboundEvent]
    ) -> AsyncIterator[Tuple[OutboundEvent, DispatchResult]]:
        """
        Deliver events sequentially in list order, each exactly once.

        Each result is yielded before the next event is sent, so callers
        can report an attempt as soon as it completes.
        """
        for event in events:
            yield event, await self.dispatch(event)

    async def dispatch_all(self, events: List[OutboundEvent]) -> List[DispatchResult]:
        """Deliver all events and collect their results."""
        return [result async for _, result in self.iter_dispatch(events)]
