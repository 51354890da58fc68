"""
Postback processing pipeline.

Orchestrates one inbound postback end to end:
1. Input normalization & validation
2. Decision table
3. Sequential dispatch, one GET per event
4. Reporting to the audit log and the response body

Every path completes with a plain-text body; nothing here raises to the
caller for domain failures.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

import structlog

from ..config import Settings
from ..models.conversion import OutboundEvent
from .audit_log import AuditLog
from .dispatcher import DispatchResult, EventDispatcher
from .exceptions import ValidationError
from .masking import ClickIdMasker
from .metrics import MetricsCollector
from .normalizer import normalize_postback
from .reporter import format_drop_line, format_report_line
from .rules import decide

logger = structlog.get_logger(__name__)

INVALID_DATA_BODY = "Invalid or missing data."


@dataclass
class PostbackOutcome:
    """Result of processing one inbound postback."""
    accepted: bool
    body: str
    events: List[OutboundEvent] = field(default_factory=list)
    results: List[DispatchResult] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)


class PostbackPipeline:
    """
    Main processing pipeline for inbound postbacks.

    Collaborators are injected so the transport and the log sink can be
    swapped without touching the decision logic.
    """

    def __init__(
        self,
        settings: Settings,
        dispatcher: EventDispatcher,
        audit_log: AuditLog,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.settings = settings
        self.dispatcher = dispatcher
        self.audit_log = audit_log
        self.metrics = metrics
        self.mask = ClickIdMasker(settings.masking)

    async def process(
        self,
        query: Mapping[str, Any],
        form: Optional[Mapping[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> PostbackOutcome:
        """
        Process a postback through the complete pipeline.

        Args:
            query: Query string parameters
            form: Form body parameters, if any
            request_id: Correlation id for structured logs

        Returns:
            PostbackOutcome with the plain-text response body
        """
        try:
            record = normalize_postback(query, form)
        except ValidationError as e:
            return await self._drop(e, request_id)

        safe_click_id = self.mask(record.click_id)
        events = decide(
            record,
            threshold=self.settings.rules.value_threshold,
            marker=self.settings.rules.marker,
        )

        logger.info(
            "Processing postback",
            request_id=request_id,
            click_id=safe_click_id,
            payout=record.payout,
            category=record.category,
            events_count=len(events),
        )

        outcome = PostbackOutcome(accepted=True, body="", events=events)
        total = len(events)

        index = 0
        async for event, result in self.dispatcher.iter_dispatch(events):
            index += 1
            line = format_report_line(index, total, safe_click_id, event, result.url, result)
            await self.audit_log.write(line)

            outcome.results.append(result)
            outcome.lines.append(line)

            if self.metrics:
                self.metrics.record_dispatch(event.category, result.succeeded, result.duration_seconds)

        if self.metrics:
            self.metrics.record_postback(accepted=True, events_count=total)

        outcome.body = "".join(f"{line}\n" for line in outcome.lines)

        logger.info(
            "Postback processing completed",
            request_id=request_id,
            click_id=safe_click_id,
            events_dispatched=total,
            events_succeeded=sum(1 for result in outcome.results if result.succeeded),
        )

        return outcome

    async def _drop(self, error: ValidationError, request_id: Optional[str]) -> PostbackOutcome:
        safe_click_id = self.mask(error.details.get("click_id"))
        payout = error.details.get("payout", 0.0)

        logger.info(
            "Postback dropped",
            request_id=request_id,
            click_id=safe_click_id,
            payout=payout,
        )

        await self.audit_log.write(format_drop_line(safe_click_id, payout))

        if self.metrics:
            self.metrics.record_postback(accepted=False)

        return PostbackOutcome(accepted=False, body=INVALID_DATA_BODY)
