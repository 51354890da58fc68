"""
Report lines for fired events.

The same line goes to the audit log and into the response body:

    Fired[1/2]: clickid=abc***gh type=LowValue sum=0.5 sub12=- sub11=low_value | URL=... | code=200 ok=1 body=OK

Failed deliveries carry the transport failure after the body:

    ... | code=0 ok=0 body= err=timeout: Request timed out after 6.0s

Caller and downstream text is rendered with CR/LF escaped, so each report
is exactly one physical line.
"""

from typing import Optional

from ..models.conversion import OutboundEvent, format_amount
from .dispatcher import DispatchResult

_LINE_BREAKS = str.maketrans({"\r": "\\r", "\n": "\\n"})


def single_line(text: Optional[str]) -> str:
    """Escape CR and LF so the text cannot start a new log line."""
    return (text or "").translate(_LINE_BREAKS)


def format_report_line(
    index: int,
    total: int,
    masked_click_id: Optional[str],
    event: OutboundEvent,
    url: str,
    result: DispatchResult,
) -> str:
    """Format one line describing a dispatched event."""
    marker = f" {single_line(event.marker[0])}={single_line(event.marker[1])}" if event.marker else ""
    error = f" err={single_line(result.error_detail)}" if result.error_detail else ""
    return (
        f"Fired[{index}/{total}]: clickid={single_line(masked_click_id)} type={single_line(event.category)} "
        f"sum={format_amount(event.amount)} sub12={single_line(event.sub_tag) or '-'}{marker} "
        f"| URL={single_line(url)} "
        f"| code={result.status_code} ok={1 if result.succeeded else 0} body={single_line(result.body_excerpt)}"
        f"{error}"
    )


def format_drop_line(masked_click_id: Optional[str], payout: float) -> str:
    """Format the line logged when a postback fails validation."""
    return f"DROP invalid data: clickid={single_line(masked_click_id)} payout={format_amount(payout)}"
