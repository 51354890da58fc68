"""
Decision table expanding one inbound conversion into outbound events.

Rows are evaluated top to bottom, first match wins:

1. payout < threshold           -> LowValue(payout) + marker, InitiateCheckout(0)
2. category Purchase            -> Purchase(payout), Lead(0), InitiateCheckout(0)
3. category Lead                -> Lead(payout), Purchase(0), InitiateCheckout(0)
4. any other category c         -> c(payout)

Event order inside a branch is part of the contract: downstream funnels
infer the stage from arrival order.
"""

from typing import List, Optional, Sequence, Tuple

from ..models.conversion import (
    INITIATE_CHECKOUT,
    LEAD,
    LOW_VALUE,
    PURCHASE,
    InboundConversion,
    OutboundEvent,
)


# Companion events fired at zero value after the primary event
_FUNNEL_COMPANIONS = {
    PURCHASE: (LEAD, INITIATE_CHECKOUT),
    LEAD: (PURCHASE, INITIATE_CHECKOUT),
}


def _event(
    record: InboundConversion,
    category: str,
    amount: float,
    marker: Optional[Tuple[str, str]] = None,
) -> OutboundEvent:
    marker_key, marker_value = marker if marker else (None, None)
    return OutboundEvent(
        click_id=record.click_id,
        amount=amount,
        category=category,
        sub_tag=record.sub_tag or None,
        marker_key=marker_key,
        marker_value=marker_value,
    )


def _branch(
    record: InboundConversion,
    primary: str,
    companions: Sequence[str],
) -> List[OutboundEvent]:
    events = [_event(record, primary, record.payout)]
    events.extend(_event(record, category, 0.0) for category in companions)
    return events


def decide(
    record: InboundConversion,
    threshold: float,
    marker: Optional[Tuple[str, str]] = None,
) -> List[OutboundEvent]:
    """
    Map an inbound conversion to the ordered list of outbound events.

    Args:
        record: Validated inbound conversion
        threshold: Payouts strictly below this take the low-value branch
        marker: Optional (key, value) attached to the low-value event only

    Returns:
        Events in dispatch order
    """
    if record.payout < threshold:
        return [
            _event(record, LOW_VALUE, record.payout, marker=marker),
            _event(record, INITIATE_CHECKOUT, 0.0),
        ]

    companions = _FUNNEL_COMPANIONS.get(record.category)
    if companions is not None:
        return _branch(record, record.category, companions)

    # Caller labels pass through verbatim, reserved names included
    return [_event(record, record.category, record.payout)]
