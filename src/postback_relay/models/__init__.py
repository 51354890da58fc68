"""
Data models package.

Contains the value objects that flow through the relay:
- Canonical inbound conversion
- Outbound events reported downstream
"""

from .conversion import (
    INITIATE_CHECKOUT,
    LEAD,
    LOW_VALUE,
    PURCHASE,
    InboundConversion,
    OutboundEvent,
    format_amount,
)

__all__ = [
    # Category labels
    "LEAD",
    "PURCHASE",
    "INITIATE_CHECKOUT",
    "LOW_VALUE",

    # Value objects
    "InboundConversion",
    "OutboundEvent",
    "format_amount",
]
