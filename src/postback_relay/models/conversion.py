"""
Conversion data models.

- InboundConversion: canonical record built from the raw postback params
- OutboundEvent: one derived event sent to the tracking platform
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


LEAD = "Lead"
PURCHASE = "Purchase"
INITIATE_CHECKOUT = "InitiateCheckout"
LOW_VALUE = "LowValue"


def format_amount(value: float) -> str:
    """Render an amount the way it travels downstream: 10.0 -> '10', 12.5 -> '12.5'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class InboundConversion(BaseModel):
    """
    Canonical inbound conversion.

    Built once per request by the normalizer, which guarantees a non-empty
    click id and a non-negative payout.
    """

    click_id: str = Field(min_length=1, description="Originating click identifier")
    payout: float = Field(default=0.0, ge=0, description="Conversion value")
    event_type_raw: Optional[str] = Field(default=None, description="Caller-supplied event type")
    sub_tag: Optional[str] = Field(default=None, description="Opaque passthrough label")
    category: str = Field(default=LEAD, description="Normalized event category")

    model_config = ConfigDict(frozen=True)


class OutboundEvent(BaseModel):
    """
    Event reported to the tracking platform.

    Empty optional fields are never sent downstream.
    """

    click_id: str
    amount: float
    category: str
    sub_tag: Optional[str] = None
    marker_key: Optional[str] = None
    marker_value: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def marker(self) -> Optional[Tuple[str, str]]:
        if self.marker_key and self.marker_value:
            return (self.marker_key, self.marker_value)
        return None

    def query_params(self) -> List[Tuple[str, str]]:
        """Outbound query parameters in wire order."""
        params = [
            ("clickid", self.click_id),
            ("sum", format_amount(self.amount)),
            ("type", self.category),
        ]
        if self.sub_tag:
            params.append(("sub12", self.sub_tag))
        if self.marker:
            params.append(self.marker)
        return params
