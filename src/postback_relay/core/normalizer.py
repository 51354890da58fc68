"""
Input normalization for inbound postbacks.

Resolves aliased query/form parameters into a canonical InboundConversion.
For each alias the query string is checked before the form body, and the
first non-empty value wins.
"""

import math
import re
from typing import Any, Mapping, Optional, Sequence

from ..models.conversion import LEAD, PURCHASE, InboundConversion
from .exceptions import ValidationError


CLICK_ID_KEYS = ("clickid", "cid", "s2")
PAYOUT_KEYS = ("sum", "payout")
EVENT_TYPE_KEYS = ("type", "et", "s3")
SUB_TAG_KEYS = ("sub12", "s1")

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def resolve_param(
    keys: Sequence[str],
    query: Mapping[str, Any],
    form: Optional[Mapping[str, Any]] = None,
) -> Optional[str]:
    """Return the first non-empty value across the alias list."""
    sources = [query] if form is None else [query, form]
    for key in keys:
        for source in sources:
            value = source.get(key)
            if value is not None and value != "":
                return str(value)
    return None


def parse_amount(value: Any, default: float = 0.0) -> float:
    """
    Coerce a payout value to float.

    Accepts comma as decimal separator ("1,5" -> 1.5). Anything that is
    not a finite number falls back to the default.
    """
    if isinstance(value, bool) or value is None:
        return float(default)

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else float(default)

    text = str(value).replace(",", ".")
    if not _NUMERIC_RE.match(text):
        return float(default)

    number = float(text)
    return number if math.isfinite(number) else float(default)


def normalize_category(raw: Optional[str]) -> str:
    """
    Normalize a caller-supplied event type.

    Known labels map to their canonical spelling; anything else is
    lowercased with its first letter upper-cased. Blank input means Lead.
    """
    if raw is None:
        return LEAD

    low = raw.strip().lower()
    if not low:
        return LEAD
    if low == "lead":
        return LEAD
    if low == "purchase":
        return PURCHASE
    return low[:1].upper() + low[1:]


def normalize_postback(
    query: Mapping[str, Any],
    form: Optional[Mapping[str, Any]] = None,
) -> InboundConversion:
    """
    Build the canonical inbound conversion from raw params.

    Raises:
        ValidationError: click id missing/empty or payout negative. The
            error details carry ``click_id`` and ``payout`` for the drop line.
    """
    click_id = resolve_param(CLICK_ID_KEYS, query, form)
    payout = parse_amount(resolve_param(PAYOUT_KEYS, query, form))
    event_type_raw = resolve_param(EVENT_TYPE_KEYS, query, form)
    sub_tag = resolve_param(SUB_TAG_KEYS, query, form)

    if not click_id or payout < 0:
        raise ValidationError(
            "Invalid or missing data.",
            details={"click_id": click_id, "payout": payout},
        )

    return InboundConversion(
        click_id=click_id,
        payout=payout,
        event_type_raw=event_type_raw,
        sub_tag=sub_tag,
        category=normalize_category(event_type_raw),
    )
