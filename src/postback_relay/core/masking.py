"""
Click id masking for log safety.

Masked ids appear only in the audit log, the response report and
structlog output. The outbound URL always carries the raw click id.
"""

from typing import Optional

import structlog

from ..config import MaskingSettings

logger = structlog.get_logger(__name__)


def mask(
    identifier: Optional[str],
    keep_left: int = 3,
    keep_right: int = 2,
    mask_char: str = "*",
) -> Optional[str]:
    """
    Mask the middle of an identifier.

    Identifiers no longer than ``keep_left + keep_right`` are masked
    entirely. ``None`` and empty strings pass through unchanged.

    Examples:
        mask("abcdefgh", 3, 2) -> "abc***gh"
        mask("ab", 3, 2) -> "**"
    """
    if not identifier:
        return identifier

    length = len(identifier)
    if length <= keep_left + keep_right:
        return mask_char * length

    left = identifier[:keep_left]
    right = identifier[length - keep_right:]
    middle = mask_char * (length - keep_left - keep_right)
    return f"{left}{middle}{right}"


class ClickIdMasker:
    """Applies the configured masking rule to click ids."""

    def __init__(self, settings: MaskingSettings) -> None:
        self.settings = settings
        logger.debug(
            "Click id masker initialized",
            enabled=settings.enabled,
            keep_left=settings.keep_left,
            keep_right=settings.keep_right,
        )

    def __call__(self, click_id: Optional[str]) -> Optional[str]:
        if not self.settings.enabled:
            return click_id
        return mask(
            click_id,
            keep_left=self.settings.keep_left,
            keep_right=self.settings.keep_right,
            mask_char=self.settings.mask_char,
        )
