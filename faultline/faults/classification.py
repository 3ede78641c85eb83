"""
Faultline - Classification policy.

Maps a raw fault code to a severity tier by bitmask membership:

    code & ignore_mask      -> IGNORE
    code & background_mask  -> BACKGROUND
    anything else           -> TERMINAL

Unmatched and unclassifiable codes are terminal (default-deny).
"""

from __future__ import annotations

import logging

from .codes import CLASSIFIABLE, MAX_CODE, SINGLE_CODES, describe_mask
from .core import SeverityTier
from .errors import ClassificationError, ConfigurationError


logger = logging.getLogger("faultline.faults")


def classify(code: int, ignore_mask: int, background_mask: int) -> SeverityTier:
    """Pure tier assignment for a raw code."""
    if code & ignore_mask:
        return SeverityTier.IGNORE
    if code & background_mask:
        return SeverityTier.BACKGROUND
    return SeverityTier.TERMINAL


class ClassificationPolicy:
    """
    Validated pair of tier masks.

    Masks are checked once at construction:
    - each must lie in the representable range ``0..MAX_CODE``
    - each must be a subset of ``CLASSIFIABLE``
    - the two must be disjoint

    Usage:
        ```python
        policy = ClassificationPolicy(
            ignore_mask=FaultCode.NOTICE,
            background_mask=FaultCode.WARNING,
        )
        policy.classify(FaultCode.WARNING)  # SeverityTier.BACKGROUND
        ```
    """

    __slots__ = ("ignore_mask", "background_mask")

    def __init__(self, ignore_mask: int, background_mask: int):
        self.ignore_mask = self._check_mask(ignore_mask, "ignore_mask")
        self.background_mask = self._check_mask(background_mask, "background_mask")

        overlap = self.ignore_mask & self.background_mask
        if overlap:
            raise ConfigurationError(
                "ignore_mask and background_mask overlap on "
                f"{', '.join(describe_mask(overlap))}",
                keys=["ignore_mask", "background_mask"],
            )

    @staticmethod
    def _check_mask(mask: int, key: str) -> int:
        if isinstance(mask, bool) or not isinstance(mask, int):
            raise ConfigurationError(f"{key} must be an integer", key=key)
        mask = int(mask)
        if mask < 0 or mask > MAX_CODE:
            raise ConfigurationError(
                f"{key} ({mask}) is outside the representable range 0..{MAX_CODE}",
                key=key,
            )
        if mask & ~CLASSIFIABLE:
            invalid = describe_mask(mask & ~CLASSIFIABLE)
            raise ConfigurationError(
                f"Invalid error types submitted for {key}: {', '.join(invalid)}",
                key=key,
            )
        return mask

    def validate_code(self, code: int) -> int:
        """Raise ClassificationError unless ``code`` is a classifiable code."""
        if isinstance(code, bool) or not isinstance(code, int):
            raise ClassificationError(code, "not an integer")
        if code <= 0 or code > MAX_CODE:
            raise ClassificationError(code, "outside the representable range")
        if code & ~CLASSIFIABLE:
            raise ClassificationError(code, "not in the classifiable universe")
        return int(code)

    def classify(self, code: int) -> SeverityTier:
        try:
            code = self.validate_code(code)
        except ClassificationError as e:
            logger.debug(f"{e}; classified as terminal")
            return SeverityTier.TERMINAL
        return classify(code, self.ignore_mask, self.background_mask)

    def table(self) -> dict[str, SeverityTier]:
        """Tier of every single-bit code, keyed by code name."""
        return {code.name: self.classify(int(code)) for code in SINGLE_CODES}

    def __repr__(self) -> str:
        return (
            f"ClassificationPolicy(ignore_mask={self.ignore_mask}, "
            f"background_mask={self.background_mask})"
        )
