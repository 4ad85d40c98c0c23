"""Hex colour parsing for the solid-colour shortcut."""

from __future__ import annotations

import re

from pumpkinctl.core.errors import InputValidationError

_HEX_RE = re.compile(r"^[0-9a-fA-F]{6}$")


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    """Convert ``#RRGGBB``/``#RGB`` (leading ``#`` optional) to an RGB triple."""
    if not isinstance(value, str):
        raise InputValidationError("Invalid color format")
    digits = value.strip().lstrip("#")
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    if not _HEX_RE.match(digits):
        raise InputValidationError("Invalid color format")
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
