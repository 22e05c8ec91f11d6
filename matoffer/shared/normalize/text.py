from __future__ import annotations

"""Normalization primitives for catalog codes and mat dimension strings."""

import re
from typing import Optional, Tuple

_RE_WHITESPACE = re.compile(r"\s+")
_RE_DIMENSIONS = re.compile(r"(\d+)\s*[*xX×]\s*(\d+)")


def normalize_code(code: Optional[str]) -> str:
    """Return an upper-case, whitespace-free representation of a catalog code.

    ``" design-85×150 "`` becomes ``"DESIGN-85X150"`` so lookups are
    insensitive to the separator the user typed. Empty input yields ``""``.
    """

    if not code:
        return ""
    normalized = str(code).strip().upper().replace("×", "X")
    return _RE_WHITESPACE.sub("", normalized)


def split_dimensions(text: Optional[str]) -> Optional[Tuple[int, int]]:
    """Extract ``(width, height)`` in cm from strings like ``120*180`` or ``120 x 180``."""

    if not text:
        return None
    match = _RE_DIMENSIONS.search(str(text))
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def normalize_dimensions(text: Optional[str]) -> str:
    """Canonical ``W*H`` form used for catalog size comparison; ``""`` when unparsable."""

    parsed = split_dimensions(text)
    if parsed is None:
        return ""
    return f"{parsed[0]}*{parsed[1]}"


def dimensions_label(text: Optional[str]) -> str:
    parsed = split_dimensions(text)
    if parsed is None:
        return ""
    return f"{parsed[0]}x{parsed[1]}"
