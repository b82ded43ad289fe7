"""Small string helpers shared across the package."""

from __future__ import annotations

import re

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def is_blank(s: str) -> bool:
    """Return True if the string is empty or holds only whitespace."""
    return s.strip() == ""


def is_not_blank(s: str) -> bool:
    """Return True if the string holds anything besides whitespace."""
    return not is_blank(s)


def parse_int(value: str, name: str) -> int:
    """Parse a strict decimal integer, raising ValueError that mentions ``name``."""
    if not _INT_PATTERN.fullmatch(value):
        raise ValueError(
            f"Value of {name} must be an integer: invalid syntax {value!r}"
        )
    return int(value)


def parse_bool(value: str) -> bool:
    """Parse a boolean flag; anything not recognised as true counts as false."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return False