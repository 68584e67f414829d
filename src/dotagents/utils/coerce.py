"""Coercion helpers for flat frontmatter values.

Frontmatter stores every value as a string; repositories use these to turn
them back into booleans, numbers and lists without ever raising.
"""

from __future__ import annotations

import json
import math
import re

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


def normalize_single_line(text: str | None) -> str:
    """Collapse line breaks and runs of whitespace into single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()


def parse_bool(raw: str | None, default: bool) -> bool:
    value = (raw or "").strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def parse_number(raw: str | None, default: int | None) -> int | None:
    """Parse an integer-valued field; fractional input is floored."""
    value = (raw or "").strip()
    if not value:
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    if not math.isfinite(number):
        return default
    return math.floor(number)


def parse_list(raw: str | None) -> list[str]:
    """Parse a comma separated list. JSON arrays are accepted too."""
    value = (raw or "").strip()
    if not value:
        return []
    if value.startswith("[") and value.endswith("]"):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [item.strip() for item in parsed if isinstance(item, str) and item.strip()]
    return [item.strip() for item in value.split(",") if item.strip()]


def format_list(values: list[str] | None) -> str:
    items = (normalize_single_line(v) for v in values or [])
    return ", ".join(item for item in items if item)
