"""Country code normalization."""
from __future__ import annotations

from typing import Any, Iterable, List

# Sentinel for addresses the backend could not place in any country.
UNKNOWN = "Unknown"


def is_country_code(value: str) -> bool:
    return len(value) == 2 and value.isascii() and value.isalpha() and value.isupper()


def normalize_country_code(value: Any) -> str:
    """Return an uppercase two-letter code, or ``UNKNOWN`` for empty input.

    Raises ``ValueError`` for anything that is neither empty nor a two-letter
    ASCII code.
    """

    if value is None:
        return UNKNOWN
    if not isinstance(value, str):
        raise ValueError(f"Country code must be a string, got {type(value).__name__}")
    code = value.strip().upper()
    if not code:
        return UNKNOWN
    if not is_country_code(code):
        raise ValueError(f"Malformed country code: {value!r}")
    return code


def parse_country_list(value: str | Iterable[str]) -> List[str]:
    """Split a comma separated list (or iterable) into normalized codes.

    Empty items are dropped, duplicates are kept in first-seen order once.
    """

    items = value.split(",") if isinstance(value, str) else list(value)
    codes: List[str] = []
    for item in items:
        code = normalize_country_code(item)
        if code == UNKNOWN:
            continue
        if code not in codes:
            codes.append(code)
    return codes


__all__ = ["UNKNOWN", "is_country_code", "normalize_country_code", "parse_country_list"]
