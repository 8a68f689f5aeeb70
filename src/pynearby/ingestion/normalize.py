"""Normalization helpers.

Centralizes defensive scalar parsing for feed records. Every helper returns
``None`` instead of raising so a single malformed field never drops a driver.
"""

from __future__ import annotations

import math
from typing import Any

# Placeholder strings some publishers write instead of leaving a field out.
SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


def is_sentinel(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() in SENTINELS:
        return True
    return isinstance(value, float) and math.isnan(value)


def safe_float(value: Any) -> float | None:
    if isinstance(value, bool) or is_sentinel(value):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if is_sentinel(value) or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text if text else None


def non_negative_or_zero(value: Any) -> int:
    parsed = safe_int(value)
    if parsed is None:
        return 0
    return 0 if parsed < 0 else parsed
