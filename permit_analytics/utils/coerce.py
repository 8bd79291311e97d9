"""
Lenient coercion of raw record values.

Rows arrive from the backing store with timestamps as ISO strings (or already
parsed by the driver) and monetary columns as numerics, strings or NULL. A
value that cannot be coerced is treated as absent rather than raising.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Optional

from dateutil.parser import parse as dateutil_parse


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Return an aware UTC datetime, or None when the value is empty or unparseable."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        try:
            parsed = dateutil_parse(str(value))
        except (TypeError, ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_number(value: Any) -> float:
    """Coerce a monetary or score value to float; NULL and junk count as 0."""
    if value in (None, "") or isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, (int, float, Decimal)):
            number = float(value)
        else:
            number = float(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


__all__ = ["is_blank", "parse_timestamp", "to_number"]
