from __future__ import annotations

import math
import time
from datetime import date, datetime
from typing import Any, Optional


def safe_float(value: Any) -> float:
    """Float value of `value`; unparsable or non-finite input is 0.0."""
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def safe_int(value: Any) -> int:
    return int(safe_float(value))


def is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def now_ms() -> int:
    return int(time.time() * 1000)


def today_str(today: Optional[date] = None) -> str:
    return (today or date.today()).isoformat()


def parse_day(value: Any) -> Optional[date]:
    """Parse the leading YYYY-MM-DD of a stored date, None if unusable."""
    text = str(value or "").strip()[:10]
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


def entry_date(value: Any, today: Optional[date] = None) -> str:
    """Stored YYYY-MM-DD for a form date; blank means today."""
    if is_blank(value):
        return today_str(today)
    day = parse_day(value)
    if day is None:
        raise ValueError("Date must be YYYY-MM-DD")
    return day.isoformat()
