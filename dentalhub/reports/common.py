"""Helpers shared by the dashboard report builders."""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Tuple

MONTH_ABBREVIATIONS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

# Rolling windows, in days, selected by the ``period`` query parameter.
PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 90, "year": 365}
LONG_PERIODS = ("month", "quarter", "year")
DEFAULT_PERIOD = "month"

CONFIRMED_STATUSES = ("confirmed", "checked_in", "completed")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or date-time; ``None`` when absent or malformed."""

    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    parsed = parse_timestamp(value)
    return parsed.date() if parsed else None


def to_amount(value: Any) -> float:
    """Coerce a monetary field to float, treating blanks and junk as zero."""

    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def percentage(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole else 0.0


def rolling_window(
    period: Optional[str], today: date, allowed: Iterable[str] = tuple(PERIOD_DAYS)
) -> Tuple[str, date, date]:
    """Return ``(label, start, end)`` for a named rolling period ending today.

    Unknown or disallowed periods fall back to the 30-day ``month`` window.
    """

    label = period if period in allowed else DEFAULT_PERIOD
    return label, today - timedelta(days=PERIOD_DAYS[label]), today


def period_block(label: str, start: date, end: date) -> Dict[str, str]:
    return {"start": start.isoformat(), "end": end.isoformat(), "label": label}


def provider_names(providers: Iterable[Dict[str, Any]]) -> Dict[Any, str]:
    names = {}
    for provider in providers:
        if provider.get("id") is None:
            continue
        full_name = f"{provider.get('first_name') or ''} {provider.get('last_name') or ''}"
        names[provider["id"]] = full_name.strip() or f"Provider {provider['id']}"
    return names


def provider_label(names: Dict[Any, str], provider_id: Any) -> str:
    return names.get(provider_id) or f"Provider {provider_id}"


def status_of(record: Dict[str, Any]) -> str:
    return str(record.get("status") or "").lower()


def sort_key_timestamp(record: Dict[str, Any], field: str) -> Tuple[int, str]:
    """Order records by a timestamp field, unparseable values first."""

    parsed = parse_timestamp(record.get(field))
    if parsed is None:
        return (0, "")
    return (1, parsed.replace(tzinfo=None).isoformat())
