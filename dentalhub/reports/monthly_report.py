"""Monthly report covering one calendar month."""

import calendar
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ValidationError
from .common import parse_timestamp, percentage, status_of, to_amount


def resolve_month(
    year: Optional[str], month: Optional[str], today: date
) -> Tuple[int, int]:
    """Validate the ``year``/``month`` query values, defaulting to the current month."""

    try:
        resolved_year = int(year) if year not in (None, "") else today.year
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid year: {year}")
    try:
        resolved_month = int(month) if month not in (None, "") else today.month
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid month: {month}")

    if not 1 <= resolved_month <= 12:
        raise ValidationError(f"Invalid month: {month}. Month must be between 1 and 12")
    if not 1 <= resolved_year <= 9999:
        raise ValidationError(f"Invalid year: {year}")
    return resolved_year, resolved_month


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def payments_by_day(payments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    daily: Dict[int, float] = {}
    for payment in payments:
        timestamp = parse_timestamp(payment.get("created_at"))
        if timestamp is None:
            continue
        daily[timestamp.day] = daily.get(timestamp.day, 0.0) + to_amount(payment.get("amount"))
    return [{"day": day, "amount": daily[day]} for day in sorted(daily)]


def procedures_by_code(procedures: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    by_code: Dict[str, Dict[str, Any]] = {}
    for procedure in procedures:
        code = procedure.get("code") or "unknown"
        entry = by_code.setdefault(
            code,
            {"code": code, "name": procedure.get("description") or code, "count": 0, "revenue": 0.0},
        )
        entry["count"] += 1
        entry["revenue"] += to_amount(procedure.get("fee"))
    return sorted(by_code.values(), key=lambda entry: entry["count"], reverse=True)


def build_monthly_report(
    payments: List[Dict[str, Any]],
    appointments: List[Dict[str, Any]],
    procedures: List[Dict[str, Any]],
    *,
    year: int,
    month: int,
) -> Dict[str, Any]:
    start, end = month_bounds(year, month)
    total_revenue = sum(to_amount(p.get("amount")) for p in payments)
    total_appointments = len(appointments)
    completed = sum(1 for a in appointments if status_of(a) == "completed")
    no_shows = sum(1 for a in appointments if status_of(a) == "no_show")

    return {
        "title": f"{calendar.month_name[month]} {year} Monthly Report",
        "period": {
            "month": month,
            "year": year,
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
        },
        "revenue": {
            "total": total_revenue,
            "average": total_revenue / total_appointments if total_appointments else 0,
            "byDay": payments_by_day(payments),
        },
        "appointments": {
            "total": total_appointments,
            "completed": completed,
            "completionRate": percentage(completed, total_appointments),
            "noShowRate": percentage(no_shows, total_appointments),
        },
        "procedures": {
            "total": len(procedures),
            "byType": procedures_by_code(procedures),
        },
    }
