"""
Revenue dashboard.

Sums payments and charges for the requested timeframe and buckets payments
by month, quarter or year. When the practice has no payment history the
report falls back to placeholder figures so the charts still render; every
such figure is listed in ``syntheticFields``.
"""

import random
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .common import MONTH_ABBREVIATIONS, parse_timestamp, percentage, to_amount

TIMEFRAMES = ("annual", "quarterly", "monthly")
DEFAULT_TIMEFRAME = "monthly"

SAMPLE_ANNUAL_REVENUE = 850000
PREVIOUS_YEAR_FACTOR = 0.9
SAMPLE_YOY_CHANGE = 10
SAMPLE_CHARGES_FACTOR = 1.1
SAMPLE_COLLECTION_RATE = 90
SAMPLE_AVERAGE_PAYMENT = 250


def normalize_timeframe(timeframe: Optional[str]) -> str:
    return timeframe if timeframe in TIMEFRAMES else DEFAULT_TIMEFRAME


def revenue_date_range(timeframe: str, year: int, today: date) -> Tuple[date, date]:
    """Calendar year for ``annual``; quarter- or month-to-date otherwise."""

    if timeframe == "annual":
        return date(year, 1, 1), date(year, 12, 31)
    if timeframe == "quarterly":
        quarter_start_month = ((today.month - 1) // 3) * 3 + 1
        return date(today.year, quarter_start_month, 1), today
    return date(today.year, today.month, 1), today


def _period_key(timestamp, timeframe: str) -> str:
    if timeframe == "annual":
        return str(timestamp.year)
    if timeframe == "quarterly":
        return f"Q{(timestamp.month - 1) // 3 + 1}"
    return MONTH_ABBREVIATIONS[timestamp.month - 1]


def group_payments_by_period(
    payments: List[Dict[str, Any]], timeframe: str
) -> List[Dict[str, Any]]:
    periods: Dict[str, Dict[str, Any]] = {}
    for payment in payments:
        timestamp = parse_timestamp(payment.get("created_at"))
        if timestamp is None:
            continue
        key = _period_key(timestamp, timeframe)
        bucket = periods.setdefault(key, {"label": key, "revenue": 0.0, "count": 0})
        bucket["revenue"] += to_amount(payment.get("amount"))
        bucket["count"] += 1

    if timeframe == "monthly":
        return sorted(periods.values(), key=lambda b: MONTH_ABBREVIATIONS.index(b["label"]))
    return sorted(periods.values(), key=lambda b: b["label"])


def sample_periods(timeframe: str, today: date, rng: random.Random) -> List[Dict[str, Any]]:
    """Placeholder buckets: six trailing months or the four quarters."""

    if timeframe == "monthly":
        return [
            {
                "label": MONTH_ABBREVIATIONS[(today.month - 1 - offset) % 12],
                "revenue": 10000 + rng.random() * 5000,
                "count": int(10 + rng.random() * 20),
            }
            for offset in range(6)
        ]
    if timeframe == "quarterly":
        return [
            {
                "label": f"Q{quarter}",
                "revenue": 30000 + rng.random() * 15000,
                "count": int(30 + rng.random() * 50),
            }
            for quarter in range(1, 5)
        ]
    return []


def build_revenue_report(
    payments: List[Dict[str, Any]],
    charges: List[Dict[str, Any]],
    *,
    timeframe: str,
    year: int,
    today: date,
    annual_goal: float,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    rng = rng or random.Random()
    timeframe = normalize_timeframe(timeframe)
    start, end = revenue_date_range(timeframe, year, today)
    synthetic_fields = ["annual.previousYear", "annual.yoyChange"]

    total_revenue = sum(to_amount(p.get("amount")) for p in payments)
    total_charges = sum(to_amount(c.get("amount")) for c in charges)

    periodic = group_payments_by_period(payments, timeframe)
    if not periodic:
        periodic = sample_periods(timeframe, today, rng)
        if periodic:
            synthetic_fields.append("periodic")

    # Metrics derived from the placeholder revenue are placeholders too.
    placeholder_revenue = total_revenue == 0
    if placeholder_revenue:
        total_revenue = SAMPLE_ANNUAL_REVENUE
        synthetic_fields.extend(["annual.actual", "annual.performance"])

    if total_charges > 0:
        charges_figure = total_charges
        collection_rate = percentage(total_revenue, total_charges)
        if placeholder_revenue:
            synthetic_fields.append("metrics.collectionRate")
    else:
        charges_figure = total_revenue * SAMPLE_CHARGES_FACTOR
        collection_rate = SAMPLE_COLLECTION_RATE
        synthetic_fields.extend(["metrics.totalCharges", "metrics.collectionRate"])

    if payments:
        average_payment = total_revenue / len(payments)
        if placeholder_revenue:
            synthetic_fields.append("metrics.averagePayment")
    else:
        average_payment = SAMPLE_AVERAGE_PAYMENT
        synthetic_fields.append("metrics.averagePayment")

    return {
        "annual": {
            "actual": total_revenue,
            "goal": annual_goal,
            "performance": percentage(total_revenue, annual_goal),
            "previousYear": total_revenue * PREVIOUS_YEAR_FACTOR,
            "yoyChange": SAMPLE_YOY_CHANGE,
        },
        "periodic": periodic,
        "timeframe": timeframe,
        "year": year,
        "period": {"start": start.isoformat(), "end": end.isoformat()},
        "metrics": {
            "totalCharges": charges_figure,
            "collectionRate": collection_rate,
            "averagePayment": average_payment,
        },
        "synthetic": True,
        "syntheticFields": synthetic_fields,
    }
