"""Daily huddle: the day's schedule grouped by status, provider and hour."""

from datetime import date
from typing import Any, Dict, List, Optional

from .common import (
    CONFIRMED_STATUSES,
    parse_date,
    parse_timestamp,
    percentage,
    provider_label,
    provider_names,
    sort_key_timestamp,
    status_of,
    to_amount,
)

APPOINTMENT_STATUSES = (
    "confirmed",
    "unconfirmed",
    "checked_in",
    "completed",
    "cancelled",
    "no_show",
)


def huddle_date(value: Optional[str], today: date) -> date:
    """The requested day, falling back to today when missing or invalid."""

    return parse_date(value) or today


def display_date(day: date) -> str:
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


def appointments_by_status(appointments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    counts = {status: 0 for status in APPOINTMENT_STATUSES}
    counts["other"] = 0
    for appointment in appointments:
        status = status_of(appointment)
        counts[status if status in counts else "other"] += 1
    return [{"status": status, "count": count} for status, count in counts.items()]


def appointments_by_provider(
    appointments: List[Dict[str, Any]], providers: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    names = provider_names(providers)
    counts: Dict[str, Dict[str, int]] = {}

    for appointment in appointments:
        provider_id = appointment.get("provider_id")
        if not provider_id:
            continue
        entry = counts.setdefault(
            provider_label(names, provider_id), {"total": 0, "confirmed": 0, "unconfirmed": 0}
        )
        entry["total"] += 1
        if status_of(appointment) in CONFIRMED_STATUSES:
            entry["confirmed"] += 1
        else:
            entry["unconfirmed"] += 1

    rows = [
        {
            "provider": provider,
            "total": entry["total"],
            "confirmed": entry["confirmed"],
            "unconfirmed": entry["unconfirmed"],
            "confirmationRate": percentage(entry["confirmed"], entry["total"]),
        }
        for provider, entry in counts.items()
    ]
    return sorted(rows, key=lambda row: row["total"], reverse=True)


def appointments_by_time(appointments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    hours: Dict[int, List[Dict[str, Any]]] = {}

    for appointment in sorted(appointments, key=lambda a: sort_key_timestamp(a, "start_time")):
        start = parse_timestamp(appointment.get("start_time"))
        if start is None:
            continue
        hours.setdefault(start.hour, []).append(
            {
                "id": appointment.get("id"),
                "patientId": appointment.get("patient_id"),
                "patientName": appointment.get("patient_name") or "Unknown Patient",
                "startTime": appointment.get("start_time"),
                "endTime": appointment.get("end_time"),
                "status": appointment.get("status") or "unknown",
                "providerId": appointment.get("provider_id"),
                "appointmentType": appointment.get("appointment_type") or "General",
                "operatory": appointment.get("operatory") or "Not Specified",
            }
        )

    return [
        {"hour": f"{hour}:00", "appointments": hours[hour]} for hour in sorted(hours)
    ]


def summarize_procedures(
    procedures: List[Dict[str, Any]], appointments: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Group procedures attached to the day's appointments by name."""

    appointment_ids = {a.get("id") for a in appointments if a.get("id") is not None}
    by_type: Dict[str, Dict[str, float]] = {}

    for procedure in procedures:
        if procedure.get("appointment_id") not in appointment_ids:
            continue
        entry = by_type.setdefault(procedure.get("name") or "Uncategorized", {"count": 0, "totalFee": 0.0})
        entry["count"] += 1
        entry["totalFee"] += to_amount(procedure.get("fee"))

    rows = [
        {"type": name, "count": entry["count"], "totalFee": entry["totalFee"]}
        for name, entry in by_type.items()
    ]
    return sorted(rows, key=lambda row: row["count"], reverse=True)


def build_daily_huddle_report(
    appointments: List[Dict[str, Any]],
    procedures: List[Dict[str, Any]],
    providers: List[Dict[str, Any]],
    *,
    day: date,
) -> Dict[str, Any]:
    total = len(appointments)
    confirmed = sum(1 for a in appointments if status_of(a) in CONFIRMED_STATUSES)
    procedure_summary = summarize_procedures(procedures, appointments)

    return {
        "date": {"iso": day.isoformat(), "display": display_date(day)},
        "summary": {
            "totalAppointments": total,
            "confirmedAppointments": confirmed,
            "confirmationRate": percentage(confirmed, total),
            "expectedRevenue": sum(row["totalFee"] for row in procedure_summary),
        },
        "appointments": {
            "byStatus": appointments_by_status(appointments),
            "byProvider": appointments_by_provider(appointments, providers),
            "byTime": appointments_by_time(appointments),
        },
        "procedures": {
            "total": sum(row["count"] for row in procedure_summary),
            "byType": procedure_summary,
        },
    }
