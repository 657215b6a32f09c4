"""Active patients: new versus returning, age bands and provider panels."""

from datetime import date
from typing import Any, Dict, List

from .common import parse_date, provider_label, provider_names

AGE_BANDS = ("Under 18", "18-30", "31-45", "46-60", "61+")
TOP_PROVIDERS = 10


def age_on(birth_date: date, today: date) -> int:
    """Age in completed years."""

    had_birthday = (today.month, today.day) >= (birth_date.month, birth_date.day)
    return today.year - birth_date.year - (0 if had_birthday else 1)


def age_band(age: int) -> str:
    if age < 18:
        return "Under 18"
    if age <= 30:
        return "18-30"
    if age <= 45:
        return "31-45"
    if age <= 60:
        return "46-60"
    return "61+"


def patients_by_age(patients: List[Dict[str, Any]], today: date) -> List[Dict[str, Any]]:
    counts = {band: 0 for band in AGE_BANDS}
    for patient in patients:
        birth_date = parse_date(patient.get("birth_date"))
        if birth_date is None:
            continue
        counts[age_band(age_on(birth_date, today))] += 1
    return [{"ageGroup": band, "count": count} for band, count in counts.items()]


def patients_by_provider(
    appointments: List[Dict[str, Any]], providers: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    names = provider_names(providers)
    panels: Dict[str, set] = {}
    for appointment in appointments:
        provider_id = appointment.get("provider_id")
        patient_id = appointment.get("patient_id")
        if provider_id and patient_id:
            panels.setdefault(provider_label(names, provider_id), set()).add(patient_id)

    rows = [{"provider": name, "count": len(ids)} for name, ids in panels.items()]
    return sorted(rows, key=lambda row: row["count"], reverse=True)[:TOP_PROVIDERS]


def build_active_patients_report(
    patients: List[Dict[str, Any]],
    appointments: List[Dict[str, Any]],
    providers: List[Dict[str, Any]],
    *,
    today: date,
) -> Dict[str, Any]:
    new_ids = {p.get("id") for p in patients}
    returning_ids = {
        a["patient_id"]
        for a in appointments
        if a.get("patient_id") and a["patient_id"] not in new_ids
    }

    return {
        "total": len(patients) + len(returning_ids),
        "newPatients": len(patients),
        "returningPatients": len(returning_ids),
        "byAge": patients_by_age(patients, today),
        "byProvider": patients_by_provider(appointments, providers),
    }
