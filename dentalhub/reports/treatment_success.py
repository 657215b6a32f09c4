"""Treatment success: procedure completion and multi-procedure treatment plans."""

from datetime import date
from typing import Any, Dict, List

from .common import parse_date, percentage, status_of, to_amount

TOP_PROCEDURE_TYPES = 10
TOP_TREATMENT_PLANS = 20
# An appointment with at least this many procedures counts as a treatment plan.
PLAN_MIN_PROCEDURES = 2


def procedures_in_window(
    procedures: List[Dict[str, Any]], start: date, end: date
) -> List[Dict[str, Any]]:
    selected = []
    for procedure in procedures:
        day = parse_date(procedure.get("created_at") or procedure.get("updated_at"))
        if day is not None and start <= day <= end:
            selected.append(procedure)
    return selected


def procedures_by_type(procedures: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    by_type: Dict[str, Dict[str, float]] = {}
    for procedure in procedures:
        entry = by_type.setdefault(
            procedure.get("name") or "Uncategorized",
            {"count": 0, "completed": 0, "revenue": 0.0},
        )
        entry["count"] += 1
        if status_of(procedure) == "completed":
            entry["completed"] += 1
            entry["revenue"] += to_amount(procedure.get("fee"))

    rows = [
        {
            "type": name,
            "count": entry["count"],
            "completed": entry["completed"],
            "completionRate": percentage(entry["completed"], entry["count"]),
            "revenue": entry["revenue"],
        }
        for name, entry in by_type.items()
    ]
    return sorted(rows, key=lambda row: row["count"], reverse=True)


def plan_status(completion_rate: float) -> str:
    if completion_rate == 100:
        return "completed"
    if completion_rate > 0:
        return "in-progress"
    return "not-started"


def treatment_plans(
    appointments: List[Dict[str, Any]], procedures: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    by_appointment: Dict[Any, List[Dict[str, Any]]] = {}
    for procedure in procedures:
        if procedure.get("appointment_id"):
            by_appointment.setdefault(procedure["appointment_id"], []).append(procedure)

    plans = []
    for appointment in appointments:
        linked = by_appointment.get(appointment.get("id"), [])
        if len(linked) < PLAN_MIN_PROCEDURES:
            continue
        completed = sum(1 for p in linked if status_of(p) == "completed")
        rate = percentage(completed, len(linked))
        plans.append(
            {
                "id": appointment.get("id"),
                "patientId": appointment.get("patient_id"),
                "date": appointment.get("start_time"),
                "totalProcedures": len(linked),
                "completedProcedures": completed,
                "completionRate": rate,
                "status": plan_status(rate),
            }
        )
    return plans


def build_treatment_success_report(
    appointments: List[Dict[str, Any]],
    procedures: List[Dict[str, Any]],
    *,
    start: date,
    end: date,
) -> Dict[str, Any]:
    in_window = procedures_in_window(procedures, start, end)
    plans = treatment_plans(appointments, in_window)

    completed_procedures = sum(1 for p in in_window if status_of(p) == "completed")
    completed_plans = sum(1 for plan in plans if plan["status"] == "completed")
    average_length = (
        sum(plan["totalProcedures"] for plan in plans) / len(plans) if plans else 0
    )

    return {
        "overall": {
            "totalProcedures": len(in_window),
            "completedProcedures": completed_procedures,
            "completionRate": percentage(completed_procedures, len(in_window)),
            "totalTreatmentPlans": len(plans),
            "completedTreatmentPlans": completed_plans,
            "treatmentPlanCompletionRate": percentage(completed_plans, len(plans)),
        },
        "proceduresByType": procedures_by_type(in_window)[:TOP_PROCEDURE_TYPES],
        "treatmentPlans": plans[:TOP_TREATMENT_PLANS],
        "averageTreatmentLength": average_length,
    }
