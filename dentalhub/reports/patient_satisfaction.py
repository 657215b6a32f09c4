"""
Patient satisfaction placeholder.

NexHealth exposes no survey responses, so documents that look like surveys
receive a simulated 1-5 score seeded by the patient's latest appointment
outcome. The result is always marked ``synthetic`` and must not be read as
measured patient sentiment.
"""

import random
from typing import Any, Dict, List, Optional

from .common import provider_label, provider_names, sort_key_timestamp, status_of

SURVEY_KEYWORDS = ("survey", "feedback")
SURVEY_DOCUMENT_TYPE = "satisfaction_survey"
TOP_PROVIDERS = 10

# Inclusive score range drawn for each latest-appointment status.
SCORE_RANGES = {
    "completed": (4, 5),
    "cancelled": (2, 3),
    "no_show": (1, 2),
}
DEFAULT_SCORE_RANGE = (1, 5)

SATISFACTION_NOTICE = (
    "Scores are simulated from appointment outcomes because no survey "
    "responses are available upstream; treat them as placeholders."
)


def is_survey(document: Dict[str, Any]) -> bool:
    name = str(document.get("name") or "").lower()
    return (
        any(keyword in name for keyword in SURVEY_KEYWORDS)
        or document.get("document_type_id") == SURVEY_DOCUMENT_TYPE
    )


def _latest_by_patient(appointments: List[Dict[str, Any]]) -> Dict[Any, Dict[str, Any]]:
    latest: Dict[Any, Dict[str, Any]] = {}
    for appointment in sorted(appointments, key=lambda a: sort_key_timestamp(a, "start_time")):
        if appointment.get("patient_id"):
            latest[appointment["patient_id"]] = appointment
    return latest


def simulate_scores(
    documents: List[Dict[str, Any]],
    appointments: List[Dict[str, Any]],
    rng: random.Random,
) -> List[Dict[str, Any]]:
    latest = _latest_by_patient(appointments)
    responses = []
    for document in documents:
        if not is_survey(document):
            continue
        patient_id = document.get("patient_id")
        appointment = latest.get(patient_id)
        status = status_of(appointment) if appointment else "unknown"
        low, high = SCORE_RANGES.get(status, DEFAULT_SCORE_RANGE)
        name = str(document.get("name") or "").strip()
        responses.append(
            {
                "patientId": patient_id,
                "documentId": document.get("id"),
                "date": document.get("created_at") or document.get("updated_at"),
                "score": rng.randint(low, high),
                "category": name.split(" ")[0] if name else "General",
            }
        )
    return responses


def nps_score(responses: List[Dict[str, Any]]) -> int:
    """Promoters (score 5) minus detractors (score 3 or less), in percent."""

    if not responses:
        return 0
    total = len(responses)
    promoters = sum(1 for r in responses if r["score"] == 5)
    detractors = sum(1 for r in responses if r["score"] <= 3)
    return round((promoters / total) * 100 - (detractors / total) * 100)


def scores_by_provider(
    responses: List[Dict[str, Any]],
    appointments: List[Dict[str, Any]],
    providers: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    names = provider_names(providers)
    patient_provider = {
        patient_id: appointment.get("provider_id")
        for patient_id, appointment in _latest_by_patient(appointments).items()
        if appointment.get("provider_id")
    }

    grouped: Dict[str, List[int]] = {}
    for response in responses:
        provider_id = patient_provider.get(response["patientId"])
        if provider_id:
            grouped.setdefault(provider_label(names, provider_id), []).append(response["score"])

    rows = [
        {
            "provider": provider,
            "averageScore": sum(scores) / len(scores),
            "responseCount": len(scores),
        }
        for provider, scores in grouped.items()
    ]
    return sorted(rows, key=lambda row: row["averageScore"], reverse=True)[:TOP_PROVIDERS]


def build_patient_satisfaction_report(
    documents: List[Dict[str, Any]],
    appointments: List[Dict[str, Any]],
    providers: List[Dict[str, Any]],
    *,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    responses = simulate_scores(documents, appointments, rng or random.Random())
    total = len(responses)
    distribution = []
    for score in range(1, 6):
        count = sum(1 for r in responses if r["score"] == score)
        distribution.append(
            {"score": score, "count": count, "percentage": (count / total) * 100 if total else 0}
        )

    return {
        "overall": {
            "totalResponses": total,
            "averageScore": sum(r["score"] for r in responses) / total if total else 0,
            "npsScore": nps_score(responses),
        },
        "scoreDistribution": distribution,
        "byProvider": scores_by_provider(responses, appointments, providers),
        "recentFeedback": [],
        "synthetic": True,
        "notice": SATISFACTION_NOTICE,
    }
