import random
from datetime import date

import pytest

from dentalhub.errors import ValidationError
from dentalhub.reports import (
    build_active_patients_report,
    build_daily_huddle_report,
    build_monthly_report,
    build_patient_satisfaction_report,
    build_revenue_report,
    build_treatment_success_report,
)
from dentalhub.reports.active_patients import age_band, age_on
from dentalhub.reports.common import parse_timestamp, rolling_window
from dentalhub.reports.daily_huddle import display_date, huddle_date
from dentalhub.reports.monthly_report import month_bounds, resolve_month
from dentalhub.reports.revenue import normalize_timeframe, revenue_date_range

TODAY = date(2024, 2, 5)

PROVIDERS = [
    {"id": 1, "first_name": "Maya", "last_name": "Chen"},
    {"id": 2, "first_name": "Luis", "last_name": "Ortega"},
]


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def test_parse_timestamp_handles_zulu_and_junk():
    assert parse_timestamp("2024-02-05T09:30:00Z").hour == 9
    assert parse_timestamp("2024-02-05").day == 5
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_rolling_window_falls_back_to_month():
    assert rolling_window("week", TODAY) == ("week", date(2024, 1, 29), TODAY)
    assert rolling_window("fortnight", TODAY)[0] == "month"
    assert rolling_window("week", TODAY, allowed=("month", "quarter", "year"))[0] == "month"
    assert rolling_window("year", TODAY)[1] == date(2023, 2, 5)


# ---------------------------------------------------------------------------
# Revenue
# ---------------------------------------------------------------------------

def test_revenue_report_sums_and_buckets_payments():
    payments = [
        {"amount": "200.00", "created_at": "2024-02-01T10:00:00Z"},
        {"amount": 300, "created_at": "2024-02-03T10:00:00Z"},
    ]
    charges = [{"amount": 1000}]

    report = build_revenue_report(
        payments, charges, timeframe="monthly", year=2024, today=TODAY, annual_goal=1000
    )

    assert report["annual"]["actual"] == 500
    assert report["annual"]["performance"] == pytest.approx(50.0)
    assert report["metrics"]["collectionRate"] == pytest.approx(50.0)
    assert report["metrics"]["averagePayment"] == 250
    assert report["periodic"] == [{"label": "Feb", "revenue": 500.0, "count": 2}]
    assert report["period"] == {"start": "2024-02-01", "end": "2024-02-05"}
    assert report["synthetic"] is True
    assert report["syntheticFields"] == ["annual.previousYear", "annual.yoyChange"]


def test_revenue_report_marks_every_fallback_figure():
    report = build_revenue_report(
        [],
        [],
        timeframe="quarterly",
        year=2024,
        today=TODAY,
        annual_goal=1_200_000,
        rng=random.Random(3),
    )

    assert [bucket["label"] for bucket in report["periodic"]] == ["Q1", "Q2", "Q3", "Q4"]
    assert report["annual"]["actual"] == 850000
    for name in (
        "periodic",
        "annual.actual",
        "annual.performance",
        "metrics.totalCharges",
        "metrics.collectionRate",
        "metrics.averagePayment",
    ):
        assert name in report["syntheticFields"]


def test_revenue_rate_from_placeholder_revenue_is_flagged():
    report = build_revenue_report(
        [], [{"amount": 1000}], timeframe="monthly", year=2024, today=TODAY, annual_goal=1000
    )

    assert report["metrics"]["totalCharges"] == 1000
    assert report["metrics"]["collectionRate"] == pytest.approx(85000.0)
    assert "metrics.collectionRate" in report["syntheticFields"]
    assert "metrics.totalCharges" not in report["syntheticFields"]


def test_revenue_average_from_zero_payments_is_flagged():
    payments = [
        {"amount": 0, "created_at": "2024-02-01T10:00:00Z"},
        {"amount": "0.00", "created_at": "2024-02-02T10:00:00Z"},
    ]

    report = build_revenue_report(
        payments, [{"amount": 500}], timeframe="monthly", year=2024, today=TODAY, annual_goal=1000
    )

    assert report["metrics"]["averagePayment"] == 425000.0
    assert "metrics.averagePayment" in report["syntheticFields"]
    assert "annual.actual" in report["syntheticFields"]
    assert "periodic" not in report["syntheticFields"]


def test_revenue_timeframes():
    assert normalize_timeframe("weekly") == "monthly"
    assert revenue_date_range("annual", 2023, TODAY) == (date(2023, 1, 1), date(2023, 12, 31))
    assert revenue_date_range("quarterly", 2024, date(2024, 5, 20)) == (
        date(2024, 4, 1),
        date(2024, 5, 20),
    )


# ---------------------------------------------------------------------------
# Daily huddle
# ---------------------------------------------------------------------------

def test_daily_huddle_groups_schedule():
    appointments = [
        {"id": "a1", "status": "confirmed", "provider_id": 1, "start_time": "2024-02-05T09:15:00"},
        {"id": "a2", "status": "Unconfirmed", "provider_id": 1, "start_time": "2024-02-05T09:45:00"},
        {"id": "a3", "status": "checked_in", "provider_id": 3, "start_time": "2024-02-05T13:00:00"},
        {"id": "a4", "status": "rescheduled", "start_time": "2024-02-05T14:00:00"},
    ]
    procedures = [
        {"appointment_id": "a1", "name": "Cleaning", "fee": 120},
        {"appointment_id": "a3", "name": "Cleaning", "fee": "80"},
        {"appointment_id": "zz", "name": "Crown", "fee": 900},
    ]

    report = build_daily_huddle_report(appointments, procedures, PROVIDERS, day=TODAY)

    assert report["date"] == {"iso": "2024-02-05", "display": "Monday, February 5, 2024"}
    assert report["summary"]["totalAppointments"] == 4
    assert report["summary"]["confirmedAppointments"] == 2
    assert report["summary"]["confirmationRate"] == pytest.approx(50.0)
    assert report["summary"]["expectedRevenue"] == 200

    by_status = {row["status"]: row["count"] for row in report["appointments"]["byStatus"]}
    assert sum(by_status.values()) == 4
    assert by_status["other"] == 1
    assert by_status["unconfirmed"] == 1

    by_provider = {row["provider"]: row for row in report["appointments"]["byProvider"]}
    assert by_provider["Maya Chen"]["total"] == 2
    assert by_provider["Maya Chen"]["confirmationRate"] == pytest.approx(50.0)
    assert by_provider["Provider 3"]["confirmed"] == 1

    hours = [slot["hour"] for slot in report["appointments"]["byTime"]]
    assert hours == ["9:00", "13:00", "14:00"]
    assert report["procedures"] == {
        "total": 2,
        "byType": [{"type": "Cleaning", "count": 2, "totalFee": 200.0}],
    }


def test_huddle_date_falls_back_to_today():
    assert huddle_date("2024-03-01", TODAY) == date(2024, 3, 1)
    assert huddle_date("not-a-date", TODAY) == TODAY
    assert huddle_date(None, TODAY) == TODAY
    assert display_date(date(2024, 12, 25)) == "Wednesday, December 25, 2024"


# ---------------------------------------------------------------------------
# Monthly report
# ---------------------------------------------------------------------------

def test_monthly_report_for_leap_february():
    payments = [
        {"amount": 100, "created_at": "2024-02-03T10:00:00Z"},
        {"amount": 50, "created_at": "2024-02-03T15:00:00Z"},
        {"amount": 250, "created_at": "2024-02-29T09:00:00Z"},
    ]
    appointments = [
        {"status": "completed"},
        {"status": "completed"},
        {"status": "no_show"},
        {"status": "confirmed"},
    ]
    procedures = [
        {"code": "D1110", "description": "Prophylaxis", "fee": 90},
        {"code": "D1110", "description": "Prophylaxis", "fee": 90},
        {"code": "D2740", "fee": 1100},
    ]

    report = build_monthly_report(payments, appointments, procedures, year=2024, month=2)

    assert report["title"] == "February 2024 Monthly Report"
    assert report["period"] == {
        "month": 2,
        "year": 2024,
        "startDate": "2024-02-01",
        "endDate": "2024-02-29",
    }
    assert report["revenue"]["total"] == 400
    assert report["revenue"]["average"] == 100
    assert report["revenue"]["byDay"] == [{"day": 3, "amount": 150.0}, {"day": 29, "amount": 250.0}]
    assert report["appointments"]["completionRate"] == pytest.approx(50.0)
    assert report["appointments"]["noShowRate"] == pytest.approx(25.0)
    assert report["procedures"]["byType"][0] == {
        "code": "D1110",
        "name": "Prophylaxis",
        "count": 2,
        "revenue": 180.0,
    }
    assert report["procedures"]["byType"][1]["name"] == "D2740"


def test_monthly_report_two_payments_same_day():
    payments = [
        {"amount": 100, "created_at": "2024-02-05T09:00:00Z"},
        {"amount": 50, "created_at": "2024-02-05T16:30:00Z"},
    ]

    report = build_monthly_report(payments, [], [], year=2024, month=2)

    assert report["revenue"]["total"] == 150
    assert report["revenue"]["byDay"] == [{"day": 5, "amount": 150}]
    assert report["appointments"]["total"] == 0
    assert report["appointments"]["completionRate"] == 0


def test_monthly_report_without_data_has_zero_rates():
    report = build_monthly_report([], [], [], year=2023, month=11)

    assert report["period"]["endDate"] == "2023-11-30"
    assert report["revenue"]["average"] == 0
    assert report["appointments"]["completionRate"] == 0


def test_resolve_month_validation():
    assert resolve_month(None, None, TODAY) == (2024, 2)
    assert resolve_month("2023", "12", TODAY) == (2023, 12)
    assert month_bounds(2023, 12) == (date(2023, 12, 1), date(2023, 12, 31))
    for year, month in (("2024", "13"), ("2024", "0"), ("2024", "feb"), ("abc", "2")):
        with pytest.raises(ValidationError):
            resolve_month(year, month, TODAY)


# ---------------------------------------------------------------------------
# Active patients
# ---------------------------------------------------------------------------

def test_age_is_counted_in_completed_years():
    assert age_on(date(2006, 2, 5), TODAY) == 18
    assert age_on(date(2006, 2, 6), TODAY) == 17
    assert age_band(17) == "Under 18"
    assert age_band(18) == "18-30"
    assert age_band(45) == "31-45"
    assert age_band(61) == "61+"


def test_active_patients_report_counts_new_and_returning():
    patients = [
        {"id": "p1", "birth_date": "2006-02-05"},
        {"id": "p2", "birth_date": "2006-02-06"},
        {"id": "p3", "birth_date": None},
    ]
    appointments = [
        {"patient_id": "p1", "provider_id": 1},
        {"patient_id": "r1", "provider_id": 1},
        {"patient_id": "r1", "provider_id": 2},
        {"patient_id": "r2", "provider_id": 1},
        {"provider_id": 2},
    ]

    report = build_active_patients_report(patients, appointments, PROVIDERS, today=TODAY)

    assert report["newPatients"] == 3
    assert report["returningPatients"] == 2
    assert report["total"] == 5
    by_age = {row["ageGroup"]: row["count"] for row in report["byAge"]}
    assert by_age["18-30"] == 1
    assert by_age["Under 18"] == 1
    assert report["byProvider"][0] == {"provider": "Maya Chen", "count": 3}


# ---------------------------------------------------------------------------
# Treatment success
# ---------------------------------------------------------------------------

def test_treatment_success_plans_and_rates():
    appointments = [
        {"id": "a1", "patient_id": "p1", "start_time": "2024-01-20T09:00:00"},
        {"id": "a2", "patient_id": "p2", "start_time": "2024-01-22T09:00:00"},
        {"id": "a3", "patient_id": "p3", "start_time": "2024-01-23T09:00:00"},
        {"id": "a4", "patient_id": "p4", "start_time": "2024-01-24T09:00:00"},
    ]
    procedures = [
        {"appointment_id": "a1", "name": "Filling", "status": "completed", "fee": 150, "created_at": "2024-01-20"},
        {"appointment_id": "a1", "name": "Filling", "status": "completed", "fee": 150, "created_at": "2024-01-20"},
        {"appointment_id": "a2", "name": "Crown", "status": "completed", "fee": 900, "created_at": "2024-01-22"},
        {"appointment_id": "a2", "name": "Crown", "status": "scheduled", "fee": 900, "created_at": "2024-01-22"},
        {"appointment_id": "a3", "name": "Implant", "status": "scheduled", "created_at": "2024-01-23"},
        {"appointment_id": "a3", "name": "Implant", "status": "scheduled", "updated_at": "2024-01-23"},
        {"appointment_id": "a4", "name": "Exam", "status": "completed", "created_at": "2024-01-24"},
        {"appointment_id": "a1", "name": "Filling", "status": "completed", "created_at": "2023-06-01"},
    ]

    report = build_treatment_success_report(
        appointments, procedures, start=date(2024, 1, 6), end=TODAY
    )

    overall = report["overall"]
    assert overall["totalProcedures"] == 7
    assert overall["completedProcedures"] == 4
    assert overall["totalTreatmentPlans"] == 3
    assert overall["completedTreatmentPlans"] == 1

    statuses = {plan["id"]: plan["status"] for plan in report["treatmentPlans"]}
    assert statuses == {"a1": "completed", "a2": "in-progress", "a3": "not-started"}
    for plan in report["treatmentPlans"]:
        assert 0 <= plan["completionRate"] <= 100
        assert (plan["status"] == "completed") == (plan["completionRate"] == 100)

    assert report["averageTreatmentLength"] == 2
    crown = next(row for row in report["proceduresByType"] if row["type"] == "Crown")
    assert crown["revenue"] == 900
    assert crown["completionRate"] == pytest.approx(50.0)


# ---------------------------------------------------------------------------
# Patient satisfaction
# ---------------------------------------------------------------------------

def test_patient_satisfaction_is_flagged_synthetic():
    documents = [
        {"id": "d1", "patient_id": "p1", "name": "Post-visit Survey", "created_at": "2024-02-01"},
        {"id": "d2", "patient_id": "p2", "name": "Feedback form"},
        {"id": "d3", "patient_id": "p3", "document_type_id": "satisfaction_survey"},
        {"id": "d4", "patient_id": "p1", "name": "X-ray"},
    ]
    appointments = [
        {"patient_id": "p1", "provider_id": 1, "status": "completed", "start_time": "2024-01-30T09:00:00"},
        {"patient_id": "p2", "provider_id": 2, "status": "no_show", "start_time": "2024-01-31T09:00:00"},
    ]

    report = build_patient_satisfaction_report(
        documents, appointments, PROVIDERS, rng=random.Random(11)
    )

    assert report["synthetic"] is True
    assert report["notice"]
    assert report["recentFeedback"] == []
    assert report["overall"]["totalResponses"] == 3
    assert sum(row["count"] for row in report["scoreDistribution"]) == 3
    assert -100 <= report["overall"]["npsScore"] <= 100

    by_provider = {row["provider"]: row for row in report["byProvider"]}
    assert 4 <= by_provider["Maya Chen"]["averageScore"] <= 5
    assert 1 <= by_provider["Luis Ortega"]["averageScore"] <= 2


def test_patient_satisfaction_without_surveys():
    report = build_patient_satisfaction_report([], [], [], rng=random.Random(1))

    assert report["overall"] == {"totalResponses": 0, "averageScore": 0, "npsScore": 0}
    assert all(row["percentage"] == 0 for row in report["scoreDistribution"])
