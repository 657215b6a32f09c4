"""
Dashboard report builders.

Each builder is a pure function of the fetched NexHealth records, the
requested period and an injected "today".
"""

from dentalhub.reports.active_patients import build_active_patients_report
from dentalhub.reports.daily_huddle import build_daily_huddle_report
from dentalhub.reports.monthly_report import build_monthly_report
from dentalhub.reports.patient_satisfaction import build_patient_satisfaction_report
from dentalhub.reports.revenue import build_revenue_report
from dentalhub.reports.treatment_success import build_treatment_success_report

__all__ = [
    "build_active_patients_report",
    "build_daily_huddle_report",
    "build_monthly_report",
    "build_patient_satisfaction_report",
    "build_revenue_report",
    "build_treatment_success_report",
]
