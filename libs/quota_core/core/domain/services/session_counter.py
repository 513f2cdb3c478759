"""
Session counting under the two funding windows.

* WC is per injury: every completed WC appointment counts, whatever its date.
* EPC resets each calendar year: only completed EPC appointments dated in
  the clinic's active year count; undated ones never do.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from quota_core.core.domain.entities.appointment_entity import (
    COMPLETED_STATUSES,
    AppointmentEntity,
)
from quota_core.core.domain.entities.quota_policy_entity import FundingScheme, TagSet
from quota_core.core.domain.services.appointment_classifier import AppointmentClassifier


def is_completed_status(status: str | None) -> bool:
    return (status or "").strip().lower() in COMPLETED_STATUSES


@dataclass(frozen=True, slots=True)
class SessionCounts:
    wc: int = 0
    epc: int = 0


def _classified(
    appointments: Iterable[AppointmentEntity],
    classifier: AppointmentClassifier,
    scheme: FundingScheme,
):
    for appt in appointments:
        if is_completed_status(appt.status) and classifier.classify(appt.appointment_type) is scheme:
            yield appt


def count_wc_sessions(
    appointments: Iterable[AppointmentEntity],
    tags: TagSet | AppointmentClassifier,
) -> int:
    classifier = tags if isinstance(tags, AppointmentClassifier) else AppointmentClassifier(tags)
    return sum(1 for _ in _classified(appointments, classifier, FundingScheme.WC))


def count_epc_sessions(
    appointments: Iterable[AppointmentEntity],
    tags: TagSet | AppointmentClassifier,
    active_year: int,
) -> int:
    classifier = tags if isinstance(tags, AppointmentClassifier) else AppointmentClassifier(tags)
    return sum(
        1
        for appt in _classified(appointments, classifier, FundingScheme.EPC)
        if appt.appointment_date is not None and appt.appointment_date.year == active_year
    )


def count_sessions(
    appointments: Iterable[AppointmentEntity],
    classifier: AppointmentClassifier,
    active_year: int,
) -> SessionCounts:
    appts = list(appointments)
    return SessionCounts(
        wc=count_wc_sessions(appts, classifier),
        epc=count_epc_sessions(appts, classifier, active_year),
    )


def determine_active_year(latest_completed_date: date | None, today: date) -> int:
    """Year of the clinic's most recent completed appointment, else the current year."""
    if latest_completed_date is None:
        return today.year
    return latest_completed_date.year


def latest_appointment(appointments: Iterable[AppointmentEntity]) -> AppointmentEntity | None:
    """Most recent dated appointment, any status."""
    dated = [a for a in appointments if a.appointment_date is not None]
    if not dated:
        return None
    return max(dated, key=lambda a: a.appointment_date)
