"""Assembles the denormalised case snapshot for one patient."""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import date, datetime, timedelta

from quota_core.core.domain.entities.appointment_entity import AppointmentEntity
from quota_core.core.domain.entities.case_entity import CaseEntity, case_number_for
from quota_core.core.domain.entities.patient_entity import PatientEntity
from quota_core.core.domain.services.case_status import derive_case_status
from quota_core.core.domain.services.quota_resolver import QuotaResolution
from quota_core.core.domain.services.session_counter import latest_appointment

UNKNOWN_PRACTITIONER = "Unknown Practitioner"
DEFAULT_LOCATION = "Main Clinic"
NEXT_VISIT_FALLBACK = timedelta(days=7)


def build_case(
    patient: PatientEntity,
    appointments: Sequence[AppointmentEntity],
    resolution: QuotaResolution,
    *,
    today: date,
    now: datetime,
) -> CaseEntity:
    if not resolution.needs_case:
        raise ValueError(f"patient {patient.id} has no funded sessions")

    status = derive_case_status(resolution.scheme, resolution.remaining)
    latest = latest_appointment(appointments)
    latest_date = latest.appointment_date if latest else None
    dated = [a.appointment_date for a in appointments if a.appointment_date is not None]

    physio = (
        (latest.practitioner_name if latest else None)
        or patient.physio_name
        or UNKNOWN_PRACTITIONER
    )

    return CaseEntity(
        id=uuid.uuid4(),
        clinic_id=patient.clinic_id,
        patient_id=patient.id,
        pms_type=patient.pms_type,
        case_number=case_number_for(patient.pms_patient_id),
        case_title=f"{patient.full_name} - {resolution.program_type}",
        patient_first_name=patient.first_name,
        patient_last_name=patient.last_name,
        patient_email=patient.email,
        patient_phone=patient.phone,
        patient_date_of_birth=patient.date_of_birth,
        physio_name=physio,
        location_name=(latest.location_name if latest else None) or DEFAULT_LOCATION,
        appointment_type_name=latest.appointment_type if latest else None,
        program_type=resolution.program_type,
        quota=resolution.quota,
        sessions_used=resolution.sessions_used,
        remaining_sessions=resolution.remaining,
        status=status.status,
        priority=status.priority,
        is_alert_active=status.is_alert_active,
        alert_message=status.alert_message,
        last_visit_date=latest_date,
        next_visit_date=latest_date or today + NEXT_VISIT_FALLBACK,
        case_start_date=min(dated) if dated else today,
        last_status_change=now,
    )
