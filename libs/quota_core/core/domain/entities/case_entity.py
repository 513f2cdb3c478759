from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal

from quota_core.core.domain.entities._base import EntityMixin

CaseStatus = Literal["active", "warning", "critical", "pending", "archived"]
CasePriority = Literal["low", "normal", "high", "urgent"]


def case_number_for(pms_patient_id: str) -> str:
    return f"CASE-{pms_patient_id}"


@dataclass(slots=True)
class CaseEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    patient_id: uuid.UUID
    pms_type: str
    case_number: str
    case_title: str
    patient_first_name: str
    patient_last_name: str
    program_type: str
    quota: int
    sessions_used: int
    remaining_sessions: int
    status: CaseStatus
    priority: CasePriority
    case_start_date: date
    is_alert_active: bool = False
    alert_message: str | None = None
    patient_email: str | None = None
    patient_phone: str | None = None
    patient_date_of_birth: date | None = None
    physio_name: str = "Unknown Practitioner"
    location_name: str = "Main Clinic"
    appointment_type_name: str | None = None
    last_visit_date: date | None = None
    next_visit_date: date | None = None
    status_change_reason: str | None = None
    last_status_change: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_overdue(self) -> bool:
        return self.sessions_used > self.quota
