from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date

from quota_core.core.domain.entities._base import EntityMixin

COMPLETED_STATUSES = frozenset({"completed", "attended", "finished"})


@dataclass(slots=True)
class AppointmentEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    patient_id: uuid.UUID
    pms_type: str
    pms_appointment_id: str
    appointment_type: str | None
    status: str
    appointment_date: date | None = None
    practitioner_name: str | None = None
    location_name: str | None = None
    duration_minutes: int | None = None

    @property
    def is_completed(self) -> bool:
        return (self.status or "").strip().lower() in COMPLETED_STATUSES
