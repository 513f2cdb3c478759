from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime

from quota_core.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class PatientEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    pms_type: str
    pms_patient_id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    date_of_birth: date | None = None
    physio_name: str | None = None
    program_type: str | None = None
    sessions_used: int = 0
    quota: int | None = None
    pms_last_modified: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
