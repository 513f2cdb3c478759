"""
Dict-backed repositories for handler tests that do not need the database.
"""
from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone

from quota_core.core.application.cqrs import PagedResult
from quota_core.core.domain.entities.appointment_entity import AppointmentEntity
from quota_core.core.domain.entities.case_entity import CaseEntity
from quota_core.core.domain.entities.clinic_entity import ClinicEntity
from quota_core.core.domain.entities.patient_entity import PatientEntity
from quota_core.core.domain.entities.sync_control_entity import SyncControlEntity
from quota_core.core.domain.entities.sync_log_entity import SyncLogEntity
from quota_core.core.domain.repositories.appointment_repository import AppointmentRepository
from quota_core.core.domain.repositories.case_repository import CaseRepository
from quota_core.core.domain.repositories.clinic_repository import ClinicRepository
from quota_core.core.domain.repositories.patient_repository import PatientRepository
from quota_core.core.domain.repositories.sync_control_repository import SyncControlRepository
from quota_core.core.domain.repositories.sync_log_repository import SyncLogRepository


def _key(value) -> str:
    return str(value)


class InMemoryClinicRepo(ClinicRepository):
    def __init__(self, *clinics: ClinicEntity):
        self.rows = {_key(c.id): c for c in clinics}

    def find_by_id(self, clinic_id):
        row = self.rows.get(_key(clinic_id))
        return replace(row) if row else None

    def save(self, clinic):
        self.rows[_key(clinic.id)] = replace(clinic)
        return clinic


class InMemoryPatientRepo(PatientRepository):
    def __init__(self, *patients: PatientEntity):
        self.rows = {_key(p.id): p for p in patients}
        self.quota_updates: list[str] = []

    def find_by_id(self, patient_id):
        row = self.rows.get(_key(patient_id))
        return replace(row) if row else None

    def find_by_clinic(self, clinic_id, pms_type):
        return [
            replace(p) for p in self.rows.values()
            if _key(p.clinic_id) == _key(clinic_id) and p.pms_type == pms_type
        ]

    def upsert(self, patient):
        for row in self.rows.values():
            if (
                _key(row.clinic_id) == _key(patient.clinic_id)
                and row.pms_type == patient.pms_type
                and row.pms_patient_id == patient.pms_patient_id
            ):
                updated = replace(
                    patient,
                    id=row.id,
                    program_type=row.program_type,
                    sessions_used=row.sessions_used,
                    quota=row.quota,
                )
                self.rows[_key(row.id)] = updated
                return replace(updated), False
        self.rows[_key(patient.id)] = replace(patient)
        return replace(patient), True

    def update_quota(self, patient_id, *, program_type, sessions_used, quota):
        row = self.rows[_key(patient_id)]
        row.program_type = program_type
        row.sessions_used = sessions_used
        row.quota = quota
        self.quota_updates.append(_key(patient_id))

    def list(self, filtros, page, page_size):
        items = [p for p in self.rows.values() if _key(p.clinic_id) == _key(filtros.get("clinic_id"))]
        return PagedResult(items=items, total=len(items), page=page, page_size=page_size)


class InMemoryAppointmentRepo(AppointmentRepository):
    def __init__(self, *appointments: AppointmentEntity):
        self.rows = {(_key(a.clinic_id), a.pms_type, a.pms_appointment_id): a for a in appointments}

    def find_by_clinic(self, clinic_id, pms_type):
        return [
            replace(a) for (cid, pms, _), a in self.rows.items()
            if cid == _key(clinic_id) and pms == pms_type
        ]

    def upsert(self, appointment):
        key = (_key(appointment.clinic_id), appointment.pms_type, appointment.pms_appointment_id)
        created = key not in self.rows
        if not created:
            appointment = replace(appointment, id=self.rows[key].id)
        self.rows[key] = replace(appointment)
        return replace(appointment), created


class FailingAppointmentRepo(InMemoryAppointmentRepo):
    """Simulates the PMS/storage read failing for the whole clinic."""

    def find_by_clinic(self, clinic_id, pms_type):
        raise ConnectionError("PMS API timed out")


class InMemoryCaseRepo(CaseRepository):
    def __init__(self, fail_for: set[str] | None = None):
        self.rows: dict[tuple[str, str, str], CaseEntity] = {}
        self.fail_for = fail_for or set()

    def upsert(self, case):
        if _key(case.patient_id) in self.fail_for:
            raise RuntimeError("database write rejected")
        key = (_key(case.clinic_id), _key(case.patient_id), case.pms_type)
        existing = self.rows.get(key)
        if existing is not None:
            case = replace(case, id=existing.id, created_at=existing.created_at)
        self.rows[key] = replace(case)
        return replace(case), existing is None

    def find_by_id(self, case_id):
        for row in self.rows.values():
            if _key(row.id) == _key(case_id):
                return replace(row)
        return None

    def save(self, case):
        key = (_key(case.clinic_id), _key(case.patient_id), case.pms_type)
        self.rows[key] = replace(case)
        return replace(case)

    def list(self, filtros, page, page_size):
        items = [c for c in self.rows.values() if _key(c.clinic_id) == _key(filtros.get("clinic_id"))]
        return PagedResult(items=items, total=len(items), page=page, page_size=page_size)

    def summary(self, clinic_id):
        raise NotImplementedError


class InMemorySyncLogRepo(SyncLogRepository):
    def __init__(self):
        self.rows: dict[str, SyncLogEntity] = {}

    def start(self, clinic_id, pms_type, sync_type):
        log = SyncLogEntity(
            id=uuid.uuid4(),
            clinic_id=clinic_id,
            pms_type=pms_type,
            sync_type=sync_type,
            status="running",
            started_at=datetime.now(timezone.utc),
        )
        self.rows[_key(log.id)] = log
        return replace(log)

    def complete(self, log):
        stored = self.rows[_key(log.id)]
        if stored.status == "running":
            self.rows[_key(log.id)] = replace(
                log, status="completed", issues=list(log.issues), completed_at=datetime.now(timezone.utc)
            )
        return replace(self.rows[_key(log.id)])

    def fail(self, log_id, error_message):
        stored = self.rows[_key(log_id)]
        if stored.status == "running":
            stored.status = "failed"
            stored.error_message = error_message
            stored.completed_at = datetime.now(timezone.utc)
        return replace(stored)

    def find_by_id(self, log_id):
        row = self.rows.get(_key(log_id))
        return replace(row) if row else None

    def list_recent(self, clinic_id, limit=10):
        rows = [r for r in self.rows.values() if _key(r.clinic_id) == _key(clinic_id)]
        rows.sort(key=lambda r: r.started_at, reverse=True)
        return [replace(r) for r in rows[:limit]]


class InMemorySyncControlRepo(SyncControlRepository):
    def __init__(self):
        self.rows: dict[tuple[str, str], SyncControlEntity] = {}

    def get(self, clinic_id, pms_type):
        row = self.rows.get((_key(clinic_id), pms_type))
        return replace(row) if row else None

    def save(self, control):
        self.rows[(_key(control.clinic_id), control.pms_type)] = replace(control)
        return replace(control)

    def list_due(self, now):
        return [replace(c) for c in self.rows.values() if c.is_due(now)]
