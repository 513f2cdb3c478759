from __future__ import annotations

from django.db import transaction
from django.db.models import Q

from quota_core.core.application.cqrs import PagedResult
from quota_core.core.domain.entities.patient_entity import PatientEntity
from quota_core.core.domain.repositories.patient_repository import PatientRepository
from plugins.django_interface.models import Patient as PatientModel

# fields refreshed from the PMS on every ingest; quota fields belong to the sync
_PMS_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "date_of_birth",
    "physio_name",
    "pms_last_modified",
)


class PatientRepoImpl(PatientRepository):
    """
    Django implementation of the patient store.

    Patients are keyed on (clinic, pms_type, pms_patient_id); the local UUID
    is assigned once on creation and never changes.
    """

    def find_by_id(self, patient_id: str) -> PatientEntity | None:
        model = PatientModel.objects.filter(id=patient_id).first()
        return PatientEntity.from_model(model) if model else None

    def find_by_clinic(self, clinic_id: str, pms_type: str) -> list[PatientEntity]:
        qs = PatientModel.objects.filter(clinic_id=clinic_id, pms_type=pms_type).order_by("created_at", "id")
        return [PatientEntity.from_model(m) for m in qs]

    @transaction.atomic
    def upsert(self, patient: PatientEntity) -> tuple[PatientEntity, bool]:
        model, created = PatientModel.objects.update_or_create(
            clinic_id=patient.clinic_id,
            pms_type=patient.pms_type,
            pms_patient_id=patient.pms_patient_id,
            defaults={f: getattr(patient, f) for f in _PMS_FIELDS},
            create_defaults={
                "id": patient.id,
                **{f: getattr(patient, f) for f in _PMS_FIELDS},
            },
        )
        return PatientEntity.from_model(model), created

    def update_quota(
        self, patient_id: str, *, program_type: str, sessions_used: int, quota: int | None
    ) -> None:
        PatientModel.objects.filter(id=patient_id).update(
            program_type=program_type,
            sessions_used=sessions_used,
            quota=quota,
        )

    def list(self, filtros: dict, page: int, page_size: int) -> PagedResult[PatientEntity]:
        filtros = dict(filtros)
        search = (filtros.pop("search", "") or "").strip()
        qs = PatientModel.objects.filter(**filtros)
        if search:
            qs = qs.filter(
                Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(email__icontains=search)
                | Q(pms_patient_id=search)
            )

        total = qs.count()
        offset = (page - 1) * page_size
        page_qs = qs.order_by("last_name", "first_name", "id")[offset : offset + page_size]
        return PagedResult(
            items=[PatientEntity.from_model(m) for m in page_qs],
            total=total,
            page=page,
            page_size=page_size,
        )
