from __future__ import annotations

from django.db import transaction

from quota_core.core.domain.entities.appointment_entity import AppointmentEntity
from quota_core.core.domain.repositories.appointment_repository import AppointmentRepository
from plugins.django_interface.models import Appointment as AppointmentModel

_MUTABLE = (
    "patient_id",
    "appointment_type",
    "status",
    "appointment_date",
    "practitioner_name",
    "location_name",
    "duration_minutes",
)


class AppointmentRepoImpl(AppointmentRepository):
    def find_by_clinic(self, clinic_id: str, pms_type: str) -> list[AppointmentEntity]:
        qs = AppointmentModel.objects.filter(clinic_id=clinic_id, pms_type=pms_type)
        return [AppointmentEntity.from_model(m) for m in qs.order_by("appointment_date", "id")]

    @transaction.atomic
    def upsert(self, appointment: AppointmentEntity) -> tuple[AppointmentEntity, bool]:
        values = {f: getattr(appointment, f) for f in _MUTABLE}
        model, created = AppointmentModel.objects.update_or_create(
            clinic_id=appointment.clinic_id,
            pms_type=appointment.pms_type,
            pms_appointment_id=appointment.pms_appointment_id,
            defaults=values,
            create_defaults={"id": appointment.id, **values},
        )
        return AppointmentEntity.from_model(model), created
