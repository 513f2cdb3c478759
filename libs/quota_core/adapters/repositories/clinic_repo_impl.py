from __future__ import annotations

from quota_core.core.domain.entities.clinic_entity import ClinicEntity
from quota_core.core.domain.repositories.clinic_repository import ClinicRepository
from plugins.django_interface.models import Clinic as ClinicModel


class ClinicRepoImpl(ClinicRepository):
    def find_by_id(self, clinic_id: str) -> ClinicEntity | None:
        model = ClinicModel.objects.filter(id=clinic_id).first()
        return ClinicEntity.from_model(model) if model else None

    def save(self, clinic: ClinicEntity) -> ClinicEntity:
        model, _ = ClinicModel.objects.update_or_create(
            id=clinic.id,
            defaults={
                "name": clinic.name,
                "pms_type": clinic.pms_type,
                "wc_tags": list(clinic.wc_tags),
                "epc_tags": list(clinic.epc_tags),
                "wc_quota": clinic.wc_quota,
                "epc_quota": clinic.epc_quota,
                "subscription_status": clinic.subscription_status,
            },
        )
        return ClinicEntity.from_model(model)
