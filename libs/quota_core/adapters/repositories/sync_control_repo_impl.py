from __future__ import annotations

from datetime import datetime

from django.db.models import Q

from quota_core.core.domain.entities.sync_control_entity import SyncControlEntity
from quota_core.core.domain.repositories.sync_control_repository import SyncControlRepository
from plugins.django_interface.models import SyncControl as SyncControlModel


class SyncControlRepoImpl(SyncControlRepository):
    def get(self, clinic_id: str, pms_type: str) -> SyncControlEntity | None:
        model = SyncControlModel.objects.filter(clinic_id=clinic_id, pms_type=pms_type).first()
        return SyncControlEntity.from_model(model) if model else None

    def save(self, control: SyncControlEntity) -> SyncControlEntity:
        model, _ = SyncControlModel.objects.update_or_create(
            clinic_id=control.clinic_id,
            pms_type=control.pms_type,
            defaults={
                "is_enabled": control.is_enabled,
                "last_sync_at": control.last_sync_at,
                "next_sync_at": control.next_sync_at,
            },
        )
        return SyncControlEntity.from_model(model)

    def list_due(self, now: datetime) -> list[SyncControlEntity]:
        qs = SyncControlModel.objects.filter(is_enabled=True).filter(
            Q(next_sync_at__isnull=True) | Q(next_sync_at__lte=now)
        )
        return [SyncControlEntity.from_model(m) for m in qs.order_by("next_sync_at")]
