from __future__ import annotations

from django.utils import timezone

from quota_core.core.domain.entities.sync_log_entity import SyncLogEntity
from quota_core.core.domain.repositories.sync_log_repository import SyncLogRepository
from plugins.django_interface.models import SyncLog as SyncLogModel

_COUNTERS = (
    "patients_processed",
    "patients_added",
    "patients_updated",
    "appointments_synced",
    "cases_created",
    "cases_updated",
)


class SyncLogRepoImpl(SyncLogRepository):
    """
    Append-only audit trail. A log leaves `running` exactly once: the
    completing/failing update filters on status=running, so a second
    attempt is a no-op.
    """

    def start(self, clinic_id: str, pms_type: str, sync_type: str) -> SyncLogEntity:
        model = SyncLogModel.objects.create(
            clinic_id=clinic_id,
            pms_type=pms_type,
            sync_type=sync_type,
            status=SyncLogModel.Status.RUNNING,
            started_at=timezone.now(),
        )
        return SyncLogEntity.from_model(model)

    def complete(self, log: SyncLogEntity) -> SyncLogEntity:
        SyncLogModel.objects.filter(id=log.id, status=SyncLogModel.Status.RUNNING).update(
            status=SyncLogModel.Status.COMPLETED,
            issues=list(log.issues),
            completed_at=timezone.now(),
            **{name: getattr(log, name) for name in _COUNTERS},
        )
        return SyncLogEntity.from_model(SyncLogModel.objects.get(id=log.id))

    def fail(self, log_id: str, error_message: str) -> SyncLogEntity:
        SyncLogModel.objects.filter(id=log_id, status=SyncLogModel.Status.RUNNING).update(
            status=SyncLogModel.Status.FAILED,
            error_message=error_message,
            completed_at=timezone.now(),
        )
        return SyncLogEntity.from_model(SyncLogModel.objects.get(id=log_id))

    def find_by_id(self, log_id: str) -> SyncLogEntity | None:
        model = SyncLogModel.objects.filter(id=log_id).first()
        return SyncLogEntity.from_model(model) if model else None

    def list_recent(self, clinic_id: str, limit: int = 10) -> list[SyncLogEntity]:
        qs = SyncLogModel.objects.filter(clinic_id=clinic_id).order_by("-started_at")[:limit]
        return [SyncLogEntity.from_model(m) for m in qs]
