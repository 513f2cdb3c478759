from __future__ import annotations

import time
from contextlib import contextmanager

import structlog
from celery import Task, shared_task
from django.conf import settings
from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from quota_core.adapters.repositories.sync_control_repo_impl import SyncControlRepoImpl
from quota_core.core.domain.events.exceptions import UpstreamFetchError

log = structlog.get_logger(__name__)

# ──────────────────────────────────────────────────────────────────────────
# Queues and parameters
# ──────────────────────────────────────────────────────────────────────────
QUEUE_QUOTA_SYNC    = "quota_sync"
BUSY_RETRY_SECONDS  = 60          # wait when the clinic lock is already taken
LOCK_NAMESPACE      = "quota_sync"

# ──────────────────────────────────────────────────────────────────────────
# Base task with DLQ
# ──────────────────────────────────────────────────────────────────────────
class BaseTaskWithDLQ(Task):
    """
    Re-publishes the task on the dead-letter queue once retries are exhausted.
    In eager mode there is no broker, so the failure is only logged.
    """
    def on_failure(self, exc, task_id, args, kwargs, einfo):
        is_eager = bool(getattr(self.app.conf, "task_always_eager", False))
        if is_eager:
            log.critical(
                "task.failed_eager_mode",
                task=self.name, task_id=task_id, error=str(exc),
            )
        else:
            log.critical(
                "task.failed_dlq_redirect",
                task=self.name, task_id=task_id, error=str(exc),
                queue="dead_letter"
            )
            self.app.send_task(
                self.name,
                args=args,
                kwargs=kwargs,
                queue="dead_letter",
                routing_key="dead_letter",
            )
        super().on_failure(exc, task_id, args, kwargs, einfo)

# ──────────────────────────────────────────────────────────────────────────
# Per-clinic lock: at most one quota sync per clinic at a time
# ──────────────────────────────────────────────────────────────────────────
@contextmanager
def clinic_lock(clinic_id: str, namespace: str = LOCK_NAMESPACE, ttl: int | None = None):
    """
    Cache-backed mutex (Redis in production). Yields False when another
    worker or request already holds the clinic.
    """
    key = f"locks:{namespace}:clinic:{clinic_id}"
    acquired = cache.add(key, str(time.time()), ttl or settings.QUOTA_SYNC_LOCK_TTL)
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)

# ──────────────────────────────────────────────────────────────────────────
# Quota sync (per clinic)
# ──────────────────────────────────────────────────────────────────────────
@shared_task(
    base=BaseTaskWithDLQ, bind=True, max_retries=3, default_retry_delay=300,
    acks_late=True, queue=QUEUE_QUOTA_SYNC
)
def execute_quota_sync_for_clinic(self, clinic_id: str, pms_type: str, sync_type: str = "scheduled"):
    """
    [Granular] Reconciles quotas for ONE clinic/PMS.
    """
    with clinic_lock(clinic_id) as ok:
        if not ok:
            log.warning("clinic_lock.busy", clinic_id=clinic_id, pms_type=pms_type)
            raise self.retry(countdown=BUSY_RETRY_SECONDS)

        try:
            log.info("quota_sync.task.run", clinic_id=clinic_id, pms_type=pms_type, sync_type=sync_type)
            call_command(
                "sync_quotas",
                "--clinic-id", clinic_id,
                "--pms-type", pms_type,
                "--sync-type", sync_type,
            )
            log.info("quota_sync.task.ok", clinic_id=clinic_id, pms_type=pms_type)
        except CommandError as exc:
            # unknown clinic or bad arguments: retrying cannot help
            log.error("quota_sync.task.rejected", clinic_id=clinic_id, error=str(exc))
        except UpstreamFetchError as exc:
            log.warning(
                "quota_sync.task.fetch_failed",
                clinic_id=clinic_id, pms_type=pms_type, error=str(exc),
                retries=self.request.retries,
            )
            raise self.retry(exc=exc)  # noqa: B904
        except Exception as exc:
            log.error("quota_sync.task.error", clinic_id=clinic_id, error=str(exc))
            raise self.retry(exc=exc)  # noqa: B904

@shared_task(queue=QUEUE_QUOTA_SYNC)
def schedule_due_quota_syncs():
    """
    [Orchestration] Enqueues one sync per enabled SyncControl that is due.
    """
    due = SyncControlRepoImpl().list_due(timezone.now())
    for control in due:
        execute_quota_sync_for_clinic.delay(str(control.clinic_id), control.pms_type, "scheduled")
    log.info("quota_sync.enqueued", total=len(due))
    return len(due)
