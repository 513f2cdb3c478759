from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import date, datetime, timedelta

import structlog
from django.utils import timezone
from pydantic import ValidationError

from quota_core.adapters.observability.decorators import timed_sync
from quota_core.core.application.commands.sync_commands import (
    IngestPMSRecordsCommand,
    RunQuotaSyncCommand,
    SetSyncEnabledCommand,
)
from quota_core.core.application.cqrs import CommandHandler
from quota_core.core.application.dtos.pms_dtos import PMSAppointmentDTO, PMSPatientDTO
from quota_core.core.application.dtos.sync_dto import IngestResult, QuotaSyncResult
from quota_core.core.domain.entities.appointment_entity import AppointmentEntity
from quota_core.core.domain.entities.clinic_entity import ClinicEntity
from quota_core.core.domain.entities.patient_entity import PatientEntity
from quota_core.core.domain.entities.quota_policy_entity import QuotaPolicy, TagSet
from quota_core.core.domain.entities.sync_control_entity import SyncControlEntity
from quota_core.core.domain.entities.sync_log_entity import SyncLogEntity
from quota_core.core.domain.events.events import (
    CaseAlertRaisedEvent,
    DomainEvent,
    QuotaSyncCompletedEvent,
    QuotaSyncFailedEvent,
)
from quota_core.core.domain.events.exceptions import ClinicNotFoundError, UpstreamFetchError
from quota_core.core.domain.repositories.appointment_repository import AppointmentRepository
from quota_core.core.domain.repositories.case_repository import CaseRepository
from quota_core.core.domain.repositories.clinic_repository import ClinicRepository
from quota_core.core.domain.repositories.patient_repository import PatientRepository
from quota_core.core.domain.repositories.sync_control_repository import SyncControlRepository
from quota_core.core.domain.repositories.sync_log_repository import SyncLogRepository
from quota_core.core.domain.services.appointment_classifier import AppointmentClassifier
from quota_core.core.domain.services.case_builder import build_case
from quota_core.core.domain.services.event_dispatcher import EventDispatcher
from quota_core.core.domain.services.quota_resolver import resolve_quota
from quota_core.core.domain.services.session_counter import (
    count_sessions,
    determine_active_year,
    is_completed_status,
)

logger = structlog.get_logger(__name__)


def _local_today(now: datetime) -> date:
    return timezone.localdate(now) if timezone.is_aware(now) else now.date()


def _record_id(raw) -> str:
    if isinstance(raw, dict):
        return str(raw.get("id") or "?")
    return "?"


# ╭──────────────────────────────────────────────╮
# │ 1. PMS ingest                                │
# ╰──────────────────────────────────────────────╯
class IngestPMSRecordsHandler(CommandHandler[IngestPMSRecordsCommand]):
    """
    Upserts already-fetched PMS patients and appointments. Malformed records
    and appointments of unknown patients are reported as issues; storage
    errors propagate.
    """

    def __init__(
        self,
        clinic_repo: ClinicRepository,
        patient_repo: PatientRepository,
        appointment_repo: AppointmentRepository,
    ) -> None:
        self.clinic_repo = clinic_repo
        self.patient_repo = patient_repo
        self.appointment_repo = appointment_repo

    def handle(self, cmd: IngestPMSRecordsCommand) -> IngestResult:
        clinic = self.clinic_repo.find_by_id(cmd.clinic_id)
        if clinic is None:
            raise ClinicNotFoundError(f"Clinic {cmd.clinic_id} not found")

        issues: list[str] = []
        known = {
            p.pms_patient_id: p.id
            for p in self.patient_repo.find_by_clinic(clinic.id, cmd.pms_type)
        }

        added = updated = 0
        for raw in cmd.patients:
            try:
                dto = PMSPatientDTO.model_validate(raw)
            except ValidationError as exc:
                issues.append(f"Skipped patient record {_record_id(raw)}: {exc.error_count()} invalid field(s)")
                continue
            saved, created = self.patient_repo.upsert(
                PatientEntity(
                    id=known.get(dto.id) or uuid.uuid4(),
                    clinic_id=clinic.id,
                    pms_type=cmd.pms_type,
                    pms_patient_id=dto.id,
                    first_name=dto.first_name,
                    last_name=dto.last_name,
                    email=dto.email,
                    phone=dto.phone,
                    date_of_birth=dto.date_of_birth,
                    physio_name=dto.physio_name,
                    pms_last_modified=dto.last_modified,
                )
            )
            known[saved.pms_patient_id] = saved.id
            if created:
                added += 1
            else:
                updated += 1

        synced = 0
        for raw in cmd.appointments:
            try:
                dto = PMSAppointmentDTO.model_validate(raw)
            except ValidationError as exc:
                issues.append(f"Skipped appointment record {_record_id(raw)}: {exc.error_count()} invalid field(s)")
                continue
            patient_id = known.get(dto.patient_id)
            if patient_id is None:
                issues.append(f"Appointment {dto.id} skipped: unknown patient {dto.patient_id}")
                continue
            self.appointment_repo.upsert(
                AppointmentEntity(
                    id=uuid.uuid4(),
                    clinic_id=clinic.id,
                    patient_id=patient_id,
                    pms_type=cmd.pms_type,
                    pms_appointment_id=dto.id,
                    appointment_type=dto.appointment_type,
                    status=dto.status,
                    appointment_date=dto.appointment_date,
                    practitioner_name=dto.practitioner_name,
                    location_name=dto.location_name,
                    duration_minutes=dto.duration_minutes,
                )
            )
            synced += 1

        logger.info(
            "pms_ingest.done",
            clinic_id=str(clinic.id),
            pms_type=cmd.pms_type,
            patients_added=added,
            patients_updated=updated,
            appointments_synced=synced,
            issues=len(issues),
        )
        return IngestResult(
            patients_processed=len(cmd.patients),
            patients_added=added,
            patients_updated=updated,
            appointments_synced=synced,
            issues=issues,
        )


# ╭──────────────────────────────────────────────╮
# │ 2. Quota reconciliation                      │
# ╰──────────────────────────────────────────────╯
class RunQuotaSyncHandler(CommandHandler[RunQuotaSyncCommand]):
    """
    Reconciles WC/EPC quotas for every patient of a clinic and upserts one
    case per funded patient.

    Reading patients and appointments (and ingesting the payloads carried by
    the command, if any) is the fetch stage: a failure there marks the sync
    log as failed and raises UpstreamFetchError. Past that point each patient
    is processed on its own; a failure is recorded as an issue and the loop
    moves on, so the run still completes.
    """

    def __init__(  # noqa: PLR0913
        self,
        clinic_repo: ClinicRepository,
        patient_repo: PatientRepository,
        appointment_repo: AppointmentRepository,
        case_repo: CaseRepository,
        sync_log_repo: SyncLogRepository,
        sync_control_repo: SyncControlRepository,
        ingest_handler: IngestPMSRecordsHandler,
        dispatcher: EventDispatcher,
        policy: QuotaPolicy,
        default_tags: TagSet,
        sync_interval: timedelta = timedelta(hours=6),
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.clinic_repo = clinic_repo
        self.patient_repo = patient_repo
        self.appointment_repo = appointment_repo
        self.case_repo = case_repo
        self.sync_log_repo = sync_log_repo
        self.sync_control_repo = sync_control_repo
        self.ingest_handler = ingest_handler
        self.dispatcher = dispatcher
        self.policy = policy
        self.default_tags = default_tags
        self.sync_interval = sync_interval
        self.clock = clock

    @timed_sync
    def handle(self, cmd: RunQuotaSyncCommand) -> QuotaSyncResult:
        clinic = self.clinic_repo.find_by_id(cmd.clinic_id)
        if clinic is None:
            raise ClinicNotFoundError(f"Clinic {cmd.clinic_id} not found")

        log = self.sync_log_repo.start(clinic.id, cmd.pms_type, cmd.sync_type)
        with structlog.contextvars.bound_contextvars(
            clinic_id=str(clinic.id), sync_log_id=str(log.id), pms_type=cmd.pms_type
        ):
            logger.info("quota_sync.start", sync_type=cmd.sync_type)
            try:
                return self._run(cmd, clinic, log)
            except Exception as exc:
                self._fail(cmd, log, exc)
                raise

    # ───────────────────────────────────────────────
    def _run(self, cmd: RunQuotaSyncCommand, clinic: ClinicEntity, log: SyncLogEntity) -> QuotaSyncResult:
        now = self.clock()
        today = _local_today(now)

        ingest, patients, appointments = self._fetch(cmd, clinic)

        tags = self._tags_for(clinic)
        classifier = AppointmentClassifier(tags)
        policy = self.policy.for_clinic(clinic)

        latest_completed = max(
            (
                a.appointment_date
                for a in appointments
                if a.appointment_date is not None and is_completed_status(a.status)
            ),
            default=None,
        )
        active_year = determine_active_year(latest_completed, today)
        logger.info(
            "quota_sync.fetched",
            patients=len(patients),
            appointments=len(appointments),
            active_year=active_year,
        )

        by_patient: dict[uuid.UUID, list[AppointmentEntity]] = defaultdict(list)
        for appt in appointments:
            by_patient[appt.patient_id].append(appt)

        issues = list(ingest.issues) if ingest else []
        created = updated = 0
        alerts: list[DomainEvent] = []

        for patient in patients:
            try:
                outcome = self._reconcile_patient(
                    patient, by_patient.get(patient.id, []), classifier, policy, active_year, today, now
                )
            except Exception as exc:
                issues.append(f"Patient {patient.pms_patient_id} ({patient.full_name}): {exc}")
                logger.warning(
                    "quota_sync.patient_failed",
                    patient_id=str(patient.id),
                    pms_patient_id=patient.pms_patient_id,
                    error=str(exc),
                )
                continue
            if outcome is None:
                continue
            case, was_created, alert = outcome
            if was_created:
                created += 1
            else:
                updated += 1
            if alert is not None:
                alerts.append(alert)

        log.patients_processed = len(patients)
        log.patients_added = ingest.patients_added if ingest else 0
        log.patients_updated = ingest.patients_updated if ingest else 0
        log.appointments_synced = ingest.appointments_synced if ingest else len(appointments)
        log.cases_created = created
        log.cases_updated = updated
        log.issues = issues
        log = self.sync_log_repo.complete(log)
        self._touch_control(clinic.id, cmd.pms_type, now, succeeded=True)

        logger.info(
            "quota_sync.completed",
            cases_created=created,
            cases_updated=updated,
            issues=len(issues),
            alerts=len(alerts),
        )

        self.dispatcher.dispatch(
            QuotaSyncCompletedEvent(
                clinic_id=clinic.id,
                pms_type=cmd.pms_type,
                sync_log_id=log.id,
                sync_type=cmd.sync_type,
                cases_created=created,
                cases_updated=updated,
                issues=len(issues),
            )
        )
        for evt in alerts:
            self.dispatcher.dispatch(evt)

        return QuotaSyncResult(
            success=True,
            sync_log_id=str(log.id),
            patients_processed=log.patients_processed,
            patients_added=log.patients_added,
            patients_updated=log.patients_updated,
            appointments_synced=log.appointments_synced,
            cases_created=created,
            cases_updated=updated,
            issues=issues,
        )

    def _fetch(
        self, cmd: RunQuotaSyncCommand, clinic: ClinicEntity
    ) -> tuple[IngestResult | None, list[PatientEntity], list[AppointmentEntity]]:
        try:
            ingest = None
            if cmd.patients or cmd.appointments:
                ingest = self.ingest_handler.handle(
                    IngestPMSRecordsCommand(
                        clinic_id=str(clinic.id),
                        pms_type=cmd.pms_type,
                        patients=list(cmd.patients or []),
                        appointments=list(cmd.appointments or []),
                    )
                )
            patients = self.patient_repo.find_by_clinic(clinic.id, cmd.pms_type)
            appointments = self.appointment_repo.find_by_clinic(clinic.id, cmd.pms_type)
        except Exception as exc:
            raise UpstreamFetchError(f"Failed to load PMS data for clinic {clinic.id}: {exc}") from exc
        return ingest, patients, appointments

    def _tags_for(self, clinic: ClinicEntity) -> TagSet:
        tags = TagSet.from_lists(
            clinic.wc_tags or self.default_tags.wc_tags,
            clinic.epc_tags or self.default_tags.epc_tags,
        )
        if overlap := tags.overlap():
            logger.warning("quota_sync.tag_overlap", tags=sorted(overlap), resolved_as="WC")
        return tags

    def _reconcile_patient(  # noqa: PLR0913
        self,
        patient: PatientEntity,
        appointments: list[AppointmentEntity],
        classifier: AppointmentClassifier,
        policy: QuotaPolicy,
        active_year: int,
        today: date,
        now: datetime,
    ):
        counts = count_sessions(appointments, classifier, active_year)
        resolution = resolve_quota(counts, policy, patient.program_type)

        if (
            patient.program_type != resolution.program_type
            or patient.sessions_used != resolution.sessions_used
            or patient.quota != resolution.quota
        ):
            self.patient_repo.update_quota(
                patient.id,
                program_type=resolution.program_type,
                sessions_used=resolution.sessions_used,
                quota=resolution.quota,
            )

        if not resolution.needs_case:
            return None

        case, created = self.case_repo.upsert(
            build_case(patient, appointments, resolution, today=today, now=now)
        )
        alert = None
        if case.status == "critical":
            alert = CaseAlertRaisedEvent(
                case_id=case.id,
                clinic_id=case.clinic_id,
                patient_id=case.patient_id,
                program_type=case.program_type,
                remaining_sessions=case.remaining_sessions,
                alert_message=case.alert_message or "",
            )
        return case, created, alert

    def _touch_control(self, clinic_id: uuid.UUID, pms_type: str, now: datetime, *, succeeded: bool) -> None:
        control = self.sync_control_repo.get(clinic_id, pms_type) or SyncControlEntity(
            clinic_id=clinic_id, pms_type=pms_type
        )
        if succeeded:
            control.last_sync_at = now
        control.next_sync_at = now + self.sync_interval
        self.sync_control_repo.save(control)

    def _fail(self, cmd: RunQuotaSyncCommand, log: SyncLogEntity, exc: Exception) -> None:
        logger.error("quota_sync.failed", error=str(exc), exc_info=True)
        self.sync_log_repo.fail(log.id, str(exc))
        self._touch_control(log.clinic_id, cmd.pms_type, self.clock(), succeeded=False)
        self.dispatcher.dispatch(
            QuotaSyncFailedEvent(
                clinic_id=log.clinic_id,
                pms_type=cmd.pms_type,
                sync_log_id=log.id,
                sync_type=cmd.sync_type,
                error=str(exc),
            )
        )


# ╭──────────────────────────────────────────────╮
# │ 3. Sync control                              │
# ╰──────────────────────────────────────────────╯
class SetSyncEnabledHandler(CommandHandler[SetSyncEnabledCommand]):
    def __init__(self, sync_control_repo: SyncControlRepository, clock: Callable[[], datetime] = timezone.now):
        self.repo = sync_control_repo
        self.clock = clock

    def handle(self, cmd: SetSyncEnabledCommand) -> SyncControlEntity:
        control = self.repo.get(cmd.clinic_id, cmd.pms_type) or SyncControlEntity(
            clinic_id=uuid.UUID(str(cmd.clinic_id)), pms_type=cmd.pms_type
        )
        control.is_enabled = cmd.is_enabled
        if cmd.is_enabled and control.next_sync_at is None:
            control.next_sync_at = self.clock()
        logger.info(
            "sync_control.updated",
            clinic_id=str(cmd.clinic_id),
            pms_type=cmd.pms_type,
            is_enabled=cmd.is_enabled,
        )
        return self.repo.save(control)
