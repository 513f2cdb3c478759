"""
Reconciliation and case management end to end on the ORM, wired through
the DI container exactly as the API and Celery use it.
"""
import uuid
from dataclasses import replace
from datetime import date, timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone

from plugins.django_interface.models import Appointment, Case, Clinic, Patient, SyncControl, SyncLog
from quota_core.adapters.config.composition_root import setup_di_container_from_settings
from quota_core.adapters.repositories.case_repo_impl import CaseRepoImpl
from quota_core.core.application.commands.case_commands import UpdateCaseCommand
from quota_core.core.application.commands.clinic_commands import UpdateClinicSettingsCommand
from quota_core.core.application.queries.case_queries import ListCasesQuery
from quota_core.core.application.queries.dashboard_queries import GetQuotaDashboardQuery
from quota_core.core.domain.entities.case_entity import CaseEntity
from quota_core.core.domain.events.exceptions import (
    CaseNotFoundError,
    ClinicNotFoundError,
    InvalidCaseActionError,
    InvalidClinicSettingsError,
)
from tests.helpers.factories import make_appointments, make_clinic, make_patient

container = setup_di_container_from_settings(settings)


def this_year(month: int, day: int = 1) -> date:
    return date(timezone.localdate().year, month, day)


class QuotaSyncServiceTests(TestCase):
    def setUp(self):
        self.service = container.quota_sync_service()
        self.clinic = make_clinic()

    def test_full_sync_from_pms_payloads(self):
        year = timezone.localdate().year
        patients = [
            {"id": "101", "firstName": "Mia", "lastName": "Wong", "email": "mia@example.com"},
            {"id": "102", "firstName": "Tom", "lastName": "Reed", "dateOfBirth": "31/02/1990"},
            {"id": "103", "firstName": "Ivy", "lastName": "Cole"},
        ]
        appointments = [
            *[
                {"id": f"w{i}", "patientId": "101", "type": "workcover initial", "status": "Completed",
                 "date": f"{year - 1}-0{i + 1}-10", "physioName": "Dr Hart"}
                for i in range(8)
            ],
            *[
                {"id": f"e{i}", "patientId": "102", "type": "EPC", "status": "attended", "date": f"{year}-0{i + 1}-05"}
                for i in range(3)
            ],
            {"id": "e-old", "patientId": "102", "type": "EPC", "status": "completed", "date": f"{year - 1}-11-05"},
            {"id": "x1", "patientId": "103", "type": "Standard", "status": "completed", "date": f"{year}-01-05"},
        ]

        result = self.service.full_sync(self.clinic.id, "cliniko", patients, appointments)

        self.assertTrue(result.success)
        self.assertEqual((result.patients_added, result.appointments_synced), (3, 13))
        self.assertEqual((result.cases_created, result.cases_updated), (2, 0))
        self.assertEqual(result.issues, [])

        wc = Case.objects.get(patient__pms_patient_id="101")
        self.assertEqual((wc.program_type, wc.sessions_used, wc.quota, wc.remaining_sessions), ("WC", 8, 8, 0))
        self.assertEqual((wc.status, wc.priority), ("critical", "urgent"))
        self.assertEqual(wc.case_number, "CASE-101")
        self.assertEqual(wc.physio_name, "Dr Hart")

        epc = Case.objects.get(patient__pms_patient_id="102")
        self.assertEqual((epc.sessions_used, epc.remaining_sessions, epc.status, epc.priority), (3, 2, "warning", "high"))
        self.assertIsNone(Patient.objects.get(pms_patient_id="102").date_of_birth)

        private = Patient.objects.get(pms_patient_id="103")
        self.assertEqual((private.program_type, private.quota), ("Private", None))
        self.assertFalse(Case.objects.filter(patient=private).exists())

        log = SyncLog.objects.get(id=result.sync_log_id)
        self.assertEqual(log.status, "completed")
        self.assertIsNotNone(log.completed_at)
        control = SyncControl.objects.get(clinic=self.clinic, pms_type="cliniko")
        self.assertIsNotNone(control.last_sync_at)
        self.assertEqual(control.next_sync_at - control.last_sync_at, timedelta(hours=settings.QUOTA_SYNC_INTERVAL_HOURS))

    def test_resync_is_idempotent(self):
        patient = make_patient(self.clinic, "501")
        make_appointments(patient, "EPC", [this_year(1), this_year(2)])

        first = self.service.full_sync(self.clinic.id, "cliniko")
        case = Case.objects.get()
        second = self.service.full_sync(self.clinic.id, "cliniko")

        self.assertEqual((first.cases_created, second.cases_created, second.cases_updated), (1, 0, 1))
        self.assertEqual(Case.objects.count(), 1)
        again = Case.objects.get()
        self.assertEqual(again.id, case.id)
        self.assertEqual(again.last_status_change, case.last_status_change)

        make_appointments(patient, "EPC", [this_year(3)])
        self.service.full_sync(self.clinic.id, "cliniko")
        self.assertEqual(Case.objects.get().remaining_sessions, 2)
        self.assertEqual(Patient.objects.get().sessions_used, 3)

    def test_ingest_updates_existing_records(self):
        payload = [{"id": "9", "firstName": "Old", "lastName": "Name"}]
        appts = [{"id": "a9", "patientId": "9", "type": "EPC", "status": "booked", "date": str(this_year(1))}]
        self.service.full_sync(self.clinic.id, "cliniko", payload, appts)
        self.assertFalse(Case.objects.exists())

        payload[0]["firstName"] = "New"
        appts[0]["status"] = "completed"
        result = self.service.full_sync(self.clinic.id, "cliniko", payload, appts)

        self.assertEqual((result.patients_added, result.patients_updated), (0, 1))
        self.assertEqual(Patient.objects.get().first_name, "New")
        self.assertEqual(Appointment.objects.count(), 1)
        self.assertEqual(Case.objects.get().sessions_used, 1)

    def test_pms_scoping(self):
        other_pms = Patient.objects.create(
            clinic=self.clinic, pms_type="nookal", pms_patient_id="501", first_name="Same", last_name="Id"
        )
        make_appointments(other_pms, "EPC", [this_year(1)])

        result = self.service.full_sync(self.clinic.id, "cliniko")

        self.assertEqual(result.cases_created, 0)
        self.assertEqual(self.service.full_sync(self.clinic.id, "nookal").cases_created, 1)


class CaseRepoTests(TestCase):
    def setUp(self):
        self.clinic = make_clinic()
        self.patient = make_patient(self.clinic, "77")
        make_appointments(self.patient, "WC", [this_year(1)])
        container.quota_sync_service().full_sync(self.clinic.id, "cliniko")
        self.case = Case.objects.get()

    def test_unique_constraint_per_clinic_patient_pms(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            Case.objects.create(
                clinic=self.clinic, patient=self.patient, pms_type="cliniko",
                case_number="CASE-77", case_title="dup", program_type="WC",
                quota=8, case_start_date=this_year(1),
            )

    def test_upsert_of_an_existing_key_updates_in_place(self):
        # a writer that built its entity before the row existed carries a fresh id
        late = replace(CaseEntity.from_model(self.case), id=uuid.uuid4(), sessions_used=2, remaining_sessions=6)

        saved, created = CaseRepoImpl().upsert(late)

        self.assertFalse(created)
        self.assertEqual(saved.id, self.case.id)
        self.assertEqual(Case.objects.count(), 1)
        self.assertEqual(Case.objects.get().sessions_used, 2)

    def test_list_hides_archived_unless_requested(self):
        repo = CaseRepoImpl()
        Case.objects.filter(id=self.case.id).update(status="archived")

        self.assertEqual(repo.list({"clinic_id": self.clinic.id}, 1, 50).total, 0)
        self.assertEqual(repo.list({"clinic_id": self.clinic.id, "status": "archived"}, 1, 50).total, 1)
        self.assertEqual(repo.list({"clinic_id": self.clinic.id, "include_archived": True}, 1, 50).total, 1)

    def test_dashboard_summary(self):
        dto = container.query_bus().dispatch(GetQuotaDashboardQuery(clinic_id=str(self.clinic.id)))
        self.assertEqual(dto.total_cases, 1)
        self.assertEqual(dto.by_status["active"], 1)
        self.assertEqual(dto.by_status["critical"], 0)
        self.assertEqual(dto.by_program, {"WC": 1})
        self.assertEqual((dto.action_needed, dto.overdue), (0, 0))
        self.assertEqual(dto.last_sync.status, "completed")


class CaseActionTests(TestCase):
    def setUp(self):
        self.clinic = make_clinic()
        patient = make_patient(self.clinic, "88")
        make_appointments(patient, "EPC", [this_year(1), this_year(2), this_year(3)])
        container.quota_sync_service().full_sync(self.clinic.id, "cliniko")
        self.case = Case.objects.get()
        self.bus = container.command_bus()

    def _act(self, action, **data):
        return self.bus.dispatch(
            UpdateCaseCommand(case_id=str(self.case.id), clinic_id=str(self.clinic.id), action=action, data=data)
        )

    def test_update_quota_rederives_status(self):
        updated = self._act("update_quota", quota=10)
        self.assertEqual((updated.quota, updated.remaining_sessions, updated.status, updated.priority), (10, 7, "active", "low"))
        self.assertFalse(updated.is_alert_active)

        with self.assertRaises(InvalidCaseActionError):
            self._act("update_quota", quota=2)

    def test_status_moves(self):
        self.assertEqual(self._act("move_to_pending", reason="Awaiting referral").status, "pending")
        self.assertEqual(Case.objects.get().status_change_reason, "Awaiting referral")
        self.assertEqual(self._act("move_to_active").status, "active")
        self.assertEqual(self._act("archive_case").status, "archived")
        result = container.query_bus().dispatch(
            ListCasesQuery(filtros={"clinic_id": str(self.clinic.id)}, page=1, page_size=10)
        )
        self.assertEqual(result.total, 0)

    def test_priority_and_next_visit(self):
        self.assertEqual(self._act("update_priority", priority="urgent").priority, "urgent")
        self.assertEqual(self._act("update_next_visit", next_visit_date="2031-04-02").next_visit_date, date(2031, 4, 2))
        with self.assertRaises(InvalidCaseActionError):
            self._act("update_priority", priority="asap")
        with self.assertRaises(InvalidCaseActionError):
            self._act("update_next_visit", next_visit_date="soon")

    def test_unknown_action_and_foreign_clinic(self):
        with self.assertRaises(InvalidCaseActionError):
            self._act("delete_everything")
        other = make_clinic(name="Elsewhere")
        with self.assertRaises(CaseNotFoundError):
            self.bus.dispatch(UpdateCaseCommand(case_id=str(self.case.id), clinic_id=str(other.id), action="archive_case"))


class ClinicSettingsTests(TestCase):
    def setUp(self):
        self.clinic = make_clinic()
        self.bus = container.command_bus()

    def test_tags_are_cleaned_and_overlap_reported(self):
        event = self.bus.dispatch(UpdateClinicSettingsCommand(
            clinic_id=str(self.clinic.id),
            wc_tags=[" WC ", "wc", "Shared"],
            epc_tags=["EPC", "shared"],
            epc_quota=6,
        ))
        self.assertEqual(event.overlapping_tags, ("shared",))
        clinic = Clinic.objects.get()
        self.assertEqual(clinic.wc_tags, ["WC", "Shared"])
        self.assertEqual((clinic.wc_quota, clinic.epc_quota), (None, 6))

    def test_rejects_empty_tags_and_bad_quota(self):
        with self.assertRaises(InvalidClinicSettingsError):
            self.bus.dispatch(UpdateClinicSettingsCommand(clinic_id=str(self.clinic.id), wc_tags=[" ", ""]))
        with self.assertRaises(InvalidClinicSettingsError):
            self.bus.dispatch(UpdateClinicSettingsCommand(clinic_id=str(self.clinic.id), wc_quota=0))

    def test_unknown_clinic(self):
        with self.assertRaises(ClinicNotFoundError):
            self.bus.dispatch(UpdateClinicSettingsCommand(clinic_id=str(uuid.uuid4()), epc_quota=3))
