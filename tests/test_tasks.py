"""Celery triggers and the `sync_quotas` management command."""
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from celery.exceptions import Retry
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import OperationalError
from django.test import TestCase
from django.utils import timezone

from plugins.django_interface.models import Case, SyncControl, SyncLog
from quota_core.adapters.repositories.patient_repo_impl import PatientRepoImpl
from quota_core.core.domain.events.exceptions import UpstreamFetchError
from quota_tracker_api.tasks import clinic_lock, execute_quota_sync_for_clinic, schedule_due_quota_syncs
from tests.helpers.factories import make_appointments, make_clinic, make_patient


class ClinicLockTests(TestCase):
    def test_second_holder_is_refused_until_release(self):
        with clinic_lock("c-1") as first:
            with clinic_lock("c-1") as second:
                self.assertTrue(first)
                self.assertFalse(second)
            with clinic_lock("c-2") as other:
                self.assertTrue(other)
        with clinic_lock("c-1") as again:
            self.assertTrue(again)


class QuotaSyncTaskTests(TestCase):
    def setUp(self):
        self.clinic = make_clinic()
        self.clinic_id = str(self.clinic.id)

    @patch("quota_tracker_api.tasks.call_command")
    def test_runs_management_command(self, call):
        execute_quota_sync_for_clinic.run(self.clinic_id, "cliniko", "scheduled")
        call.assert_called_once_with(
            "sync_quotas", "--clinic-id", self.clinic_id, "--pms-type", "cliniko", "--sync-type", "scheduled"
        )

    @patch("quota_tracker_api.tasks.call_command")
    def test_busy_clinic_is_retried_later(self, call):
        with patch.object(execute_quota_sync_for_clinic, "retry", side_effect=Retry()) as retry:
            with clinic_lock(self.clinic_id), self.assertRaises(Retry):
                execute_quota_sync_for_clinic.run(self.clinic_id, "cliniko")
        call.assert_not_called()
        retry.assert_called_once()

    @patch("quota_tracker_api.tasks.call_command", side_effect=CommandError("Clinic x not found."))
    def test_rejected_command_is_not_retried(self, call):
        with patch.object(execute_quota_sync_for_clinic, "retry") as retry:
            execute_quota_sync_for_clinic.run(self.clinic_id, "cliniko")
        retry.assert_not_called()

    @patch("quota_tracker_api.tasks.call_command", side_effect=RuntimeError("db gone"))
    def test_unexpected_error_is_retried(self, call):
        with patch.object(execute_quota_sync_for_clinic, "retry", side_effect=Retry()) as retry:
            with self.assertRaises(Retry):
                execute_quota_sync_for_clinic.run(self.clinic_id, "cliniko")
        self.assertIsInstance(retry.call_args.kwargs["exc"], RuntimeError)

    def test_failed_fetch_is_retried(self):
        make_patient(self.clinic, "42")
        failure = OperationalError("connection reset")
        with patch.object(PatientRepoImpl, "find_by_clinic", side_effect=failure), \
                patch.object(execute_quota_sync_for_clinic, "retry", side_effect=Retry()) as retry:
            with self.assertRaises(Retry):
                execute_quota_sync_for_clinic.run(self.clinic_id, "cliniko")

        self.assertIsInstance(retry.call_args.kwargs["exc"], UpstreamFetchError)
        self.assertEqual(list(SyncLog.objects.values_list("status", flat=True)), ["failed"])

    def test_fan_out_only_due_and_enabled_controls(self):
        now = timezone.now()
        second = make_clinic(name="Second")
        third = make_clinic(name="Third")
        SyncControl.objects.create(clinic=self.clinic, pms_type="cliniko", next_sync_at=now - timedelta(minutes=1))
        SyncControl.objects.create(clinic=second, pms_type="nookal", next_sync_at=None)
        SyncControl.objects.create(clinic=third, pms_type="cliniko", next_sync_at=now + timedelta(hours=1))
        SyncControl.objects.create(clinic=third, pms_type="halaxy", is_enabled=False)

        with patch.object(execute_quota_sync_for_clinic, "delay") as delay:
            total = schedule_due_quota_syncs()

        self.assertEqual(total, 2)
        delay.assert_any_call(self.clinic_id, "cliniko", "scheduled")
        delay.assert_any_call(str(second.id), "nookal", "scheduled")


class SyncQuotasCommandTests(TestCase):
    def test_reconciles_stored_records(self):
        clinic = make_clinic()
        patient = make_patient(clinic, "42")
        make_appointments(patient, "WC", [None, None])
        out = StringIO()

        call_command("sync_quotas", "--clinic-id", str(clinic.id), "--sync-type", "scheduled", stdout=out)

        self.assertIn("sync_quotas OK", out.getvalue())
        self.assertEqual(Case.objects.get().sessions_used, 2)
        self.assertEqual(SyncLog.objects.get().sync_type, "scheduled")

    def test_unknown_clinic(self):
        with self.assertRaises(CommandError):
            call_command("sync_quotas", "--clinic-id", "6b0f5a0e-63a4-4c59-9d4e-6f7b2a3c9d10")

    def test_failed_fetch_propagates(self):
        clinic = make_clinic()
        err = StringIO()
        with patch.object(PatientRepoImpl, "find_by_clinic", side_effect=OperationalError("timeout")):
            with self.assertRaises(UpstreamFetchError):
                call_command("sync_quotas", "--clinic-id", str(clinic.id), stderr=err)
        self.assertIn("Sync failed", err.getvalue())
        self.assertEqual(SyncLog.objects.get().status, "failed")
