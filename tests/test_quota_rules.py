"""Pure domain rules: classification, session windows, quota and case status."""
import itertools
import uuid
from datetime import date, datetime, timezone

from django.test import SimpleTestCase

from quota_core.core.domain.entities.appointment_entity import AppointmentEntity
from quota_core.core.domain.entities.clinic_entity import ClinicEntity
from quota_core.core.domain.entities.patient_entity import PatientEntity
from quota_core.core.domain.entities.quota_policy_entity import FundingScheme, QuotaPolicy, TagSet
from quota_core.core.domain.services.appointment_classifier import AppointmentClassifier, classify_appointment
from quota_core.core.domain.services.case_builder import build_case
from quota_core.core.domain.services.case_status import derive_case_status
from quota_core.core.domain.services.quota_resolver import resolve_quota
from quota_core.core.domain.services.session_counter import (
    SessionCounts,
    count_epc_sessions,
    count_sessions,
    count_wc_sessions,
    determine_active_year,
)

CLINIC_ID = uuid.uuid4()
PATIENT_ID = uuid.uuid4()
TAGS = TagSet.from_lists(["WC", "WC Initial"], ["EPC", "EPC Review"])
_ids = itertools.count(1)


def appt(kind, when, status="completed", practitioner=None):
    return AppointmentEntity(
        id=uuid.uuid4(),
        clinic_id=CLINIC_ID,
        patient_id=PATIENT_ID,
        pms_type="cliniko",
        pms_appointment_id=f"A{next(_ids)}",
        appointment_type=kind,
        status=status,
        appointment_date=when,
        practitioner_name=practitioner,
    )


class AppointmentClassifierTests(SimpleTestCase):
    def test_matches_after_trimming_and_casefolding(self):
        self.assertIs(classify_appointment("  wc   initial ", TAGS), FundingScheme.WC)
        self.assertIs(classify_appointment("epc review", TAGS), FundingScheme.EPC)

    def test_partial_or_unknown_types_are_unclassified(self):
        self.assertIsNone(classify_appointment("WC Initial Long", TAGS))
        self.assertIsNone(classify_appointment("Standard Consult", TAGS))
        self.assertIsNone(classify_appointment("", TAGS))
        self.assertIsNone(classify_appointment(None, TAGS))

    def test_tag_in_both_lists_resolves_to_wc(self):
        tags = TagSet.from_lists(["Shared", "WC"], ["shared ", "EPC"])
        self.assertEqual(tags.overlap(), {"shared"})
        self.assertIs(AppointmentClassifier(tags).classify("SHARED"), FundingScheme.WC)

    def test_tag_lists_are_cleaned(self):
        tags = TagSet.from_lists("WC, wc ,, WC  Initial", [])
        self.assertEqual(tags.wc_tags, ("WC", "WC Initial"))
        self.assertEqual(tags.epc_tags, ())


class SessionCounterTests(SimpleTestCase):
    def test_wc_counts_completed_sessions_of_any_year(self):
        appts = [
            appt("WC", date(2021, 3, 1)),
            appt("WC Initial", date(2024, 6, 1)),
            appt("WC", None),
            appt("WC", date(2024, 7, 1), status="Cancelled"),
            appt("EPC", date(2024, 7, 1)),
        ]
        self.assertEqual(count_wc_sessions(appts, TAGS), 3)

    def test_epc_only_counts_the_active_year(self):
        appts = [
            appt("EPC", date(2024, 2, 1)),
            appt("EPC", date(2024, 5, 1), status="Attended"),
            appt("EPC Review", date(2024, 9, 1), status="finished"),
            appt("EPC", date(2023, 11, 1)),
            appt("EPC", date(2023, 12, 1)),
            appt("EPC", None),
        ]
        self.assertEqual(count_epc_sessions(appts, TAGS, 2024), 3)
        self.assertEqual(count_epc_sessions(appts, TAGS, 2023), 2)

    def test_status_comparison_ignores_case(self):
        appts = [appt("WC", date(2024, 1, 1), status="COMPLETED")]
        self.assertEqual(count_sessions(appts, AppointmentClassifier(TAGS), 2024), SessionCounts(wc=1, epc=0))

    def test_active_year_follows_latest_completed_appointment(self):
        today = date(2025, 1, 10)
        self.assertEqual(determine_active_year(date(2024, 12, 20), today), 2024)
        self.assertEqual(determine_active_year(None, today), 2025)


class QuotaResolverTests(SimpleTestCase):
    policy = QuotaPolicy()

    def test_wc_takes_precedence_over_epc(self):
        res = resolve_quota(SessionCounts(wc=2, epc=4), self.policy)
        self.assertEqual((res.program_type, res.sessions_used, res.quota, res.remaining), ("WC", 2, 8, 6))

    def test_epc_quota(self):
        res = resolve_quota(SessionCounts(epc=3), self.policy)
        self.assertEqual((res.program_type, res.quota, res.remaining), ("EPC", 5, 2))

    def test_remaining_never_negative(self):
        res = resolve_quota(SessionCounts(epc=7), self.policy)
        self.assertEqual(res.remaining, 0)

    def test_no_sessions_keeps_prior_program_and_needs_no_case(self):
        res = resolve_quota(SessionCounts(), self.policy, prior_program_type="WC")
        self.assertEqual(res.program_type, "WC")
        self.assertIsNone(res.quota)
        self.assertFalse(res.needs_case)
        self.assertEqual(resolve_quota(SessionCounts(), self.policy).program_type, "Private")

    def test_clinic_overrides_layer_on_defaults(self):
        clinic = ClinicEntity(id=CLINIC_ID, name="North", pms_type="cliniko", wc_quota=12)
        policy = self.policy.for_clinic(clinic)
        self.assertEqual((policy.wc_quota, policy.epc_quota), (12, 5))


class CaseStatusTests(SimpleTestCase):
    def test_bands(self):
        cases = {
            0: ("critical", "urgent", "WC quota exhausted - renewal needed immediately"),
            1: ("warning", "high", "WC referral expires soon - 1 sessions left"),
            2: ("warning", "high", "WC referral expires soon - 2 sessions left"),
            3: ("warning", "normal", "WC sessions running low - 3 sessions left"),
            4: ("active", "low", None),
        }
        for remaining, expected in cases.items():
            with self.subTest(remaining=remaining):
                got = derive_case_status(FundingScheme.WC, remaining)
                self.assertEqual((got.status, got.priority, got.alert_message), expected)
                self.assertEqual(got.is_alert_active, expected[2] is not None)

    def test_eight_completed_wc_sessions_is_critical(self):
        appts = [appt("WC", date(2024, 1, d + 1)) for d in range(8)]
        res = resolve_quota(count_sessions(appts, AppointmentClassifier(TAGS), 2024), QuotaPolicy())
        status = derive_case_status(res.scheme, res.remaining)
        self.assertEqual((res.sessions_used, res.remaining), (8, 0))
        self.assertEqual((status.status, status.priority), ("critical", "urgent"))
        self.assertEqual(status.alert_message, "WC quota exhausted - renewal needed immediately")

    def test_epc_in_active_year_only(self):
        appts = [appt("EPC", date(2024, m, 1)) for m in (2, 4, 6)]
        appts += [appt("EPC", date(2023, m, 1)) for m in (10, 11)]
        res = resolve_quota(count_sessions(appts, AppointmentClassifier(TAGS), 2024), QuotaPolicy())
        status = derive_case_status(res.scheme, res.remaining)
        self.assertEqual((res.sessions_used, res.remaining), (3, 2))
        self.assertEqual((status.status, status.priority), ("warning", "high"))
        self.assertEqual(status.alert_message, "EPC referral expires soon - 2 sessions left")


class CaseBuilderTests(SimpleTestCase):
    def setUp(self):
        self.patient = PatientEntity(
            id=PATIENT_ID,
            clinic_id=CLINIC_ID,
            pms_type="cliniko",
            pms_patient_id="P-77",
            first_name="Ada",
            last_name="Lovelace",
            physio_name="Sam Physio",
        )
        self.today = date(2024, 6, 1)
        self.now = datetime(2024, 6, 1, 9, tzinfo=timezone.utc)

    def _resolution(self, appts):
        return resolve_quota(count_sessions(appts, AppointmentClassifier(TAGS), 2024), QuotaPolicy())

    def test_snapshot_uses_latest_appointment(self):
        appts = [
            appt("EPC", date(2024, 2, 1), practitioner="Jo Early"),
            appt("EPC", date(2024, 5, 1), practitioner="Kim Latest"),
        ]
        case = build_case(self.patient, appts, self._resolution(appts), today=self.today, now=self.now)
        self.assertEqual(case.case_number, "CASE-P-77")
        self.assertEqual(case.physio_name, "Kim Latest")
        self.assertEqual(case.location_name, "Main Clinic")
        self.assertEqual(case.next_visit_date, date(2024, 5, 1))
        self.assertEqual(case.case_start_date, date(2024, 2, 1))
        self.assertEqual(case.program_type, "EPC")

    def test_physio_and_next_visit_fallbacks(self):
        appts = [appt("WC", None)]
        case = build_case(self.patient, appts, self._resolution(appts), today=self.today, now=self.now)
        self.assertEqual(case.physio_name, "Sam Physio")
        self.assertEqual(case.next_visit_date, date(2024, 6, 8))
        self.assertEqual(case.case_start_date, self.today)

        self.patient.physio_name = None
        case = build_case(self.patient, appts, self._resolution(appts), today=self.today, now=self.now)
        self.assertEqual(case.physio_name, "Unknown Practitioner")
