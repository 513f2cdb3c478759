"""
Domain → ORM.

⚑ PMS identity is always scoped: (clinic, pms_type, pms_*_id)
⚑ One case per (clinic, patient, pms_type), enforced by a unique constraint
⚑ JSON lists for tags/issues so the schema runs on Postgres and SQLite alike
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import Index, Q, UniqueConstraint
from django.db.models.functions import Lower


class PMSType(models.TextChoices):
    CLINIKO = "cliniko", "Cliniko"
    NOOKAL = "nookal", "Nookal"
    HALAXY = "halaxy", "Halaxy"


# ╭──────────────────────────────────────────────╮
# │ 1. Clinics                                   │
# ╰──────────────────────────────────────────────╯
class Clinic(models.Model):
    class Subscription(models.TextChoices):
        TRIAL = "trial", "Trial"
        ACTIVE = "active", "Active"
        PAST_DUE = "past_due", "Past due"
        CANCELLED = "cancelled", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    pms_type = models.CharField(max_length=20, choices=PMSType.choices, default=PMSType.CLINIKO)
    wc_tags = models.JSONField(default=list, blank=True)
    epc_tags = models.JSONField(default=list, blank=True)
    # null → system default from settings.QUOTA_DEFAULT_*
    wc_quota = models.PositiveSmallIntegerField(null=True, blank=True)
    epc_quota = models.PositiveSmallIntegerField(null=True, blank=True)
    subscription_status = models.CharField(
        max_length=20, choices=Subscription.choices, default=Subscription.TRIAL
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "clinics"
        constraints = [
            UniqueConstraint(Lower("name"), name="uq_clinic_name_lower")
        ]

    def __str__(self) -> str:
        return self.name


# ╭──────────────────────────────────────────────╮
# │ 2. Patients                                  │
# ╰──────────────────────────────────────────────╯
class Patient(models.Model):
    class Program(models.TextChoices):
        EPC = "EPC", "Enhanced Primary Care"
        WC = "WC", "WorkCover"
        PRIVATE = "Private", "Private"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="patients")
    pms_type = models.CharField(max_length=20, choices=PMSType.choices)
    pms_patient_id = models.CharField(max_length=64)
    first_name = models.CharField(max_length=120, blank=True, default="")
    last_name = models.CharField(max_length=120, blank=True, default="")
    email = models.CharField(max_length=254, blank=True, null=True)
    phone = models.CharField(max_length=40, blank=True, null=True)
    date_of_birth = models.DateField(null=True, blank=True)
    physio_name = models.CharField(max_length=255, blank=True, null=True)
    program_type = models.CharField(max_length=10, choices=Program.choices, null=True, blank=True)
    sessions_used = models.PositiveIntegerField(default=0)
    quota = models.PositiveIntegerField(null=True, blank=True)
    pms_last_modified = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "patients"
        constraints = [
            UniqueConstraint(
                fields=["clinic", "pms_type", "pms_patient_id"],
                name="uq_patient_pms_identity",
            )
        ]
        indexes = [Index(fields=["clinic", "program_type"])]

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# ╭──────────────────────────────────────────────╮
# │ 3. Appointments                              │
# ╰──────────────────────────────────────────────╯
class Appointment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="appointments")
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name="appointments")
    pms_type = models.CharField(max_length=20, choices=PMSType.choices)
    pms_appointment_id = models.CharField(max_length=64)
    appointment_type = models.CharField(max_length=255, null=True, blank=True)
    status = models.CharField(max_length=30, default="scheduled", db_index=True)
    appointment_date = models.DateField(null=True, blank=True)
    practitioner_name = models.CharField(max_length=255, null=True, blank=True)
    location_name = models.CharField(max_length=255, null=True, blank=True)
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "appointments"
        constraints = [
            UniqueConstraint(
                fields=["clinic", "pms_type", "pms_appointment_id"],
                name="uq_appointment_pms_identity",
            )
        ]
        indexes = [
            Index(fields=["clinic", "pms_type", "appointment_date"]),
            Index(fields=["patient", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.pms_appointment_id} ({self.appointment_type or '-'})"


# ╭──────────────────────────────────────────────╮
# │ 4. Cases                                     │
# ╰──────────────────────────────────────────────╯
class Case(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        WARNING = "warning", "Warning"
        CRITICAL = "critical", "Critical"
        PENDING = "pending", "Pending"
        ARCHIVED = "archived", "Archived"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        NORMAL = "normal", "Normal"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="cases")
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name="cases")
    pms_type = models.CharField(max_length=20, choices=PMSType.choices)
    case_number = models.CharField(max_length=80)
    case_title = models.CharField(max_length=255)

    # snapshot of the patient at sync time
    patient_first_name = models.CharField(max_length=120, blank=True, default="")
    patient_last_name = models.CharField(max_length=120, blank=True, default="")
    patient_email = models.CharField(max_length=254, null=True, blank=True)
    patient_phone = models.CharField(max_length=40, null=True, blank=True)
    patient_date_of_birth = models.DateField(null=True, blank=True)

    physio_name = models.CharField(max_length=255, default="Unknown Practitioner")
    location_name = models.CharField(max_length=255, default="Main Clinic")
    appointment_type_name = models.CharField(max_length=255, null=True, blank=True)

    program_type = models.CharField(max_length=10, choices=Patient.Program.choices)
    quota = models.PositiveIntegerField()
    sessions_used = models.PositiveIntegerField(default=0)
    remaining_sessions = models.PositiveIntegerField(default=0)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    priority = models.CharField(max_length=20, choices=Priority.choices, default=Priority.LOW)
    is_alert_active = models.BooleanField(default=False, db_index=True)
    alert_message = models.TextField(null=True, blank=True)

    last_visit_date = models.DateField(null=True, blank=True)
    next_visit_date = models.DateField(null=True, blank=True)
    case_start_date = models.DateField()
    status_change_reason = models.CharField(max_length=255, null=True, blank=True)
    last_status_change = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cases"
        constraints = [
            UniqueConstraint(
                fields=["clinic", "patient", "pms_type"],
                name="uq_case_clinic_patient_pms",
            )
        ]
        indexes = [
            Index(fields=["clinic", "status"]),
            Index(fields=["clinic", "remaining_sessions"], condition=~Q(status="archived"), name="case_open_remaining_idx"),
        ]
        ordering = ["remaining_sessions", "patient_last_name"]

    def __str__(self) -> str:
        return f"{self.case_number} [{self.status}]"


# ╭──────────────────────────────────────────────╮
# │ 5. Sync logs / control                       │
# ╰──────────────────────────────────────────────╯
class SyncLog(models.Model):
    class SyncType(models.TextChoices):
        MANUAL = "manual", "Manual"
        SCHEDULED = "scheduled", "Scheduled"
        ONBOARDING = "onboarding", "Onboarding"

    class Status(models.TextChoices):
        RUNNING = "running", "Running"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="sync_logs")
    pms_type = models.CharField(max_length=20, choices=PMSType.choices)
    sync_type = models.CharField(max_length=20, choices=SyncType.choices, default=SyncType.MANUAL)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.RUNNING, db_index=True)
    patients_processed = models.PositiveIntegerField(default=0)
    patients_added = models.PositiveIntegerField(default=0)
    patients_updated = models.PositiveIntegerField(default=0)
    appointments_synced = models.PositiveIntegerField(default=0)
    cases_created = models.PositiveIntegerField(default=0)
    cases_updated = models.PositiveIntegerField(default=0)
    issues = models.JSONField(default=list, blank=True)
    error_message = models.TextField(null=True, blank=True)
    started_at = models.DateTimeField()
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "sync_logs"
        indexes = [Index(fields=["clinic", "-started_at"])]
        ordering = ["-started_at"]

    def __str__(self) -> str:
        return f"{self.clinic_id} {self.sync_type} {self.status}"


class SyncControl(models.Model):
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="sync_controls")
    pms_type = models.CharField(max_length=20, choices=PMSType.choices)
    is_enabled = models.BooleanField(default=True, db_index=True)
    last_sync_at = models.DateTimeField(null=True, blank=True)
    next_sync_at = models.DateTimeField(null=True, blank=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "sync_controls"
        constraints = [
            UniqueConstraint(fields=["clinic", "pms_type"], name="uq_sync_control_clinic_pms")
        ]

    def __str__(self) -> str:
        return f"{self.clinic_id}/{self.pms_type} enabled={self.is_enabled}"
