# =========================================================
# Serializers over the domain *entities* (not the Django
# models) plus the input payloads of the write endpoints.
# =========================================================
from rest_framework import serializers

from quota_core.core.application.commands.case_commands import CASE_ACTIONS
from quota_core.core.application.commands.sync_commands import SYNC_TYPES
from plugins.django_interface.models import PMSType


# ───────────────────────────────────────────────
# Patients & cases
# ───────────────────────────────────────────────
class PatientSerializer(serializers.Serializer):
    id                = serializers.UUIDField()
    clinic_id         = serializers.UUIDField()
    pms_type          = serializers.CharField()
    pms_patient_id    = serializers.CharField()
    first_name        = serializers.CharField(allow_blank=True)
    last_name         = serializers.CharField(allow_blank=True)
    email             = serializers.CharField(allow_null=True)
    phone             = serializers.CharField(allow_null=True)
    date_of_birth     = serializers.DateField(allow_null=True)
    physio_name       = serializers.CharField(allow_null=True)
    program_type      = serializers.CharField(allow_null=True)
    sessions_used     = serializers.IntegerField()
    quota             = serializers.IntegerField(allow_null=True)
    updated_at        = serializers.DateTimeField(allow_null=True)


class CaseSerializer(serializers.Serializer):
    id                    = serializers.UUIDField()
    clinic_id             = serializers.UUIDField()
    patient_id            = serializers.UUIDField()
    pms_type              = serializers.CharField()
    case_number           = serializers.CharField()
    case_title            = serializers.CharField()
    patient_first_name    = serializers.CharField(allow_blank=True)
    patient_last_name     = serializers.CharField(allow_blank=True)
    patient_email         = serializers.CharField(allow_null=True)
    patient_phone         = serializers.CharField(allow_null=True)
    physio_name           = serializers.CharField()
    location_name         = serializers.CharField()
    appointment_type_name = serializers.CharField(allow_null=True)
    program_type          = serializers.CharField()
    quota                 = serializers.IntegerField()
    sessions_used         = serializers.IntegerField()
    remaining_sessions    = serializers.IntegerField()
    status                = serializers.CharField()
    priority              = serializers.CharField()
    is_alert_active       = serializers.BooleanField()
    alert_message         = serializers.CharField(allow_null=True)
    is_overdue            = serializers.BooleanField()
    last_visit_date       = serializers.DateField(allow_null=True)
    next_visit_date       = serializers.DateField(allow_null=True)
    case_start_date       = serializers.DateField()
    status_change_reason  = serializers.CharField(allow_null=True)
    last_status_change    = serializers.DateTimeField(allow_null=True)
    updated_at            = serializers.DateTimeField(allow_null=True)


class CaseActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=CASE_ACTIONS)
    data   = serializers.DictField(required=False, default=dict)


# ───────────────────────────────────────────────
# Sync
# ───────────────────────────────────────────────
class ManualSyncSerializer(serializers.Serializer):
    pms_type     = serializers.ChoiceField(choices=PMSType.values, required=False)
    sync_type    = serializers.ChoiceField(choices=SYNC_TYPES, default="manual")
    patients     = serializers.ListField(child=serializers.DictField(), required=False, default=list)
    appointments = serializers.ListField(child=serializers.DictField(), required=False, default=list)


class QuotaSyncResultSerializer(serializers.Serializer):
    success             = serializers.BooleanField()
    sync_log_id         = serializers.CharField()
    patients_processed  = serializers.IntegerField()
    patients_added      = serializers.IntegerField()
    patients_updated    = serializers.IntegerField()
    appointments_synced = serializers.IntegerField()
    cases_created       = serializers.IntegerField()
    cases_updated       = serializers.IntegerField()
    issues              = serializers.ListField(child=serializers.CharField())


class SyncLogSerializer(serializers.Serializer):
    id                  = serializers.UUIDField()
    clinic_id           = serializers.UUIDField()
    pms_type            = serializers.CharField()
    sync_type           = serializers.CharField()
    status              = serializers.CharField()
    patients_processed  = serializers.IntegerField()
    patients_added      = serializers.IntegerField()
    patients_updated    = serializers.IntegerField()
    appointments_synced = serializers.IntegerField()
    cases_created       = serializers.IntegerField()
    cases_updated       = serializers.IntegerField()
    issues              = serializers.ListField(child=serializers.CharField())
    error_message       = serializers.CharField(allow_null=True)
    started_at          = serializers.DateTimeField(allow_null=True)
    completed_at        = serializers.DateTimeField(allow_null=True)


class SyncControlSerializer(serializers.Serializer):
    clinic_id    = serializers.UUIDField(read_only=True)
    pms_type     = serializers.ChoiceField(choices=PMSType.values)
    is_enabled   = serializers.BooleanField()
    last_sync_at = serializers.DateTimeField(read_only=True, allow_null=True)
    next_sync_at = serializers.DateTimeField(read_only=True, allow_null=True)


# ───────────────────────────────────────────────
# Clinic settings
# ───────────────────────────────────────────────
class ClinicSettingsSerializer(serializers.Serializer):
    wc_tags               = serializers.ListField(child=serializers.CharField(), required=False, allow_empty=False)
    epc_tags              = serializers.ListField(child=serializers.CharField(), required=False, allow_empty=False)
    wc_quota              = serializers.IntegerField(min_value=1, required=False)
    epc_quota             = serializers.IntegerField(min_value=1, required=False)
    clear_quota_overrides = serializers.BooleanField(required=False, default=False)
