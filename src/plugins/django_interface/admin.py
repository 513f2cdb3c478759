"""
Admin site registry
-------------------
Registers every model dynamically from one options table.
"""

import structlog
from django.contrib import admin as django_admin

from . import models

logger = structlog.get_logger(__name__)

# ╭──────────────────────────────────────────────╮
# │ ModelAdmin options per model                 │
# ╰──────────────────────────────────────────────╯
MODEL_ADMIN_REGISTRY: dict[type[models.models.Model], dict] = {
    # 1. Clinics
    models.Clinic: dict(
        list_display=("name", "pms_type", "subscription_status", "wc_quota", "epc_quota", "created_at"),
        list_filter=("pms_type", "subscription_status"),
        search_fields=("name",),
    ),
    # 2. PMS records
    models.Patient: dict(
        list_display=("last_name", "first_name", "clinic", "pms_type", "program_type", "sessions_used", "quota"),
        list_filter=("clinic", "pms_type", "program_type"),
        search_fields=("first_name", "last_name", "pms_patient_id", "email"),
    ),
    models.Appointment: dict(
        list_display=("pms_appointment_id", "patient", "appointment_type", "status", "appointment_date"),
        list_filter=("clinic", "pms_type", "status"),
        search_fields=("pms_appointment_id", "appointment_type"),
    ),
    # 3. Cases
    models.Case: dict(
        list_display=("case_number", "clinic", "program_type", "sessions_used", "quota", "status", "priority"),
        list_filter=("clinic", "status", "priority", "program_type", "is_alert_active"),
        search_fields=("case_number", "patient_first_name", "patient_last_name"),
    ),
    # 4. Sync
    models.SyncLog: dict(
        list_display=("clinic", "pms_type", "sync_type", "status", "started_at", "completed_at"),
        list_filter=("status", "sync_type", "pms_type"),
        readonly_fields=("issues",),
    ),
    models.SyncControl: dict(
        list_display=("clinic", "pms_type", "is_enabled", "last_sync_at", "next_sync_at"),
        list_filter=("is_enabled", "pms_type"),
    ),
}

# ╭──────────────────────────────────────────────╮
# │ Dynamic registration                         │
# ╰──────────────────────────────────────────────╯
for model, opts in MODEL_ADMIN_REGISTRY.items():
    admin_class = type(f"{model.__name__}Admin", (django_admin.ModelAdmin,), opts)
    django_admin.site.register(model, admin_class)
    logger.debug("admin.registered", model=model.__name__)
