from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from quota_core.adapters.config.composition_root import setup_di_container_from_settings
from quota_core.core.application.commands.sync_commands import SYNC_TYPES
from quota_core.core.domain.events.exceptions import ClinicNotFoundError, UpstreamFetchError
from plugins.django_interface.models import Clinic, PMSType


class Command(BaseCommand):
    """
    Reconciles WC/EPC quotas for one clinic over the records already stored.
    An unknown clinic is a CommandError; a failed fetch stage re-raises
    UpstreamFetchError after the sync log has been marked failed.

    Usage:
        python manage.py sync_quotas --clinic-id <UUID> [--pms-type cliniko] [--sync-type manual]
    """

    help = "Reconcile session quotas and refresh cases for one clinic"

    def add_arguments(self, parser):
        parser.add_argument("--clinic-id", required=True, help="Clinic UUID.")
        parser.add_argument(
            "--pms-type", choices=PMSType.values, default=None,
            help="PMS to reconcile (defaults to the clinic's own).",
        )
        parser.add_argument("--sync-type", choices=SYNC_TYPES, default="manual")

    def handle(self, *args, **opts):
        clinic_id = opts["clinic_id"]
        clinic = Clinic.objects.filter(id=clinic_id).only("pms_type").first()
        if clinic is None:
            raise CommandError(f"Clinic {clinic_id} not found.")

        service = setup_di_container_from_settings(settings).quota_sync_service()
        try:
            result = service.full_sync(
                clinic_id=clinic_id,
                pms_type=opts["pms_type"] or clinic.pms_type,
                sync_type=opts["sync_type"],
            )
        except ClinicNotFoundError as exc:
            raise CommandError(str(exc)) from exc
        except UpstreamFetchError as exc:
            # transient: propagated so the Celery task can retry it
            self.stderr.write(self.style.ERROR(f"Sync failed: {exc}"))
            raise

        self.stdout.write(self.style.SUCCESS(
            f"sync_quotas OK clinic={clinic_id} log={result.sync_log_id} "
            f"cases +{result.cases_created}/~{result.cases_updated} issues={len(result.issues)}"
        ))
        for issue in result.issues:
            self.stdout.write(self.style.WARNING(f"  - {issue}"))
