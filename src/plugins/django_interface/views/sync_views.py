"""
Sync endpoints, all scoped by `<clinic_id>` in the URL.

POST /clinics/<id>/sync/          manual sync (optionally with PMS records)
GET  /clinics/<id>/sync-logs/     recent runs, newest first
GET  /clinics/<id>/sync-logs/<l>/ one run
GET|PUT /clinics/<id>/sync-control/  pause / resume scheduled syncs
"""
import structlog
from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from plugins.django_interface.permissions import CanAccessClinic
from quota_core.adapters.config.composition_root import setup_di_container_from_settings
from quota_core.adapters.observability.decorators import track_http
from quota_core.core.application.queries.sync_queries import GetSyncControlQuery, GetSyncLogQuery
from quota_core.core.application.services.quota_sync_service import QuotaSyncService
from quota_core.core.domain.entities.sync_control_entity import SyncControlEntity
from quota_core.core.domain.events.exceptions import (
    ClinicNotFoundError,
    SyncLogNotFoundError,
    UpstreamFetchError,
)
from quota_tracker_api.tasks import clinic_lock

from ..serializers.core_serializers import (
    ManualSyncSerializer,
    QuotaSyncResultSerializer,
    SyncControlSerializer,
    SyncLogSerializer,
)

log = structlog.get_logger(__name__)

container = setup_di_container_from_settings(settings)
sync_service: QuotaSyncService = container.quota_sync_service()


def _clinic_pms(clinic_id, requested: str | None):
    """Returns the PMS to sync, defaulting to the clinic's own; None when the clinic is unknown."""
    clinic = container.clinic_repo().find_by_id(str(clinic_id))
    if clinic is None:
        return None
    return requested or clinic.pms_type


class ManualSyncView(APIView):
    permission_classes = [CanAccessClinic]

    @track_http("sync_manual")
    def post(self, request, clinic_id):
        ser = ManualSyncSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        pms_type = _clinic_pms(clinic_id, data.get("pms_type"))
        if pms_type is None:
            return Response({"detail": f"Clinic {clinic_id} not found"}, status=status.HTTP_404_NOT_FOUND)

        with clinic_lock(str(clinic_id)) as ok:
            if not ok:
                return Response(
                    {"detail": "A sync is already running for this clinic."},
                    status=status.HTTP_409_CONFLICT,
                )
            try:
                result = sync_service.full_sync(
                    clinic_id=str(clinic_id),
                    pms_type=pms_type,
                    patients=data["patients"],
                    appointments=data["appointments"],
                    sync_type=data["sync_type"],
                )
            except ClinicNotFoundError as exc:
                return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
            except UpstreamFetchError as exc:
                log.warning("quota_sync.api_failed", clinic_id=str(clinic_id), error=str(exc))
                return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        return Response(QuotaSyncResultSerializer(result).data, status=status.HTTP_200_OK)


class SyncLogListView(APIView):
    permission_classes = [CanAccessClinic]

    @track_http("sync_logs_list")
    def get(self, request, clinic_id):
        try:
            limit = int(request.query_params.get("limit", 10))
        except ValueError:
            return Response({"detail": "limit must be an integer."}, status=status.HTTP_400_BAD_REQUEST)
        logs = sync_service.recent_logs(str(clinic_id), limit=limit)
        return Response(SyncLogSerializer(logs, many=True).data)


class SyncLogDetailView(APIView):
    permission_classes = [CanAccessClinic]

    @track_http("sync_logs_retrieve")
    def get(self, request, clinic_id, log_id):
        try:
            entry = container.query_bus().dispatch(GetSyncLogQuery(id=str(log_id), clinic_id=str(clinic_id)))
        except SyncLogNotFoundError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        return Response(SyncLogSerializer(entry).data)


class SyncControlView(APIView):
    permission_classes = [CanAccessClinic]

    @track_http("sync_control_get")
    def get(self, request, clinic_id):
        pms_type = _clinic_pms(clinic_id, request.query_params.get("pms_type"))
        if pms_type is None:
            return Response({"detail": f"Clinic {clinic_id} not found"}, status=status.HTTP_404_NOT_FOUND)
        control = container.query_bus().dispatch(
            GetSyncControlQuery(clinic_id=str(clinic_id), pms_type=pms_type)
        ) or SyncControlEntity(clinic_id=clinic_id, pms_type=pms_type)
        return Response(SyncControlSerializer(control).data)

    @track_http("sync_control_put")
    def put(self, request, clinic_id):
        ser = SyncControlSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        if _clinic_pms(clinic_id, None) is None:
            return Response({"detail": f"Clinic {clinic_id} not found"}, status=status.HTTP_404_NOT_FOUND)
        control = sync_service.set_enabled(
            str(clinic_id), ser.validated_data["pms_type"], ser.validated_data["is_enabled"]
        )
        return Response(SyncControlSerializer(control).data)
