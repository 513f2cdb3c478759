from dataclasses import asdict

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from plugins.django_interface.permissions import CanAccessClinic, IsClinicUser
from quota_core.adapters.config.composition_root import setup_di_container_from_settings
from quota_core.adapters.observability.decorators import track_http
from quota_core.core.application.commands.clinic_commands import UpdateClinicSettingsCommand
from quota_core.core.application.queries.dashboard_queries import GetQuotaDashboardQuery
from quota_core.core.domain.events.exceptions import ClinicNotFoundError, InvalidClinicSettingsError

from ..serializers.core_serializers import ClinicSettingsSerializer
from .core_views import PaginationFilterMixin

container = setup_di_container_from_settings(settings)


class DashboardSummaryView(APIView):
    """
    GET /dashboard-summary/ → case totals per status and program, cases
    needing action, overdue cases and the last sync run.
    """
    permission_classes = [IsClinicUser]

    @track_http("dashboard_summary")
    def get(self, request):
        clinic_id = PaginationFilterMixin._clinic_id(request)
        dto = container.query_bus().dispatch(GetQuotaDashboardQuery(clinic_id=clinic_id))
        return Response(asdict(dto))


class ClinicSettingsView(APIView):
    """PATCH /clinics/<id>/settings/ → WC/EPC tags and quota overrides."""
    permission_classes = [CanAccessClinic]

    @track_http("clinic_settings")
    def patch(self, request, clinic_id):
        ser = ClinicSettingsSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        cmd = UpdateClinicSettingsCommand(
            clinic_id=str(clinic_id),
            wc_tags=data.get("wc_tags"),
            epc_tags=data.get("epc_tags"),
            wc_quota=data.get("wc_quota"),
            epc_quota=data.get("epc_quota"),
            clear_quota_overrides=data.get("clear_quota_overrides", False),
        )
        try:
            event = container.command_bus().dispatch(cmd)
        except ClinicNotFoundError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidClinicSettingsError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        clinic = container.clinic_repo().find_by_id(str(clinic_id))
        return Response({
            "clinic_id": str(clinic.id),
            "wc_tags": list(event.wc_tags),
            "epc_tags": list(event.epc_tags),
            "wc_quota": clinic.wc_quota,
            "epc_quota": clinic.epc_quota,
            "overlapping_tags": list(event.overlapping_tags),
        })
