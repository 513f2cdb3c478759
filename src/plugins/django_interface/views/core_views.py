# ╭────────────────────────────────────────────────────────────────────────────╮
# │  REST ViewSets – cases & patients                                          │
# │                                                                            │
# │  • Safe filters      → page / page_size stripped before reaching the repo  │
# │  • DRY pagination    → shared mix-in                                       │
# │  • Clinic scope      → token clinic_id, admins pass ?clinic_id=            │
# │  • Metrics           → `track_http` decorator                              │
# ╰────────────────────────────────────────────────────────────────────────────╯
from __future__ import annotations

from django.conf import settings
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from plugins.django_interface.permissions import IsClinicUser
from quota_core.adapters.config.composition_root import setup_di_container_from_settings
from quota_core.adapters.observability.decorators import track_http
from quota_core.core.application.commands.case_commands import UpdateCaseCommand
from quota_core.core.application.cqrs import CommandBusImpl, QueryBusImpl
from quota_core.core.application.queries.case_queries import (
    GetCaseQuery,
    ListCasesQuery,
    ListPatientsQuery,
)
from quota_core.core.domain.events.exceptions import CaseNotFoundError, InvalidCaseActionError

from ..serializers.core_serializers import (
    CaseActionSerializer,
    CaseSerializer,
    PatientSerializer,
)

# ───────────────────────────────  CQRS Buses  ────────────────────────────────
container = setup_di_container_from_settings(settings)
command_bus: CommandBusImpl = container.command_bus()
query_bus: QueryBusImpl = container.query_bus()

# ───────────────────────────────  Constants  ─────────────────────────────────
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Helper mix-in – pagination + filters + clinic scope                      │
# ╰──────────────────────────────────────────────────────────────────────────╯
class PaginationFilterMixin:
    """Strips page/page_size from the QueryDict and returns clean filters."""

    # query params the repos understand; anything else is ignored
    allowed_filters: tuple[str, ...] = ()
    # model fields that also accept `<field>__in=a,b`
    in_filters: tuple[str, ...] = ()

    @staticmethod
    def _pagination(request) -> tuple[int, int]:
        try:
            page = max(1, int(request.query_params.get("page", 1)))
            size = int(request.query_params.get("page_size", DEFAULT_PAGE_SIZE))
        except ValueError as exc:
            raise ValidationError({"detail": "page and page_size must be integers."}) from exc
        return page, min(max(1, size), MAX_PAGE_SIZE)

    def _filters(self, request) -> dict[str, object]:
        params = request.query_params.copy()          # mutable QueryDict
        params.pop("page", None)
        params.pop("page_size", None)
        params.pop("clinic_id", None)

        clean: dict[str, object] = {}
        for key in params:
            is_in = key.endswith("__in")
            if is_in and key.removesuffix("__in") not in self.in_filters:
                continue
            if not is_in and key not in self.allowed_filters:
                continue
            values = params.getlist(key)
            if is_in:
                items: list[str] = []
                for v in values:
                    items.extend(v.split(","))        # "a,b,c" → [a,b,c]
                clean[key] = items
            else:
                clean[key] = values[0]
        return clean

    @staticmethod
    def _clinic_id(request) -> str:
        """Clinic staff are pinned to their token's clinic; admins choose one."""
        user = request.user
        if getattr(user, "role", None) == "admin":
            clinic_id = request.query_params.get("clinic_id") or getattr(user, "clinic_id", None)
            if not clinic_id:
                raise ValidationError({"clinic_id": "Required for admin users."})
            return str(clinic_id)
        if not getattr(user, "clinic_id", None):
            raise ValidationError({"detail": "Token carries no clinic."})
        return str(user.clinic_id)

    @staticmethod
    def _paged_payload(result, serializer_cls) -> dict:
        items = serializer_cls(result.items, many=True).data
        return {
            "results": items,
            "total_items": result.total,
            "page": result.page,
            "page_size": result.page_size,
            "total_pages": result.total_pages,
            "items_on_page": len(items),
        }


# ───────────────────────────────────────────────
# Cases
# ───────────────────────────────────────────────
class CaseViewSet(PaginationFilterMixin, viewsets.ViewSet):
    """
    GET  /cases                → paginated list (archived hidden unless filtered)
    GET  /cases/{id}           → one case
    POST /cases/{id}/action    → {"action": "...", "data": {...}}
    """
    permission_classes = [IsClinicUser]
    lookup_value_regex = "[0-9a-fA-F-]{36}"
    allowed_filters = ("status", "priority", "program_type", "is_alert_active", "search", "include_archived")
    in_filters = ("status", "priority", "program_type")

    @track_http("cases_list")
    def list(self, request):
        page, size = self._pagination(request)
        filtros = self._filters(request)
        if "include_archived" in filtros:
            filtros["include_archived"] = str(filtros["include_archived"]).lower() in {"1", "true", "yes"}
        if "is_alert_active" in filtros:
            filtros["is_alert_active"] = str(filtros["is_alert_active"]).lower() in {"1", "true", "yes"}
        filtros["clinic_id"] = self._clinic_id(request)

        result = query_bus.dispatch(ListCasesQuery(filtros=filtros, page=page, page_size=size))
        return Response(self._paged_payload(result, CaseSerializer))

    @track_http("cases_retrieve")
    def retrieve(self, request, pk=None):
        try:
            case = query_bus.dispatch(GetCaseQuery(id=str(pk), clinic_id=self._clinic_id(request)))
        except CaseNotFoundError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        return Response(CaseSerializer(case).data)

    @action(detail=True, methods=["post"], url_path="action")
    @track_http("cases_action")
    def run_action(self, request, pk=None):
        ser = CaseActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        cmd = UpdateCaseCommand(
            case_id=str(pk),
            clinic_id=self._clinic_id(request),
            action=ser.validated_data["action"],
            data=ser.validated_data.get("data") or {},
        )
        try:
            case = command_bus.dispatch(cmd)
        except CaseNotFoundError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidCaseActionError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(CaseSerializer(case).data)


# ───────────────────────────────────────────────
# Patients
# ───────────────────────────────────────────────
class PatientViewSet(PaginationFilterMixin, viewsets.ViewSet):
    permission_classes = [IsClinicUser]
    allowed_filters = ("pms_type", "program_type", "search")
    in_filters = ("pms_type", "program_type")

    @track_http("patients_list")
    def list(self, request):
        page, size = self._pagination(request)
        filtros = self._filters(request)
        filtros["clinic_id"] = self._clinic_id(request)

        result = query_bus.dispatch(ListPatientsQuery(filtros=filtros, page=page, page_size=size))
        return Response(self._paged_payload(result, PatientSerializer))
