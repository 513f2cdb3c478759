from django.urls import include, path

from .routers import build_router
from .views.auth_views import HealthCheckView, MeView
from .views.extra_views import ClinicSettingsView, DashboardSummaryView
from .views.sync_views import ManualSyncView, SyncControlView, SyncLogDetailView, SyncLogListView

router = build_router()

urlpatterns = [
    path("healthz/", HealthCheckView.as_view(), name="healthz"),
    path("me/", MeView.as_view(), name="me"),
    path("dashboard-summary/", DashboardSummaryView.as_view(), name="dashboard-summary"),
    path("clinics/<uuid:clinic_id>/settings/", ClinicSettingsView.as_view(), name="clinic-settings"),
    path("clinics/<uuid:clinic_id>/sync/", ManualSyncView.as_view(), name="clinic-sync"),
    path("clinics/<uuid:clinic_id>/sync-logs/", SyncLogListView.as_view(), name="sync-log-list"),
    path("clinics/<uuid:clinic_id>/sync-logs/<uuid:log_id>/", SyncLogDetailView.as_view(), name="sync-log-detail"),
    path("clinics/<uuid:clinic_id>/sync-control/", SyncControlView.as_view(), name="sync-control"),

    # routed viewsets
    path("", include(router.urls)),
]
