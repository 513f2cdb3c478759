from rest_framework.routers import DefaultRouter

from .views.core_views import CaseViewSet, PatientViewSet

# (route, ViewSet)
RESOURCES = [
    ("cases",    CaseViewSet),
    ("patients", PatientViewSet),
]

def build_router() -> DefaultRouter:
    router = DefaultRouter(trailing_slash=False)
    for prefix, viewset in RESOURCES:
        router.register(prefix, viewset, basename=prefix.replace('-', '_'))
    return router
