from django.contrib import admin
from django.urls import include, path
from django_prometheus import exports
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

schema_view = get_schema_view(
    openapi.Info(title="Physio Quota Tracker API", default_version="v1"),
    public=True,
    permission_classes=[permissions.AllowAny],
    authentication_classes=[],
)

urlpatterns = [
    path('admin/',   admin.site.urls),
    path('api/',     include('plugins.django_interface.urls')),
    path('metrics/', exports.ExportToDjangoView, name='metrics'),
    path('docs/',    schema_view.with_ui('swagger', cache_timeout=0), name='swagger-ui'),
]
