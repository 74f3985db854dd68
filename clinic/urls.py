"""
URL configuration for the clinical backend.

The versioned API lives under ``/api/v1/``; OpenAPI documentation is
exposed at ``/swagger/`` and ``/redoc/``, Prometheus metrics at
``/metrics`` and a liveness check at ``/up``.
"""
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

from core.views import health

api_info = openapi.Info(
    title="Clinical Backend API",
    default_version='v1',
    description="Assessments, referrals, emergency alerts and notifications.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('core.routers')),
    path('up', health.up, name='up'),
    path('', include('django_prometheus.urls')),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
