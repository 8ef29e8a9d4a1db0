from django.conf import settings
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

from .routers import build_router
from .views.agenda_views import AvailabilityView
from .views.lead_views import LeadStageListView
from .views.ops_views import CurrentCallView, HealthCheckView
from .views.webhook_views import (
    AppointmentCreatedWebhookView,
    CallEndedWebhookView,
    CallStartedWebhookView,
    LeadCreatedWebhookView,
)

swagger_permissions = [permissions.IsAdminUser] if not settings.DEBUG else [permissions.AllowAny]

schema_view = get_schema_view(
    openapi.Info(
        title="Clinic Ops API",
        default_version="v1",
        description="Funil de leads e agenda da clínica (CQRS + Bus)",
    ),
    public=settings.DEBUG,
    permission_classes=swagger_permissions,
)

router = build_router()

urlpatterns = [
    path("healthz/", HealthCheckView.as_view(), name="healthz"),

    # webhooks do agente de voz / captação
    path("webhooks/call_started/",        CallStartedWebhookView.as_view(),        name="webhook-call-started"),
    path("webhooks/call_ended/",          CallEndedWebhookView.as_view(),          name="webhook-call-ended"),
    path("webhooks/appointment_created/", AppointmentCreatedWebhookView.as_view(), name="webhook-appointment-created"),
    path("webhooks/lead_created/",        LeadCreatedWebhookView.as_view(),        name="webhook-lead-created"),

    # painel da equipe
    path("lead-stages",   LeadStageListView.as_view(), name="lead-stages"),
    path("availability",  AvailabilityView.as_view(),  name="availability"),
    path("current-call/", CurrentCallView.as_view(),   name="current-call"),

    path("swagger/",     schema_view.with_ui("swagger", cache_timeout=0), name="swagger-ui"),
    path("swagger.json", schema_view.without_ui(cache_timeout=0),         name="swagger-json"),
    path("redoc/",       schema_view.with_ui("redoc",   cache_timeout=0), name="redoc-ui"),

    # rotas dos ViewSets
    path("", include(router.urls)),
]
