from rest_framework.routers import DefaultRouter

from .views.agenda_views import AppointmentViewSet, BusyBlockViewSet
from .views.lead_views import LeadViewSet
from .views.ops_views import PendingActionViewSet

# lista de (rota, ViewSet)
RESOURCES = [
    ("leads",           LeadViewSet),
    ("appointments",    AppointmentViewSet),
    ("busy-blocks",     BusyBlockViewSet),
    ("pending-actions", PendingActionViewSet),
]

def build_router() -> DefaultRouter:
    router = DefaultRouter(trailing_slash=False)
    for prefix, viewset in RESOURCES:
        router.register(prefix, viewset, basename=prefix.replace('-', '_'))
    return router
