from __future__ import annotations

from django.db import connection
from django.db.utils import DatabaseError
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from lead_pipeline.adapters.config.composition_root import container
from lead_pipeline.core.application.commands.pending_action_commands import MarkPendingActionDoneCommand
from lead_pipeline.core.application.queries.call_queries import GetCurrentCallQuery
from lead_pipeline.core.application.queries.pending_action_queries import ListPendingActionsQuery
from plugins.django_interface.serializers.core_serializers import (
    CurrentCallSerializer,
    PendingActionSerializer,
)

from .base_views import ClinicScopedMixin


class PendingActionViewSet(ClinicScopedMixin, viewsets.ViewSet):
    """
    Ações pendentes (retentativas de ligação).
    • Somente leitura para list;
    • Ação `mark_done` para encerrar a pendência.
    """

    allowed_filters = ("status", "action_type", "lead_id")

    def list(self, request):
        filtros = self._filters(request)
        page, page_size = self._pagination(request)
        filtros["clinic_id"] = self.tenant(request).clinic_id
        res = container.query_bus().dispatch(
            ListPendingActionsQuery(filtros=filtros, page=page, page_size=page_size)
        )
        return Response(self._paged_payload(res, PendingActionSerializer))

    @action(methods=["post"], detail=True)
    def mark_done(self, request, pk=None):
        pa = container.command_bus().dispatch(
            MarkPendingActionDoneCommand(clinic_id=self.tenant(request).clinic_id, action_id=str(pk))
        )
        return Response(PendingActionSerializer(pa).data, status=status.HTTP_200_OK)


class CurrentCallView(ClinicScopedMixin, APIView):
    def get(self, request):
        state = container.query_bus().dispatch(GetCurrentCallQuery(clinic_id=self.tenant(request).clinic_id))
        return Response(CurrentCallSerializer(state).data)


class HealthCheckView(APIView):
    """
    Rota GET /api/healthz/: retorna status 200 se a API e o banco estiverem vivos.
    """
    permission_classes = []
    authentication_classes = []

    def get(self, request):
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
        except DatabaseError:
            return Response({"status": "degraded", "database": "down"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response({"status": "ok"}, status=status.HTTP_200_OK)
