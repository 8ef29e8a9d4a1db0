# ╭────────────────────────────────────────────────────────────────────────────╮
# │  Funil de leads – rotas da equipe                                          │
# │                                                                            │
# │  • Catálogo de etapas (com fallback embutido)                              │
# │  • Leads: listagem, detalhe, transição, resultado pós-visita, histórico    │
# │  • Opt-out de WhatsApp                                                     │
# ╰────────────────────────────────────────────────────────────────────────────╯
from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from lead_pipeline.adapters.config.composition_root import container
from lead_pipeline.core.application.commands.lead_commands import (
    RecordLeadOutcomeCommand,
    SetWhatsappBlockCommand,
    TransitionLeadStageCommand,
)
from lead_pipeline.core.application.queries.lead_queries import (
    GetLeadQuery,
    ListLeadsQuery,
    ListLeadStageHistoryQuery,
    ListLeadStagesQuery,
)
from lead_pipeline.core.application.services.lead_stage_engine import ACTOR_STAFF
from plugins.django_interface.permissions import IsClinicMember
from plugins.django_interface.serializers.core_serializers import (
    LeadSerializer,
    LeadStageHistorySerializer,
    LeadStageSerializer,
    StageTransitionSerializer,
)
from plugins.django_interface.serializers.input_serializers import (
    LeadOutcomeInputSerializer,
    StageTransitionInputSerializer,
    WhatsappBlockInputSerializer,
)

from .base_views import ClinicScopedMixin

OUTCOME_SOURCE_DASHBOARD = "dashboard"


class LeadStageListView(APIView):
    """GET /api/lead-stages – catálogo ativo; `degraded` indica o fallback embutido."""

    permission_classes = [IsClinicMember]

    def get(self, request):
        catalog = container.query_bus().dispatch(ListLeadStagesQuery())
        return Response(
            {
                "results": LeadStageSerializer(catalog.stages, many=True).data,
                "degraded": catalog.degraded,
            }
        )


class LeadViewSet(ClinicScopedMixin, viewsets.ViewSet):
    allowed_filters = ("stage_key", "status", "search")

    def list(self, request):
        filtros = self._filters(request)
        page, page_size = self._pagination(request)
        # sempre força a clínica do usuário
        filtros["clinic_id"] = self.tenant(request).clinic_id
        res = container.query_bus().dispatch(ListLeadsQuery(filtros=filtros, page=page, page_size=page_size))
        return Response(self._paged_payload(res, LeadSerializer))

    def retrieve(self, request, pk=None):
        lead = container.query_bus().dispatch(
            GetLeadQuery(clinic_id=self.tenant(request).clinic_id, lead_id=str(pk))
        )
        return Response(LeadSerializer(lead).data)

    # ------------------------------------------------------------------ #
    @action(methods=["post"], detail=True)
    def transition(self, request, pk=None):
        """
        Move o lead para outra etapa (arrastar no quadro).

        Body:
        ```
        {"to_stage_key": "no_answer_first_call", "reason": "..."}
        ```
        """
        body = StageTransitionInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        outcome = container.command_bus().dispatch(
            TransitionLeadStageCommand(
                clinic_id=self.tenant(request).clinic_id,
                lead_id=str(pk),
                to_stage_key=body.validated_data["to_stage_key"],
                reason=body.validated_data.get("reason") or "Movido manualmente",
                actor_type=ACTOR_STAFF,
                actor_id=self.actor_id(request),
                meta={"source": "pipeline_board"},
            )
        )
        return Response(StageTransitionSerializer(outcome).data, status=status.HTTP_200_OK)

    @action(methods=["post"], detail=True)
    def outcome(self, request, pk=None):
        body = LeadOutcomeInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        data = body.validated_data
        lead = container.command_bus().dispatch(
            RecordLeadOutcomeCommand(
                clinic_id=self.tenant(request).clinic_id,
                lead_id=str(pk),
                to_stage_key=data["to_stage_key"],
                actor_type=ACTOR_STAFF,
                actor_id=self.actor_id(request),
                source=OUTCOME_SOURCE_DASHBOARD,
                converted_value_eur=data.get("converted_value_eur"),
                converted_service_name=data.get("converted_service_name"),
                outcome_reason=data.get("outcome_reason"),
            )
        )
        return Response(LeadSerializer(lead).data)

    @action(methods=["get"], detail=True)
    def history(self, request, pk=None):
        rows = container.query_bus().dispatch(
            ListLeadStageHistoryQuery(clinic_id=self.tenant(request).clinic_id, lead_id=str(pk))
        )
        return Response({"results": LeadStageHistorySerializer(rows, many=True).data})

    @action(methods=["post"], detail=True, url_path="whatsapp-block")
    def whatsapp_block(self, request, pk=None):
        body = WhatsappBlockInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        lead = container.command_bus().dispatch(
            SetWhatsappBlockCommand(
                clinic_id=self.tenant(request).clinic_id,
                lead_id=str(pk),
                blocked=body.validated_data["blocked"],
                reason=body.validated_data.get("reason"),
                user_id=self.actor_id(request),
            )
        )
        return Response(LeadSerializer(lead).data)
