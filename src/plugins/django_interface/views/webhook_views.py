# ╭────────────────────────────────────────────────────────────────────────────╮
# │  Webhooks do agente de voz / captação de leads                             │
# │                                                                            │
# │  • Autenticação → header X-Webhook-Secret (HasWebhookSecret)               │
# │  • Tenant       → clinic_id do payload ou DEFAULT_CLINIC_ID                │
# │  • Payload      → modelos pydantic (campos extras ignorados)               │
# │  • Resposta     → {"ok": true, ...}; erros via EXCEPTION_HANDLER           │
# ╰────────────────────────────────────────────────────────────────────────────╯
from __future__ import annotations

from typing import Any

import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from lead_pipeline.adapters.config.composition_root import container
from lead_pipeline.adapters.observability.metrics import WEBHOOK_REQUESTS
from lead_pipeline.core.application.commands.agenda_commands import CreateAppointmentCommand
from lead_pipeline.core.application.commands.call_commands import (
    RegisterCallEndedCommand,
    RegisterCallStartedCommand,
)
from lead_pipeline.core.application.commands.lead_commands import RegisterLeadCommand
from lead_pipeline.core.application.dtos.webhook_dtos import (
    AppointmentCreatedPayload,
    CallEndedPayload,
    CallStartedPayload,
    LeadCreatedPayload,
    WebhookPayload,
)
from lead_pipeline.core.application.services.lead_stage_engine import ACTOR_RETELL
from plugins.django_interface.permissions import HasWebhookSecret
from plugins.django_interface.tenancy import TenantContext, resolve_webhook_tenant

logger = structlog.get_logger(__name__)

DEFAULT_WEBHOOK_CREATED_BY = "agent"
DEFAULT_WEBHOOK_SOURCE_CHANNEL = "call_ai"


def _uuid_str(value) -> str | None:
    return str(value) if value else None


class WebhookView(APIView):
    """Base: autentica, valida o payload, resolve a clínica e delega a `handle_payload`."""

    authentication_classes: list = []
    permission_classes = [HasWebhookSecret]
    webhook_event: str = ""
    payload_model: type[WebhookPayload] = WebhookPayload

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        if response.status_code < status.HTTP_400_BAD_REQUEST:
            result = "ok"
        elif response.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR:
            result = "client_error"
        else:
            result = "server_error"
        WEBHOOK_REQUESTS.labels(self.webhook_event, result).inc()
        return response

    def post(self, request):
        data = request.data.dict() if hasattr(request.data, "dict") else request.data
        payload = self.payload_model.model_validate(data or {})
        tenant = resolve_webhook_tenant(payload.clinic_id)
        structlog.contextvars.bind_contextvars(clinic_id=tenant.clinic_id, webhook=self.webhook_event)
        logger.info("webhook.received", event=self.webhook_event)

        body = self.handle_payload(payload, tenant)
        return Response({"ok": True, **body}, status=status.HTTP_200_OK)

    def handle_payload(self, payload, tenant: TenantContext) -> dict[str, Any]:
        raise NotImplementedError


class CallStartedWebhookView(WebhookView):
    webhook_event = "call_started"
    payload_model = CallStartedPayload

    def handle_payload(self, payload: CallStartedPayload, tenant: TenantContext) -> dict[str, Any]:
        call = container.command_bus().dispatch(
            RegisterCallStartedCommand(
                clinic_id=tenant.clinic_id,
                external_call_id=payload.call_id,
                lead_id=_uuid_str(payload.lead_id),
                phone=payload.phone,
                attempt_no=payload.attempt_no,
                started_at=payload.started_at,
            )
        )
        return {"call_id": call.external_call_id, "attempt_no": call.attempt_no}


class CallEndedWebhookView(WebhookView):
    webhook_event = "call_ended"
    payload_model = CallEndedPayload

    def handle_payload(self, payload: CallEndedPayload, tenant: TenantContext) -> dict[str, Any]:
        call = container.command_bus().dispatch(
            RegisterCallEndedCommand(
                clinic_id=tenant.clinic_id,
                time_zone=tenant.time_zone,
                external_call_id=payload.call_id,
                lead_id=_uuid_str(payload.lead_id),
                outcome=payload.outcome,
                duration_sec=payload.duration_sec,
                ended_at=payload.ended_at,
                transcript=payload.transcript,
                summary=payload.summary,
                extracted=payload.extracted,
                recording_url=payload.recording_url,
                cost_eur=payload.cost_eur,
            )
        )
        return {"call_id": call.external_call_id, "outcome": call.outcome}


class AppointmentCreatedWebhookView(WebhookView):
    webhook_event = "appointment_created"
    payload_model = AppointmentCreatedPayload

    def handle_payload(self, payload: AppointmentCreatedPayload, tenant: TenantContext) -> dict[str, Any]:
        appt = container.command_bus().dispatch(
            CreateAppointmentCommand(
                clinic_id=tenant.clinic_id,
                time_zone=tenant.time_zone,
                start_at=payload.start_at,
                end_at=payload.end_at,
                lead_id=_uuid_str(payload.lead_id),
                lead_name=payload.lead_name,
                lead_phone=payload.lead_phone,
                title=payload.title,
                notes=payload.notes,
                source_channel=payload.source_channel or DEFAULT_WEBHOOK_SOURCE_CHANNEL,
                created_by=payload.created_by or DEFAULT_WEBHOOK_CREATED_BY,
                actor_type=ACTOR_RETELL,
                export_to_calendar=payload.export_calendar,
            )
        )
        return {
            "appointment_id": str(appt.id),
            "lead_id": _uuid_str(appt.lead_id),
            "start_at": appt.start_at.isoformat(),
            "end_at": appt.end_at.isoformat(),
        }


class LeadCreatedWebhookView(WebhookView):
    webhook_event = "lead_created"
    payload_model = LeadCreatedPayload

    def handle_payload(self, payload: LeadCreatedPayload, tenant: TenantContext) -> dict[str, Any]:
        lead, created = container.command_bus().dispatch(
            RegisterLeadCommand(
                clinic_id=tenant.clinic_id,
                full_name=payload.full_name,
                phone=payload.phone,
                lead_id=_uuid_str(payload.id),
                treatment=payload.treatment,
                source=payload.source,
            )
        )
        return {"lead_id": str(lead.id), "created": created}
