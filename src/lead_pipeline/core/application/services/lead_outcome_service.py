from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

import structlog

from lead_pipeline.core.application.services.lead_stage_engine import LeadStageEngine
from lead_pipeline.core.domain import lead_stages as ls
from lead_pipeline.core.domain.entities.lead_entity import LeadEntity
from lead_pipeline.core.domain.events.exceptions import OutcomeValidationError
from lead_pipeline.core.domain.repositories.audit_log_repository import AuditLogRepository
from lead_pipeline.core.domain.repositories.lead_repository import LeadRepository

logger = structlog.get_logger(__name__)

OUTCOME_REASON = "Actualización post-visita desde equipo"

ACTION_CONVERTED = "lead_converted_to_client"
ACTION_POST_VISIT_UPDATED = "lead_post_visit_status_updated"

MSG_INVALID_STAGE = "Resultado post-visita no valido."
MSG_VALUE_REQUIRED = "Indica el importe de la venta en euros."
MSG_VALUE_NEGATIVE = "El importe de la venta no puede ser negativo."
MSG_SERVICE_REQUIRED = "Indica el servicio contratado."
MSG_REASON_REQUIRED = "Indica el motivo del resultado de la visita."


def _parse_amount(value) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


class LeadOutcomeService:
    """
    Registro do resultado comercial pós-visita.

    Valida a entrada, transiciona a etapa (sem caminho degradado) e só então
    grava os campos de conversão e a entrada de auditoria.
    """

    def __init__(self, engine: LeadStageEngine, lead_repo: LeadRepository, audit_repo: AuditLogRepository):
        self.engine = engine
        self.lead_repo = lead_repo
        self.audit_repo = audit_repo

    def record(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str,
        to_stage_key: str,
        actor_type: str,
        actor_id: str | None,
        source: str,
        converted_value_eur=None,
        converted_service_name: str | None = None,
        outcome_reason: str | None = None,
    ) -> LeadEntity:
        if to_stage_key not in ls.POST_VISIT_OUTCOME_STAGES:
            raise OutcomeValidationError(MSG_INVALID_STAGE)

        closed = to_stage_key == ls.CLIENT_CLOSED
        service = (converted_service_name or "").strip() or None
        reason = (outcome_reason or "").strip() or None
        amount = None
        if closed:
            amount = _parse_amount(converted_value_eur)
            if amount is None:
                raise OutcomeValidationError(MSG_VALUE_REQUIRED)
            if amount < 0:
                raise OutcomeValidationError(MSG_VALUE_NEGATIVE)
            if not service:
                raise OutcomeValidationError(MSG_SERVICE_REQUIRED)
        elif not reason:
            raise OutcomeValidationError(MSG_REASON_REQUIRED)

        self.engine.transition(
            clinic_id=clinic_id,
            lead_id=lead_id,
            to_stage_key=to_stage_key,
            reason=OUTCOME_REASON,
            actor_type=actor_type,
            actor_id=actor_id,
            meta={"source": source},
            allow_fallback=False,
        )

        lead = self.lead_repo.save_conversion(
            clinic_id=clinic_id,
            lead_id=lead_id,
            converted_to_client=closed,
            converted_value_eur=amount if closed else None,
            converted_service_name=service if closed else None,
            converted_at=datetime.now(UTC) if closed else None,
            post_visit_outcome_reason=None if closed else reason,
        )

        action = ACTION_CONVERTED if closed else ACTION_POST_VISIT_UPDATED
        self.audit_repo.record(
            clinic_id=clinic_id,
            entity_type="lead",
            entity_id=str(lead_id),
            action=action,
            actor_type=actor_type,
            actor_id=actor_id,
            meta={
                "source": source,
                "actor_id": actor_id,
                "to_stage_key": to_stage_key,
                "converted_value_eur": str(amount) if closed else None,
                "converted_service_name": service if closed else None,
                "post_visit_outcome_reason": None if closed else reason,
            },
        )
        logger.info("lead_outcome.recorded", lead_id=str(lead_id), action=action)
        return lead
