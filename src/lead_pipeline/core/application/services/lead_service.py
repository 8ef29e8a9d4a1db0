from __future__ import annotations

from datetime import UTC, datetime

import structlog

from lead_pipeline.adapters.utils.phone_utils import normalize_phone
from lead_pipeline.core.domain.entities.lead_entity import LeadEntity
from lead_pipeline.core.domain.events.exceptions import (
    BusinessValidationError,
    InvalidPhoneError,
    LeadNotFoundError,
)
from lead_pipeline.core.domain.repositories.audit_log_repository import AuditLogRepository
from lead_pipeline.core.domain.repositories.lead_repository import LeadRepository

logger = structlog.get_logger(__name__)

DEFAULT_SOURCE = "meta"
DEFAULT_BLOCK_REASON = "Bloqueado manualmente desde el panel"

MSG_NAME_REQUIRED = "full_name es obligatorio."
MSG_PHONE_REQUIRED = "phone es obligatorio cuando no se envia id."
MSG_INVALID_PHONE = "Telefono invalido: debe tener 9 digitos."
MSG_LEAD_NOT_FOUND = "Lead no encontrado."


class LeadService:
    """Identidade do lead (upsert por telefone) e opt-out de WhatsApp."""

    def __init__(
        self,
        lead_repo: LeadRepository,
        audit_repo: AuditLogRepository,
        phone_region: str = "ES",
        phone_digits: int = 9,
    ):
        self.lead_repo = lead_repo
        self.audit_repo = audit_repo
        self.phone_region = phone_region
        self.phone_digits = phone_digits

    def normalize_phone(self, raw: str | None) -> str:
        phone = normalize_phone(raw, self.phone_region, self.phone_digits)
        if phone is None:
            raise InvalidPhoneError(MSG_INVALID_PHONE)
        return phone

    def register_lead(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        full_name: str | None,
        phone: str | None,
        lead_id: str | None = None,
        treatment: str | None = None,
        source: str | None = None,
    ) -> tuple[LeadEntity, bool]:
        """
        Upsert idempotente: por `id` quando informado, senão por `(clinic, phone)`.
        Um lead novo nasce em `new_lead`; um existente só tem a identidade atualizada.
        """
        full_name = (full_name or "").strip()
        if not full_name:
            raise BusinessValidationError(MSG_NAME_REQUIRED)
        if not lead_id and not phone:
            raise BusinessValidationError(MSG_PHONE_REQUIRED)
        normalized = self.normalize_phone(phone) if phone else None

        lead, created = self.lead_repo.upsert(
            clinic_id=clinic_id,
            lead_id=lead_id,
            full_name=full_name,
            phone=normalized,
            treatment=treatment,
            source=source or DEFAULT_SOURCE,
        )
        logger.info("lead.upserted", clinic_id=str(clinic_id), lead_id=str(lead.id), created=created)
        return lead, created

    def set_whatsapp_block(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str,
        blocked: bool,
        reason: str | None = None,
        user_id: str | None = None,
    ) -> LeadEntity:
        if self.lead_repo.find_by_id(clinic_id, lead_id) is None:
            raise LeadNotFoundError(MSG_LEAD_NOT_FOUND)

        reason = ((reason or "").strip() or DEFAULT_BLOCK_REASON) if blocked else None
        lead = self.lead_repo.set_whatsapp_block(
            clinic_id=clinic_id,
            lead_id=lead_id,
            blocked=blocked,
            reason=reason,
            user_id=user_id if blocked else None,
            at=datetime.now(UTC) if blocked else None,
        )
        self.audit_repo.record(
            clinic_id=clinic_id,
            entity_type="lead",
            entity_id=str(lead_id),
            action="whatsapp_blocked" if blocked else "whatsapp_unblocked",
            actor_type="staff",
            actor_id=user_id,
            meta={"reason": reason},
        )
        logger.info("lead.whatsapp_block", lead_id=str(lead_id), blocked=blocked)
        return lead
