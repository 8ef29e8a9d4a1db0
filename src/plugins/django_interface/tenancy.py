"""
Resolução da clínica (tenant) de cada requisição.

- Webhooks: `clinic_id` do payload → `DEFAULT_CLINIC_ID` → erro.
- Equipe:   clínica do vínculo do usuário autenticado.
A clínica precisa existir; o fuso dela acompanha o contexto.
"""
from __future__ import annotations

from dataclasses import dataclass

import structlog
from django.conf import settings

from lead_pipeline.core.domain.events.exceptions import TenantResolutionError

logger = structlog.get_logger(__name__)

MSG_CLINIC_REQUIRED = "clinic_id es obligatorio."
MSG_CLINIC_NOT_FOUND = "Clinica no encontrada."


@dataclass(frozen=True, slots=True)
class TenantContext:
    clinic_id: str
    time_zone: str


def _load(clinic_id: str) -> TenantContext:
    from lead_pipeline.adapters.config.composition_root import container

    clinic = container.clinic_repo().find_by_id(str(clinic_id))
    if clinic is None:
        logger.warning("tenant.clinic_not_found", clinic_id=str(clinic_id))
        raise TenantResolutionError(MSG_CLINIC_NOT_FOUND)
    return TenantContext(
        clinic_id=str(clinic.id),
        time_zone=clinic.time_zone or settings.CLINIC_TIMEZONE,
    )


def resolve_webhook_tenant(payload_clinic_id) -> TenantContext:
    clinic_id = payload_clinic_id or settings.DEFAULT_CLINIC_ID or None
    if not clinic_id:
        logger.warning("tenant.unresolved")
        raise TenantResolutionError(MSG_CLINIC_REQUIRED)
    if not payload_clinic_id:
        logger.debug("tenant.default_clinic", clinic_id=str(clinic_id))
    return _load(str(clinic_id))


def resolve_staff_tenant(user) -> TenantContext:
    membership = getattr(user, "clinic_membership", None)
    if membership is None:
        raise TenantResolutionError(MSG_CLINIC_REQUIRED)
    return _load(str(membership.clinic_id))
