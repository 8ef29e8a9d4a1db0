from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any

from lead_pipeline.core.domain.entities.lead_entity import LeadEntity


class LeadRepository(ABC):
    """
    Porta de persistência de leads.

    `stage_key`/`status` só mudam via `StageTransitioner` ou via
    `force_stage` (caminho degradado); nenhum outro método os altera.
    """

    @abstractmethod
    def find_by_id(self, clinic_id: str, lead_id: str) -> LeadEntity | None:
        ...

    @abstractmethod
    def find_by_phone(self, clinic_id: str, phone: str) -> LeadEntity | None:
        ...

    @abstractmethod
    def upsert(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        full_name: str,
        phone: str | None,
        lead_id: str | None = None,
        treatment: str | None = None,
        source: str | None = None,
    ) -> tuple[LeadEntity, bool]:
        """Cria ou atualiza a identidade do lead por `id` ou `(clinic, phone)`.
        Retorna `(lead, created)`."""
        ...

    @abstractmethod
    def force_stage(self, clinic_id: str, lead_id: str, stage_key: str) -> bool:
        """Grava etapa + status legado sem histórico. Retorna False se o lead não existe."""
        ...

    @abstractmethod
    def touch_contact(self, clinic_id: str, lead_id: str, at: datetime) -> None:
        ...

    @abstractmethod
    def set_next_action(self, clinic_id: str, lead_id: str, at: datetime | None) -> None:
        ...

    @abstractmethod
    def save_conversion(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str,
        converted_to_client: bool,
        converted_value_eur: Decimal | None,
        converted_service_name: str | None,
        converted_at: datetime | None,
        post_visit_outcome_reason: str | None,
    ) -> LeadEntity:
        ...

    @abstractmethod
    def set_whatsapp_block(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str,
        blocked: bool,
        reason: str | None,
        user_id: str | None,
        at: datetime | None,
    ) -> LeadEntity:
        ...

    @abstractmethod
    def list(self, filtros: dict[str, Any], page: int, page_size: int):
        """Retorna PagedResult[LeadEntity] filtrado e paginado."""
        ...
