from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any

from lead_pipeline.core.domain.entities.call_entity import CallEntity


class CallRepository(ABC):
    @abstractmethod
    def find_by_external_id(self, clinic_id: str, external_call_id: str) -> CallEntity | None:
        ...

    @abstractmethod
    def count_for_lead(self, clinic_id: str, lead_id: str, exclude_external_id: str | None = None) -> int:
        ...

    @abstractmethod
    def upsert_started(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        external_call_id: str,
        lead_id: str | None,
        phone: str | None,
        attempt_no: int,
        started_at: datetime,
    ) -> tuple[CallEntity, bool]:
        """
        Idempotente pela chave `external_call_id`.
        Linha existente de outra clínica levanta TenantResolutionError.
        """
        ...

    @abstractmethod
    def finalize(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        external_call_id: str,
        lead_id: str | None,
        attempt_no: int,
        ended_at: datetime,
        duration_sec: int | None,
        outcome: str | None,
        transcript: str | None,
        summary: str | None,
        extracted: dict[str, Any] | None,
        recording_url: str | None,
        cost_eur: Decimal | None,
    ) -> CallEntity:
        """Encerra a ligação; cria a linha se o início nunca chegou."""
        ...
