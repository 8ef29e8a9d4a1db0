from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from lead_pipeline.core.domain.entities.pending_action_entity import PendingActionEntity


class PendingActionRepository(ABC):
    @abstractmethod
    def schedule(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str | None,
        action_type: str,
        due_at: datetime,
        idempotency_key: str,
        payload: dict[str, Any] | None = None,
    ) -> tuple[PendingActionEntity, bool]:
        """Upsert por `(clinic, idempotency_key)`: entregas duplicadas
        devolvem a ação existente com `created=False`."""
        ...

    @abstractmethod
    def list_due(self, clinic_id: str, before: datetime) -> list[PendingActionEntity]:
        ...

    @abstractmethod
    def mark_dispatched(self, clinic_id: str, action_id: str) -> bool:
        ...

    @abstractmethod
    def mark_done(self, clinic_id: str, action_id: str) -> PendingActionEntity | None:
        ...

    @abstractmethod
    def cancel_for_lead(self, clinic_id: str, lead_id: str, action_type: str | None = None) -> int:
        ...

    @abstractmethod
    def list(self, filtros: dict[str, Any], page: int, page_size: int):
        """Retorna PagedResult[PendingActionEntity]."""
        ...
