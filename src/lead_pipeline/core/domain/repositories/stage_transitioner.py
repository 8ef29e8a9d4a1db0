from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from lead_pipeline.core.domain.entities.lead_stage_entity import LeadStageHistoryEntity


@dataclass(frozen=True, slots=True)
class TransitionResult:
    ok: bool
    error: str | None = None
    history: LeadStageHistoryEntity | None = None


class StageTransitioner(ABC):
    """
    Procedimento atômico de transição de etapa.

    Em uma única unidade de trabalho: lê a etapa atual, grava a linha de
    histórico e atualiza `stage_key`/`status`/`updated_at` do lead.
    Ou tudo persiste, ou nada persiste.
    """

    @abstractmethod
    def transition(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str,
        to_stage_key: str,
        reason: str | None,
        actor_type: str,
        actor_id: str | None,
        meta: dict[str, Any],
    ) -> TransitionResult:
        ...
