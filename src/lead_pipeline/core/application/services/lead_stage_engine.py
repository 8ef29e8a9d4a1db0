from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from lead_pipeline.core.application.services.stage_catalog_service import StageCatalogService
from lead_pipeline.core.application.services.stage_policy import RETRY_CALL_ACTION
from lead_pipeline.core.domain import lead_stages as ls
from lead_pipeline.core.domain.entities.lead_stage_entity import LeadStageHistoryEntity
from lead_pipeline.core.domain.events.events import LeadStageChangedEvent
from lead_pipeline.core.domain.events.exceptions import LeadNotFoundError, StageTransitionError
from lead_pipeline.core.domain.repositories.lead_repository import LeadRepository
from lead_pipeline.core.domain.repositories.pending_action_repository import PendingActionRepository
from lead_pipeline.core.domain.repositories.stage_transitioner import StageTransitioner
from lead_pipeline.core.domain.services.event_dispatcher import EventDispatcher

logger = structlog.get_logger(__name__)

ACTOR_STAFF = "staff"
ACTOR_RETELL = "retell_ai"
ACTOR_SYSTEM = "system"

MSG_TRANSITION_FAILED = "No se pudo actualizar la etapa del lead."
MSG_LEAD_NOT_FOUND = "Lead no encontrado."


@dataclass(frozen=True, slots=True)
class StageTransitionOutcome:
    lead_id: str
    from_stage_key: str | None
    to_stage_key: str
    history: LeadStageHistoryEntity | None
    fallback: bool = False


class LeadStageEngine:
    """
    Aplica transições de etapa de um lead.

    Caminho normal: `StageTransitioner` (histórico + lead numa transação).
    Se o procedimento reportar falha, grava `stage_key`/status legado direto
    no lead, sem histórico, para não perder o evento.
    """

    def __init__(  # noqa: PLR0913
        self,
        transitioner: StageTransitioner,
        lead_repo: LeadRepository,
        pending_action_repo: PendingActionRepository,
        catalog_service: StageCatalogService,
        dispatcher: EventDispatcher,
    ):
        self.transitioner = transitioner
        self.lead_repo = lead_repo
        self.pending_action_repo = pending_action_repo
        self.catalog_service = catalog_service
        self.dispatcher = dispatcher

    def transition(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str,
        to_stage_key: str,
        reason: str | None = None,
        actor_type: str = ACTOR_SYSTEM,
        actor_id: str | None = None,
        meta: dict[str, Any] | None = None,
        allow_fallback: bool = True,
    ) -> StageTransitionOutcome:
        clinic_id, lead_id = str(clinic_id), str(lead_id)
        result = self.transitioner.transition(
            clinic_id=clinic_id,
            lead_id=lead_id,
            to_stage_key=to_stage_key,
            reason=reason,
            actor_type=actor_type,
            actor_id=actor_id,
            meta=dict(meta or {}),
        )

        if result.ok:
            outcome = StageTransitionOutcome(
                lead_id=lead_id,
                from_stage_key=result.history.from_stage_key if result.history else None,
                to_stage_key=to_stage_key,
                history=result.history,
            )
        elif not allow_fallback:
            logger.warning("lead_stage.transition_failed", lead_id=lead_id, error=result.error)
            raise StageTransitionError(MSG_TRANSITION_FAILED)
        else:
            outcome = self._fallback(clinic_id, lead_id, to_stage_key, result.error)

        logger.info(
            "lead_stage.transition",
            clinic_id=clinic_id,
            lead_id=lead_id,
            from_stage=outcome.from_stage_key,
            to_stage=to_stage_key,
            actor_type=actor_type,
            fallback=outcome.fallback,
        )
        self._apply_side_effects(clinic_id, lead_id, to_stage_key)
        self.dispatcher.dispatch(
            LeadStageChangedEvent(
                clinic_id=clinic_id,
                lead_id=lead_id,
                from_stage_key=outcome.from_stage_key,
                to_stage_key=to_stage_key,
                actor_type=actor_type,
                fallback=outcome.fallback,
            )
        )
        return outcome

    # ------------------------------------------------------------------ #
    def _fallback(self, clinic_id: str, lead_id: str, to_stage_key: str, error: str | None) -> StageTransitionOutcome:
        logger.warning(
            "lead_stage.fallback",
            clinic_id=clinic_id,
            lead_id=lead_id,
            to_stage=to_stage_key,
            error=error,
        )
        lead = self.lead_repo.find_by_id(clinic_id, lead_id)
        if lead is None or not self.lead_repo.force_stage(clinic_id, lead_id, to_stage_key):
            raise LeadNotFoundError(MSG_LEAD_NOT_FOUND)
        return StageTransitionOutcome(
            lead_id=lead_id,
            from_stage_key=lead.stage_key,
            to_stage_key=to_stage_key,
            history=None,
            fallback=True,
        )

    def _apply_side_effects(self, clinic_id: str, lead_id: str, to_stage_key: str) -> None:
        # visita marcada ou etapa terminal: nenhuma retentativa deve continuar pendente
        if to_stage_key != ls.VISIT_SCHEDULED and not self.catalog_service.load().is_terminal(to_stage_key):
            return
        cancelled = self.pending_action_repo.cancel_for_lead(clinic_id, lead_id, RETRY_CALL_ACTION)
        self.lead_repo.set_next_action(clinic_id, lead_id, None)
        if cancelled:
            logger.info("pending_action.cancelled", lead_id=lead_id, count=cancelled)
