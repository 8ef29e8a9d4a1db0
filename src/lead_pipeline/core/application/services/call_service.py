from __future__ import annotations

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import structlog

from lead_pipeline.core.application.services.lead_stage_engine import ACTOR_RETELL, LeadStageEngine
from lead_pipeline.core.application.services.stage_policy import (
    RETRY_CALL_ACTION,
    compute_retry_due_at,
    in_progress_stage_for_attempt,
    map_call_outcome_to_stage,
    retry_idempotency_key,
)
from lead_pipeline.core.domain import lead_stages as ls
from lead_pipeline.core.domain.entities.call_entity import CallEntity
from lead_pipeline.core.domain.entities.lead_entity import LeadEntity
from lead_pipeline.core.domain.repositories.call_repository import CallRepository
from lead_pipeline.core.domain.repositories.current_call_repository import CurrentCallRepository
from lead_pipeline.core.domain.repositories.lead_repository import LeadRepository
from lead_pipeline.core.domain.repositories.pending_action_repository import PendingActionRepository

logger = structlog.get_logger(__name__)

CALL_STATUS_ENDED = "ended"
CENTS = Decimal("0.01")


def compute_call_cost(duration_sec: int | None, per_minute_eur: Decimal) -> Decimal | None:
    if duration_sec is None:
        return None
    return (Decimal(duration_sec) / 60 * per_minute_eur).quantize(CENTS, rounding=ROUND_HALF_UP)


class CallLifecycleService:
    """
    Início/fim das ligações do agente de voz e seus efeitos no funil:
    etapa do lead, último contato e retentativa agendada.
    """

    def __init__(  # noqa: PLR0913
        self,
        call_repo: CallRepository,
        lead_repo: LeadRepository,
        pending_action_repo: PendingActionRepository,
        current_call_repo: CurrentCallRepository,
        engine: LeadStageEngine,
        cost_per_minute_eur: Decimal = Decimal("0.10"),
    ):
        self.call_repo = call_repo
        self.lead_repo = lead_repo
        self.pending_action_repo = pending_action_repo
        self.current_call_repo = current_call_repo
        self.engine = engine
        self.cost_per_minute_eur = Decimal(cost_per_minute_eur)

    # ------------------------------------------------------------------ #
    def register_started(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        external_call_id: str,
        lead_id: str | None = None,
        phone: str | None = None,
        attempt_no: int | None = None,
        started_at: datetime | None = None,
    ) -> CallEntity:
        started_at = started_at or datetime.now(UTC)
        lead = self._resolve_lead(clinic_id, lead_id, external_call_id)
        existing = self.call_repo.find_by_external_id(clinic_id, external_call_id)
        attempt = attempt_no or self._attempt_for(clinic_id, lead, existing, external_call_id)

        call, created = self.call_repo.upsert_started(
            clinic_id=clinic_id,
            external_call_id=external_call_id,
            lead_id=str(lead.id) if lead else None,
            phone=phone or (lead.phone if lead else None),
            attempt_no=attempt,
            started_at=started_at,
        )
        self.current_call_repo.set_current(
            clinic_id, external_call_id, str(lead.id) if lead else None, started_at
        )
        logger.info("call.started", call_id=external_call_id, attempt_no=attempt, created=created)

        if lead and created:
            self.engine.transition(
                clinic_id=clinic_id,
                lead_id=str(lead.id),
                to_stage_key=in_progress_stage_for_attempt(attempt),
                reason="Llamada iniciada",
                actor_type=ACTOR_RETELL,
                actor_id=external_call_id,
                meta={"call_id": external_call_id, "attempt_no": attempt},
            )
        return call

    def register_ended(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        time_zone: str,
        external_call_id: str,
        lead_id: str | None = None,
        outcome: str | None = None,
        duration_sec: int | None = None,
        ended_at: datetime | None = None,
        transcript: str | None = None,
        summary: str | None = None,
        extracted: dict[str, Any] | None = None,
        recording_url: str | None = None,
        cost_eur: Decimal | None = None,
    ) -> CallEntity:
        ended_at = ended_at or datetime.now(UTC)
        existing = self.call_repo.find_by_external_id(clinic_id, external_call_id)
        lead = self._resolve_lead(
            clinic_id, lead_id or (existing.lead_id if existing else None), external_call_id
        )
        already_ended = bool(existing and existing.status == CALL_STATUS_ENDED)
        attempt = existing.attempt_no if existing else self._attempt_for(clinic_id, lead, None, external_call_id)

        if outcome and outcome not in ls.CALL_OUTCOMES:
            logger.warning("call.unknown_outcome", call_id=external_call_id, outcome=outcome)

        call = self.call_repo.finalize(
            clinic_id=clinic_id,
            external_call_id=external_call_id,
            lead_id=str(lead.id) if lead else None,
            attempt_no=attempt,
            ended_at=ended_at,
            duration_sec=duration_sec,
            outcome=outcome,
            transcript=transcript,
            summary=summary,
            extracted=extracted,
            recording_url=recording_url,
            cost_eur=cost_eur if cost_eur is not None else compute_call_cost(duration_sec, self.cost_per_minute_eur),
        )
        self.current_call_repo.clear(clinic_id, external_call_id)
        logger.info("call.ended", call_id=external_call_id, outcome=outcome, attempt_no=attempt)

        if lead is None:
            return call
        if already_ended:
            logger.info("call.duplicate_end", call_id=external_call_id)
            return call

        self.engine.transition(
            clinic_id=clinic_id,
            lead_id=str(lead.id),
            to_stage_key=map_call_outcome_to_stage(outcome, attempt),
            reason=f"Llamada finalizada: {outcome or 'sin resultado'}",
            actor_type=ACTOR_RETELL,
            actor_id=external_call_id,
            meta={"call_id": external_call_id, "outcome": outcome, "attempt_no": attempt},
        )
        self.lead_repo.touch_contact(clinic_id, str(lead.id), ended_at)

        if outcome == ls.OUTCOME_NO_RESPONSE and attempt <= 1:
            self._schedule_retry(clinic_id, lead, attempt, ended_at, time_zone, external_call_id)
        return call

    # ------------------------------------------------------------------ #
    def _schedule_retry(  # noqa: PLR0913
        self, clinic_id: str, lead: LeadEntity, attempt: int, ended_at: datetime, time_zone: str, call_id: str
    ) -> None:
        due_at = compute_retry_due_at(ended_at, time_zone)
        action, created = self.pending_action_repo.schedule(
            clinic_id=clinic_id,
            lead_id=str(lead.id),
            action_type=RETRY_CALL_ACTION,
            due_at=due_at,
            idempotency_key=retry_idempotency_key(str(lead.id), attempt),
            payload={"attempt_no": attempt + 1, "call_id": call_id, "phone": lead.phone},
        )
        if created:
            self.lead_repo.set_next_action(clinic_id, str(lead.id), action.due_at)
        logger.info("call.retry_scheduled", lead_id=str(lead.id), due_at=action.due_at.isoformat(), created=created)

    def _resolve_lead(self, clinic_id: str, lead_id, call_id: str) -> LeadEntity | None:
        if not lead_id:
            return None
        lead = self.lead_repo.find_by_id(clinic_id, str(lead_id))
        if lead is None:
            logger.warning("call.unknown_lead", call_id=call_id, lead_id=str(lead_id))
        return lead

    def _attempt_for(self, clinic_id: str, lead: LeadEntity | None, existing: CallEntity | None, call_id: str) -> int:
        if existing:
            return existing.attempt_no
        if lead is None:
            return 1
        return self.call_repo.count_for_lead(clinic_id, str(lead.id), exclude_external_id=call_id) + 1
