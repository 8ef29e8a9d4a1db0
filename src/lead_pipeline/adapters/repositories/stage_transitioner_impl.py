from typing import Any

import backoff
import structlog
from django.db import DatabaseError, OperationalError, transaction

from lead_pipeline.core.application.services.stage_catalog_service import StageCatalogService
from lead_pipeline.core.domain.entities.lead_stage_entity import LeadStageHistoryEntity
from lead_pipeline.core.domain.repositories.stage_transitioner import (
    StageTransitioner,
    TransitionResult,
)
from plugins.django_interface.models import Lead as LeadModel
from plugins.django_interface.models import LeadStageHistory as LeadStageHistoryModel

logger = structlog.get_logger(__name__)


class DjangoStageTransitioner(StageTransitioner):
    """
    Transição atômica sobre o ORM.

    A linha do lead é travada (`SELECT ... FOR UPDATE`) durante a transação,
    o que serializa transições concorrentes do mesmo lead no PostgreSQL.
    Conflitos de serialização/deadlock (`OperationalError`) são repetidos
    com backoff exponencial até `max_tries`.
    """

    def __init__(self, catalog_service: StageCatalogService, max_tries: int = 3):
        self.catalog_service = catalog_service
        self._apply_with_retry = backoff.on_exception(
            backoff.expo,
            OperationalError,
            max_tries=max_tries,
            factor=0.05,
            jitter=None,
            on_backoff=lambda details: logger.warning(
                "lead_stage.transition_retry", tries=details["tries"]
            ),
        )(self._apply)

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
        if not self.catalog_service.load().is_known(to_stage_key):
            return TransitionResult(ok=False, error=f"unknown_stage:{to_stage_key}")

        try:
            history = self._apply_with_retry(
                clinic_id=clinic_id,
                lead_id=lead_id,
                to_stage_key=to_stage_key,
                reason=reason,
                actor_type=actor_type,
                actor_id=actor_id,
                meta=meta,
            )
        except LeadModel.DoesNotExist:
            return TransitionResult(ok=False, error="lead_not_found")
        except DatabaseError as exc:
            logger.error("lead_stage.transition_db_error", lead_id=str(lead_id), error=str(exc))
            return TransitionResult(ok=False, error=str(exc))
        return TransitionResult(ok=True, history=history)

    @staticmethod
    def _apply(  # noqa: PLR0913
        *,
        clinic_id: str,
        lead_id: str,
        to_stage_key: str,
        reason: str | None,
        actor_type: str,
        actor_id: str | None,
        meta: dict[str, Any],
    ) -> LeadStageHistoryEntity:
        with transaction.atomic():
            lead = LeadModel.objects.select_for_update().get(id=lead_id, clinic_id=clinic_id)
            hist = LeadStageHistoryModel.objects.create(
                clinic_id=clinic_id,
                lead=lead,
                from_stage_key=lead.stage_key,
                to_stage_key=to_stage_key,
                reason=reason,
                actor_type=actor_type,
                actor_id=str(actor_id) if actor_id is not None else None,
                meta=meta or {},
            )
            lead.stage_key = to_stage_key
            lead.save(update_fields=["stage_key", "updated_at"])
        return LeadStageHistoryEntity.from_model(hist)
