from collections.abc import Iterable

import structlog
from django.db import DatabaseError, transaction

from lead_pipeline.core.domain.entities.lead_stage_entity import (
    LeadStageEntity,
    LeadStageHistoryEntity,
)
from lead_pipeline.core.domain.events.exceptions import CatalogUnavailableError
from lead_pipeline.core.domain.repositories.lead_stage_history_repository import (
    LeadStageHistoryRepository,
)
from lead_pipeline.core.domain.repositories.lead_stage_repository import LeadStageCatalogRepository
from plugins.django_interface.models import LeadStage as LeadStageModel
from plugins.django_interface.models import LeadStageHistory as LeadStageHistoryModel

logger = structlog.get_logger(__name__)


class LeadStageCatalogRepoImpl(LeadStageCatalogRepository):
    def list_active(self) -> list[LeadStageEntity]:
        try:
            # savepoint: uma falha aqui não invalida a transação do chamador
            with transaction.atomic():
                rows = list(
                    LeadStageModel.objects.filter(is_active=True).order_by("pipeline_order", "order_index")
                )
        except DatabaseError as exc:
            raise CatalogUnavailableError(f"lead_stages indisponível: {exc}") from exc
        return [LeadStageEntity.from_model(r) for r in rows]

    @transaction.atomic
    def upsert_many(self, stages: Iterable[LeadStageEntity]) -> int:
        count = 0
        for stage in stages:
            data = stage.to_dict()
            key = data.pop("stage_key")
            LeadStageModel.objects.update_or_create(stage_key=key, defaults=data)
            count += 1
        logger.info("stage_catalog.upserted", count=count)
        return count


class LeadStageHistoryRepoImpl(LeadStageHistoryRepository):
    def list_for_lead(self, clinic_id: str, lead_id: str) -> list[LeadStageHistoryEntity]:
        qs = LeadStageHistoryModel.objects.filter(clinic_id=clinic_id, lead_id=lead_id).order_by("-created_at")
        return [LeadStageHistoryEntity.from_model(h) for h in qs]
