from __future__ import annotations

from dataclasses import dataclass

import structlog

from lead_pipeline.core.domain.entities.lead_stage_entity import LeadStageEntity
from lead_pipeline.core.domain.events.exceptions import CatalogUnavailableError
from lead_pipeline.core.domain.lead_stages import BUILTIN_STAGE_CATALOG
from lead_pipeline.core.domain.repositories.lead_stage_repository import LeadStageCatalogRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StageCatalog:
    stages: tuple[LeadStageEntity, ...]
    degraded: bool = False

    def get(self, stage_key: str) -> LeadStageEntity | None:
        return next((s for s in self.stages if s.stage_key == stage_key), None)

    def is_known(self, stage_key: str) -> bool:
        return self.get(stage_key) is not None

    def is_terminal(self, stage_key: str) -> bool:
        stage = self.get(stage_key)
        return bool(stage and stage.is_terminal)


class StageCatalogService:
    """
    Lê o catálogo de etapas a cada operação (sem cache entre chamadas).
    Tabela inacessível ou vazia → catálogo embutido, marcado como `degraded`.
    """

    def __init__(self, repo: LeadStageCatalogRepository):
        self.repo = repo

    def load(self) -> StageCatalog:
        try:
            stages = self.repo.list_active()
        except CatalogUnavailableError as exc:
            logger.warning("stage_catalog.fallback", reason="unavailable", error=str(exc))
            return StageCatalog(stages=BUILTIN_STAGE_CATALOG, degraded=True)

        if not stages:
            logger.warning("stage_catalog.fallback", reason="empty")
            return StageCatalog(stages=BUILTIN_STAGE_CATALOG, degraded=True)
        return StageCatalog(stages=tuple(stages))
