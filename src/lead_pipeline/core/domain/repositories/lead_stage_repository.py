from abc import ABC, abstractmethod
from collections.abc import Iterable

from lead_pipeline.core.domain.entities.lead_stage_entity import LeadStageEntity


class LeadStageCatalogRepository(ABC):
    @abstractmethod
    def list_active(self) -> list[LeadStageEntity]:
        """Etapas ativas ordenadas por pipeline/posição.
        Levanta CatalogUnavailableError se a tabela estiver inacessível."""
        ...

    @abstractmethod
    def upsert_many(self, stages: Iterable[LeadStageEntity]) -> int:
        ...
