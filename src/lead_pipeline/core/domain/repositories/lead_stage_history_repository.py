from abc import ABC, abstractmethod

from lead_pipeline.core.domain.entities.lead_stage_entity import LeadStageHistoryEntity


class LeadStageHistoryRepository(ABC):
    """Somente leitura: linhas são gravadas exclusivamente pelo StageTransitioner."""

    @abstractmethod
    def list_for_lead(self, clinic_id: str, lead_id: str) -> list[LeadStageHistoryEntity]:
        ...
