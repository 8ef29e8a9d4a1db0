from dataclasses import dataclass
from typing import Any

from lead_pipeline.core.application.cqrs import QueryDTO


@dataclass(frozen=True, slots=True)
class ListLeadsQuery(QueryDTO):
    """Lista leads com paginação; `filtros` sempre inclui clinic_id."""
    filtros: dict[str, Any]
    page: int = 1
    page_size: int = 50


@dataclass(frozen=True, slots=True)
class GetLeadQuery(QueryDTO):
    clinic_id: str
    lead_id: str


@dataclass(frozen=True, slots=True)
class ListLeadStageHistoryQuery(QueryDTO):
    clinic_id: str
    lead_id: str


@dataclass(frozen=True, slots=True)
class ListLeadStagesQuery(QueryDTO):
    """Catálogo de etapas (com fallback embutido)."""
    pass
