from dataclasses import dataclass
from typing import Any

from lead_pipeline.core.application.cqrs import QueryDTO


@dataclass(frozen=True, slots=True)
class ListPendingActionsQuery(QueryDTO):
    filtros: dict[str, Any]
    page: int = 1
    page_size: int = 50
