from dataclasses import dataclass

from lead_pipeline.core.application.cqrs import QueryDTO


@dataclass(frozen=True, slots=True)
class GetCurrentCallQuery(QueryDTO):
    clinic_id: str
