from abc import ABC, abstractmethod
from typing import Any


class AuditLogRepository(ABC):
    @abstractmethod
    def record(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        entity_type: str,
        entity_id: str,
        action: str,
        actor_type: str,
        actor_id: str | None,
        meta: dict[str, Any],
    ) -> None:
        ...
