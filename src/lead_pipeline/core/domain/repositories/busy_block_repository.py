from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from lead_pipeline.core.domain.entities.busy_block_entity import BusyBlockEntity


class BusyBlockRepository(ABC):
    @abstractmethod
    def find_by_id(self, clinic_id: str, block_id: str) -> BusyBlockEntity | None:
        ...

    @abstractmethod
    def find_overlapping(
        self, clinic_id: str, start_at: datetime, end_at: datetime, exclude_id: str | None = None
    ) -> BusyBlockEntity | None:
        ...

    @abstractmethod
    def create(
        self, *, clinic_id: str, start_at: datetime, end_at: datetime,
        reason: str | None, created_by_user_id: str | None,
    ) -> BusyBlockEntity:
        ...

    @abstractmethod
    def update_range(
        self, *, clinic_id: str, block_id: str, start_at: datetime, end_at: datetime, reason: str | None = None
    ) -> BusyBlockEntity:
        ...

    @abstractmethod
    def delete(self, clinic_id: str, block_id: str) -> bool:
        ...

    @abstractmethod
    def list_range(self, clinic_id: str, start_at: datetime, end_at: datetime) -> list[BusyBlockEntity]:
        ...
