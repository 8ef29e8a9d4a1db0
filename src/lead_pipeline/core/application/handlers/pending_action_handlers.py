import structlog

from lead_pipeline.core.application.commands.pending_action_commands import (
    DispatchDuePendingActionsCommand,
    MarkPendingActionDoneCommand,
)
from lead_pipeline.core.application.cqrs import CommandHandler, PagedResult, QueryHandler
from lead_pipeline.core.application.queries.pending_action_queries import ListPendingActionsQuery
from lead_pipeline.core.domain.entities.pending_action_entity import PendingActionEntity
from lead_pipeline.core.domain.events.events import PendingActionDueEvent
from lead_pipeline.core.domain.events.exceptions import PendingActionNotFoundError
from lead_pipeline.core.domain.repositories.pending_action_repository import PendingActionRepository

logger = structlog.get_logger(__name__)


class DispatchDuePendingActionsHandler(CommandHandler[DispatchDuePendingActionsCommand]):
    """
    Transforma as ações vencidas em `PendingActionDueEvent`.
    A marcação `pending → dispatched` é condicional, então dois workers
    concorrentes nunca publicam a mesma ação.
    """

    def __init__(self, pending_action_repo: PendingActionRepository):
        self.pending_action_repo = pending_action_repo

    def handle(self, cmd: DispatchDuePendingActionsCommand) -> list[PendingActionDueEvent]:
        events: list[PendingActionDueEvent] = []
        for action in self.pending_action_repo.list_due(cmd.clinic_id, cmd.now):
            if not self.pending_action_repo.mark_dispatched(str(cmd.clinic_id), str(action.id)):
                continue
            events.append(
                PendingActionDueEvent(
                    clinic_id=action.clinic_id,
                    action_id=action.id,
                    lead_id=action.lead_id,
                    action_type=action.action_type,
                    payload=dict(action.payload or {}),
                )
            )
        if events:
            logger.info("pending_action.dispatched", clinic_id=str(cmd.clinic_id), count=len(events))
        return events


class MarkPendingActionDoneHandler(CommandHandler[MarkPendingActionDoneCommand]):
    def __init__(self, pending_action_repo: PendingActionRepository):
        self.pending_action_repo = pending_action_repo

    def handle(self, cmd: MarkPendingActionDoneCommand) -> PendingActionEntity:
        action = self.pending_action_repo.mark_done(cmd.clinic_id, cmd.action_id)
        if action is None:
            raise PendingActionNotFoundError("Accion pendiente no encontrada.")
        return action


class ListPendingActionsHandler(QueryHandler[ListPendingActionsQuery, PagedResult[PendingActionEntity]]):
    def __init__(self, pending_action_repo: PendingActionRepository):
        self.pending_action_repo = pending_action_repo

    def handle(self, q: ListPendingActionsQuery) -> PagedResult[PendingActionEntity]:
        return self.pending_action_repo.list(q.filtros, q.page, q.page_size)
