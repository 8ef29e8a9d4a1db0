from django.db import transaction

from lead_pipeline.core.application.commands.lead_commands import (
    RecordLeadOutcomeCommand,
    RegisterLeadCommand,
    SetWhatsappBlockCommand,
    TransitionLeadStageCommand,
)
from lead_pipeline.core.application.cqrs import CommandHandler, PagedResult, QueryHandler
from lead_pipeline.core.application.queries.lead_queries import (
    GetLeadQuery,
    ListLeadsQuery,
    ListLeadStageHistoryQuery,
    ListLeadStagesQuery,
)
from lead_pipeline.core.application.services.lead_outcome_service import LeadOutcomeService
from lead_pipeline.core.application.services.lead_service import MSG_LEAD_NOT_FOUND, LeadService
from lead_pipeline.core.application.services.lead_stage_engine import (
    LeadStageEngine,
    StageTransitionOutcome,
)
from lead_pipeline.core.application.services.stage_catalog_service import (
    StageCatalog,
    StageCatalogService,
)
from lead_pipeline.core.domain.entities.lead_entity import LeadEntity
from lead_pipeline.core.domain.entities.lead_stage_entity import LeadStageHistoryEntity
from lead_pipeline.core.domain.events.exceptions import LeadNotFoundError
from lead_pipeline.core.domain.repositories.lead_repository import LeadRepository
from lead_pipeline.core.domain.repositories.lead_stage_history_repository import (
    LeadStageHistoryRepository,
)


# ╭──────────────────────────────────────────────╮
# │ 1. Comandos                                  │
# ╰──────────────────────────────────────────────╯
class TransitionLeadStageHandler(CommandHandler[TransitionLeadStageCommand]):
    def __init__(self, engine: LeadStageEngine, lead_repo: LeadRepository):
        self.engine = engine
        self.lead_repo = lead_repo

    def handle(self, cmd: TransitionLeadStageCommand) -> StageTransitionOutcome:
        if self.lead_repo.find_by_id(cmd.clinic_id, cmd.lead_id) is None:
            raise LeadNotFoundError(MSG_LEAD_NOT_FOUND)
        return self.engine.transition(
            clinic_id=cmd.clinic_id,
            lead_id=cmd.lead_id,
            to_stage_key=cmd.to_stage_key,
            reason=cmd.reason,
            actor_type=cmd.actor_type,
            actor_id=cmd.actor_id,
            meta=cmd.meta,
        )


class RecordLeadOutcomeHandler(CommandHandler[RecordLeadOutcomeCommand]):
    """Etapa, conversão e auditoria gravadas juntas (ou nada)."""

    def __init__(self, outcome_service: LeadOutcomeService):
        self.outcome_service = outcome_service

    @transaction.atomic
    def handle(self, cmd: RecordLeadOutcomeCommand) -> LeadEntity:
        return self.outcome_service.record(
            clinic_id=cmd.clinic_id,
            lead_id=cmd.lead_id,
            to_stage_key=cmd.to_stage_key,
            actor_type=cmd.actor_type,
            actor_id=cmd.actor_id,
            source=cmd.source,
            converted_value_eur=cmd.converted_value_eur,
            converted_service_name=cmd.converted_service_name,
            outcome_reason=cmd.outcome_reason,
        )


class RegisterLeadHandler(CommandHandler[RegisterLeadCommand]):
    def __init__(self, lead_service: LeadService):
        self.lead_service = lead_service

    def handle(self, cmd: RegisterLeadCommand) -> tuple[LeadEntity, bool]:
        return self.lead_service.register_lead(
            clinic_id=cmd.clinic_id,
            full_name=cmd.full_name,
            phone=cmd.phone,
            lead_id=cmd.lead_id,
            treatment=cmd.treatment,
            source=cmd.source,
        )


class SetWhatsappBlockHandler(CommandHandler[SetWhatsappBlockCommand]):
    def __init__(self, lead_service: LeadService):
        self.lead_service = lead_service

    @transaction.atomic
    def handle(self, cmd: SetWhatsappBlockCommand) -> LeadEntity:
        return self.lead_service.set_whatsapp_block(
            clinic_id=cmd.clinic_id,
            lead_id=cmd.lead_id,
            blocked=cmd.blocked,
            reason=cmd.reason,
            user_id=cmd.user_id,
        )


# ╭──────────────────────────────────────────────╮
# │ 2. Consultas                                 │
# ╰──────────────────────────────────────────────╯
class ListLeadsHandler(QueryHandler[ListLeadsQuery, PagedResult[LeadEntity]]):
    def __init__(self, lead_repo: LeadRepository):
        self.lead_repo = lead_repo

    def handle(self, q: ListLeadsQuery) -> PagedResult[LeadEntity]:
        return self.lead_repo.list(q.filtros, q.page, q.page_size)


class GetLeadHandler(QueryHandler[GetLeadQuery, LeadEntity]):
    def __init__(self, lead_repo: LeadRepository):
        self.lead_repo = lead_repo

    def handle(self, q: GetLeadQuery) -> LeadEntity:
        lead = self.lead_repo.find_by_id(q.clinic_id, q.lead_id)
        if lead is None:
            raise LeadNotFoundError(MSG_LEAD_NOT_FOUND)
        return lead


class ListLeadStageHistoryHandler(QueryHandler[ListLeadStageHistoryQuery, list[LeadStageHistoryEntity]]):
    def __init__(self, lead_repo: LeadRepository, history_repo: LeadStageHistoryRepository):
        self.lead_repo = lead_repo
        self.history_repo = history_repo

    def handle(self, q: ListLeadStageHistoryQuery) -> list[LeadStageHistoryEntity]:
        if self.lead_repo.find_by_id(q.clinic_id, q.lead_id) is None:
            raise LeadNotFoundError(MSG_LEAD_NOT_FOUND)
        return self.history_repo.list_for_lead(q.clinic_id, q.lead_id)


class ListLeadStagesHandler(QueryHandler[ListLeadStagesQuery, StageCatalog]):
    def __init__(self, catalog_service: StageCatalogService):
        self.catalog_service = catalog_service

    def handle(self, q: ListLeadStagesQuery) -> StageCatalog:
        return self.catalog_service.load()
