from lead_pipeline.core.application.commands.call_commands import (
    RegisterCallEndedCommand,
    RegisterCallStartedCommand,
)
from lead_pipeline.core.application.cqrs import CommandHandler, QueryHandler
from lead_pipeline.core.application.queries.call_queries import GetCurrentCallQuery
from lead_pipeline.core.application.services.call_service import CallLifecycleService
from lead_pipeline.core.domain.entities.call_entity import CallEntity
from lead_pipeline.core.domain.entities.current_call_entity import CurrentCallEntity
from lead_pipeline.core.domain.repositories.current_call_repository import CurrentCallRepository


class RegisterCallStartedHandler(CommandHandler[RegisterCallStartedCommand]):
    def __init__(self, call_service: CallLifecycleService):
        self.call_service = call_service

    def handle(self, cmd: RegisterCallStartedCommand) -> CallEntity:
        return self.call_service.register_started(
            clinic_id=cmd.clinic_id,
            external_call_id=cmd.external_call_id,
            lead_id=cmd.lead_id,
            phone=cmd.phone,
            attempt_no=cmd.attempt_no,
            started_at=cmd.started_at,
        )


class RegisterCallEndedHandler(CommandHandler[RegisterCallEndedCommand]):
    def __init__(self, call_service: CallLifecycleService):
        self.call_service = call_service

    def handle(self, cmd: RegisterCallEndedCommand) -> CallEntity:
        return self.call_service.register_ended(
            clinic_id=cmd.clinic_id,
            time_zone=cmd.time_zone,
            external_call_id=cmd.external_call_id,
            lead_id=cmd.lead_id,
            outcome=cmd.outcome,
            duration_sec=cmd.duration_sec,
            ended_at=cmd.ended_at,
            transcript=cmd.transcript,
            summary=cmd.summary,
            extracted=cmd.extracted,
            recording_url=cmd.recording_url,
            cost_eur=cmd.cost_eur,
        )


class GetCurrentCallHandler(QueryHandler[GetCurrentCallQuery, CurrentCallEntity]):
    def __init__(self, current_call_repo: CurrentCallRepository):
        self.current_call_repo = current_call_repo

    def handle(self, q: GetCurrentCallQuery) -> CurrentCallEntity:
        return self.current_call_repo.get(q.clinic_id)
