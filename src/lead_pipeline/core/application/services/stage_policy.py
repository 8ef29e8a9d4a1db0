"""
Regras puras do funil: resultado de chamada → etapa, e agenda de retentativa.
Nenhuma função aqui faz I/O.
"""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from lead_pipeline.core.domain import lead_stages as ls

RETRY_CALL_ACTION = "retry_call"

# antes deste horário (local) a retentativa cai no mesmo dia
RETRY_CUTOFF_HOUR = 14
RETRY_DELAY_EARLY = timedelta(hours=6)
RETRY_DELAY_LATE = timedelta(hours=16)

_FIRST_ATTEMPT = {
    ls.OUTCOME_APPOINTMENT_SCHEDULED: ls.VISIT_SCHEDULED,
    ls.OUTCOME_NOT_INTERESTED: ls.NOT_INTERESTED,
    ls.OUTCOME_NO_RESPONSE: ls.NO_ANSWER_FIRST_CALL,
    ls.OUTCOME_APPOINTMENT_PROPOSED: ls.SECOND_CALL_SCHEDULED,
    ls.OUTCOME_CONTACTED: ls.SECOND_CALL_SCHEDULED,
}

_LATER_ATTEMPT = {
    **_FIRST_ATTEMPT,
    ls.OUTCOME_NO_RESPONSE: ls.NO_ANSWER_SECOND_CALL,
}


def map_call_outcome_to_stage(outcome: str | None, attempt_no: int) -> str:
    """
    Etapa resultante de uma chamada encerrada.

    >>> map_call_outcome_to_stage("no_response", 1)
    'no_answer_first_call'
    >>> map_call_outcome_to_stage(None, 2)
    'second_call_scheduled'
    """
    if attempt_no <= 1:
        return _FIRST_ATTEMPT.get(outcome or "", ls.FIRST_CALL_IN_PROGRESS)
    return _LATER_ATTEMPT.get(outcome or "", ls.SECOND_CALL_SCHEDULED)


def in_progress_stage_for_attempt(attempt_no: int) -> str:
    return ls.FIRST_CALL_IN_PROGRESS if attempt_no <= 1 else ls.SECOND_CALL_IN_PROGRESS


def compute_retry_due_at(reference: datetime, time_zone: str | ZoneInfo = "UTC") -> datetime:
    """
    Próxima retentativa: +6h se a hora local de referência for anterior às 14h,
    senão +16h (empurra para a manhã do dia seguinte). Retorna instante em UTC.
    """
    tz = time_zone if isinstance(time_zone, ZoneInfo) else ZoneInfo(time_zone)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=UTC)
    local_hour = reference.astimezone(tz).hour
    delay = RETRY_DELAY_EARLY if local_hour < RETRY_CUTOFF_HOUR else RETRY_DELAY_LATE
    return (reference + delay).astimezone(UTC)


def retry_idempotency_key(lead_id: str, attempt_no: int) -> str:
    """Chave de dedup da retentativa: `retry_call:<lead>:<próxima tentativa>`."""
    return f"{RETRY_CALL_ACTION}:{lead_id}:{attempt_no + 1}"
