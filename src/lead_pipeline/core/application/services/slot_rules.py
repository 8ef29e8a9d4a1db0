"""
Regras da agenda da clínica.

Tudo é avaliado no fuso local da clínica (09:00–19:00, seg–sex são regras de
relógio de parede). Entradas sem offset são interpretadas como hora local.
As mensagens de erro são exibidas ao usuário final.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from lead_pipeline.core.domain.events.exceptions import SlotValidationError

DEFAULT_TIME_ZONE = "Europe/Madrid"

SLOT_MINUTES = 30
OPEN_HOUR = 9
CLOSE_HOUR = 19
WORKING_WEEKDAYS = frozenset({0, 1, 2, 3, 4})  # seg..sex

# ─────────────────────────────  Mensagens  ──────────────────────────────
MSG_INVALID_START = "Hora de inicio invalida."
MSG_INVALID_END = "Hora de fin invalida."
MSG_START_OFF_GRID = "La cita debe empezar en punto o y media."
MSG_END_OFF_GRID = "La cita debe terminar en punto o y media."
MSG_DURATION = "Cada cita debe durar 30 minutos."
MSG_CROSS_DAY = "La cita no puede cruzar al dia siguiente."
MSG_WEEKEND = "Solo se puede agendar de lunes a viernes."
MSG_GRID = "Solo se permiten bloques de 30 minutos."
MSG_HOURS = "La agenda solo admite citas entre 09:00 y 19:00."

MSG_BLOCK_INVALID = "Fecha u hora invalida."
MSG_BLOCK_START_OFF_GRID = "El bloqueo debe empezar en punto o y media."
MSG_BLOCK_END_OFF_GRID = "El bloqueo debe terminar en punto o y media."
MSG_BLOCK_MIN_DURATION = "El bloqueo debe durar al menos 30 minutos."
MSG_BLOCK_STEP = "El bloqueo debe ir en tramos de 30 minutos."
MSG_BLOCK_CROSS_DAY = "El bloqueo no puede cruzar al dia siguiente."
MSG_BLOCK_WEEKEND = "Solo se puede bloquear de lunes a viernes."
MSG_BLOCK_HOURS = "Solo se puede bloquear entre 09:00 y 19:00."


@dataclass(frozen=True, slots=True)
class SlotRange:
    """Intervalo validado, sempre em UTC."""
    start_at: datetime
    end_at: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end_at - self.start_at).total_seconds() // 60)

    @property
    def start_iso(self) -> str:
        return _iso_utc(self.start_at)

    @property
    def end_iso(self) -> str:
        return _iso_utc(self.end_at)


def _iso_utc(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def resolve_time_zone(time_zone: str | ZoneInfo | None) -> ZoneInfo:
    if isinstance(time_zone, ZoneInfo):
        return time_zone
    return ZoneInfo(time_zone or DEFAULT_TIME_ZONE)


def parse_instant(value: datetime | str | None, tz: ZoneInfo) -> datetime | None:
    """ISO-8601 ou datetime → datetime aware. Retorna None se inválido."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def _has_sub_minute(value: datetime) -> bool:
    return value.second != 0 or value.microsecond != 0


def _minutes_between(start: datetime, end: datetime) -> float:
    # subtração em UTC; com o mesmo tzinfo o Python ignoraria a mudança de horário
    return (end.astimezone(UTC) - start.astimezone(UTC)).total_seconds() / 60


def _minute_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute


def validate_slot_range(
    start_at: datetime | str | None,
    end_at: datetime | str | None = None,
    time_zone: str | ZoneInfo | None = None,
) -> SlotRange:
    """
    Valida uma cita de exatamente 30 minutos dentro da grade da clínica.
    Sem `end_at`, assume `start_at + 30min`. Levanta SlotValidationError.
    """
    tz = resolve_time_zone(time_zone)
    start = parse_instant(start_at, tz)
    if start is None:
        raise SlotValidationError(MSG_INVALID_START)
    if end_at is None or end_at == "":
        end = start.astimezone(UTC) + timedelta(minutes=SLOT_MINUTES)
    else:
        end = parse_instant(end_at, tz)
        if end is None:
            raise SlotValidationError(MSG_INVALID_END)

    if _has_sub_minute(start):
        raise SlotValidationError(MSG_START_OFF_GRID)
    if _has_sub_minute(end):
        raise SlotValidationError(MSG_END_OFF_GRID)

    if _minutes_between(start, end) != SLOT_MINUTES:
        raise SlotValidationError(MSG_DURATION)

    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    if local_start.date() != local_end.date():
        raise SlotValidationError(MSG_CROSS_DAY)
    if local_start.weekday() not in WORKING_WEEKDAYS:
        raise SlotValidationError(MSG_WEEKEND)

    start_total = _minute_of_day(local_start)
    end_total = _minute_of_day(local_end)
    if start_total % SLOT_MINUTES or end_total % SLOT_MINUTES:
        raise SlotValidationError(MSG_GRID)
    if start_total < OPEN_HOUR * 60 or end_total > CLOSE_HOUR * 60:
        raise SlotValidationError(MSG_HOURS)

    return SlotRange(start_at=start.astimezone(UTC), end_at=end.astimezone(UTC))


def validate_busy_block_range(
    start_at: datetime | str | None,
    end_at: datetime | str | None = None,
    time_zone: str | ZoneInfo | None = None,
) -> SlotRange:
    """
    Mesmas regras da cita, mas a duração pode ser qualquer múltiplo
    positivo de 30 minutos dentro do mesmo dia útil.
    Sem `end_at`, assume `start_at + 30min`.
    """
    tz = resolve_time_zone(time_zone)
    start = parse_instant(start_at, tz)
    if start is None:
        raise SlotValidationError(MSG_BLOCK_INVALID)
    if end_at is None or end_at == "":
        end = start.astimezone(UTC) + timedelta(minutes=SLOT_MINUTES)
    else:
        end = parse_instant(end_at, tz)
        if end is None:
            raise SlotValidationError(MSG_BLOCK_INVALID)

    if _has_sub_minute(start):
        raise SlotValidationError(MSG_BLOCK_START_OFF_GRID)
    if _has_sub_minute(end):
        raise SlotValidationError(MSG_BLOCK_END_OFF_GRID)

    duration = _minutes_between(start, end)
    if duration < SLOT_MINUTES:
        raise SlotValidationError(MSG_BLOCK_MIN_DURATION)
    if duration % SLOT_MINUTES:
        raise SlotValidationError(MSG_BLOCK_STEP)

    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    if local_start.date() != local_end.date():
        raise SlotValidationError(MSG_BLOCK_CROSS_DAY)
    if local_start.weekday() not in WORKING_WEEKDAYS:
        raise SlotValidationError(MSG_BLOCK_WEEKEND)

    start_total = _minute_of_day(local_start)
    end_total = _minute_of_day(local_end)
    if start_total % SLOT_MINUTES:
        raise SlotValidationError(MSG_BLOCK_START_OFF_GRID)
    if end_total % SLOT_MINUTES:
        raise SlotValidationError(MSG_BLOCK_END_OFF_GRID)
    if start_total < OPEN_HOUR * 60 or end_total > CLOSE_HOUR * 60:
        raise SlotValidationError(MSG_BLOCK_HOURS)

    return SlotRange(start_at=start.astimezone(UTC), end_at=end.astimezone(UTC))
