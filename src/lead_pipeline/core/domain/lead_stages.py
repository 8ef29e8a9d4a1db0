"""
Catálogo de etapas do funil de leads, status legados e resultados de chamada.

`BUILTIN_STAGE_CATALOG` só é usado em modo degradado, quando a tabela
`lead_stages` está inacessível ou vazia.
"""
from __future__ import annotations

from lead_pipeline.core.domain.entities.lead_stage_entity import LeadStageEntity

# ───────────────────────────────────────────────
# Pipelines
# ───────────────────────────────────────────────
PIPELINE_CALLS = "calls_ai"
PIPELINE_WHATSAPP = "whatsapp_ai"
PIPELINE_CLOSED = "closed"

PIPELINE_LABELS = {
    PIPELINE_CALLS: "Agentes de Llamada",
    PIPELINE_WHATSAPP: "Agentes de WhatsApp",
    PIPELINE_CLOSED: "Cerrados",
}

# ───────────────────────────────────────────────
# Etapas (stage_key)
# ───────────────────────────────────────────────
NEW_LEAD = "new_lead"
FIRST_CALL_IN_PROGRESS = "first_call_in_progress"
NO_ANSWER_FIRST_CALL = "no_answer_first_call"
SECOND_CALL_SCHEDULED = "second_call_scheduled"
SECOND_CALL_IN_PROGRESS = "second_call_in_progress"
NO_ANSWER_SECOND_CALL = "no_answer_second_call"
CONTACTING_WHATSAPP = "contacting_whatsapp"
WHATSAPP_CONVERSATION_ACTIVE = "whatsapp_conversation_active"
WHATSAPP_FOLLOWUP_PENDING = "whatsapp_followup_pending"
WHATSAPP_FAILED_TEAM_REVIEW = "whatsapp_failed_team_review"
VISIT_SCHEDULED = "visit_scheduled"
POST_VISIT_PENDING_DECISION = "post_visit_pending_decision"
POST_VISIT_FOLLOW_UP = "post_visit_follow_up"
POST_VISIT_NOT_CLOSED = "post_visit_not_closed"
CLIENT_CLOSED = "client_closed"
NOT_INTERESTED = "not_interested"
DISCARDED = "discarded"

# etapas aceitas no registro de resultado pós-visita
POST_VISIT_OUTCOME_STAGES = frozenset({
    CLIENT_CLOSED,
    POST_VISIT_PENDING_DECISION,
    POST_VISIT_FOLLOW_UP,
    POST_VISIT_NOT_CLOSED,
})

# ───────────────────────────────────────────────
# Status legado (derivado, nunca gravado à parte)
# ───────────────────────────────────────────────
STATUS_NEW = "new"
STATUS_WHATSAPP_SENT = "whatsapp_sent"
STATUS_CALL_DONE = "call_done"
STATUS_CONTACTED = "contacted"
STATUS_VISIT_SCHEDULED = "visit_scheduled"
STATUS_NO_RESPONSE = "no_response"
STATUS_NOT_INTERESTED = "not_interested"

LEGACY_STATUS_LABELS = {
    STATUS_NEW: "Nuevo lead",
    STATUS_WHATSAPP_SENT: "WhatsApp enviado",
    STATUS_CALL_DONE: "Llamada realizada",
    STATUS_CONTACTED: "Contactado",
    STATUS_VISIT_SCHEDULED: "Visita agendada",
    STATUS_NO_RESPONSE: "No responde",
    STATUS_NOT_INTERESTED: "No interesado",
}

LEGACY_STATUS_FROM_STAGE: dict[str, str] = {
    NEW_LEAD: STATUS_NEW,
    FIRST_CALL_IN_PROGRESS: STATUS_CALL_DONE,
    NO_ANSWER_FIRST_CALL: STATUS_NO_RESPONSE,
    SECOND_CALL_SCHEDULED: STATUS_NO_RESPONSE,
    SECOND_CALL_IN_PROGRESS: STATUS_NO_RESPONSE,
    NO_ANSWER_SECOND_CALL: STATUS_NO_RESPONSE,
    CONTACTING_WHATSAPP: STATUS_WHATSAPP_SENT,
    WHATSAPP_CONVERSATION_ACTIVE: STATUS_CONTACTED,
    WHATSAPP_FOLLOWUP_PENDING: STATUS_WHATSAPP_SENT,
    WHATSAPP_FAILED_TEAM_REVIEW: STATUS_NO_RESPONSE,
    VISIT_SCHEDULED: STATUS_VISIT_SCHEDULED,
    POST_VISIT_PENDING_DECISION: STATUS_CONTACTED,
    POST_VISIT_FOLLOW_UP: STATUS_CONTACTED,
    POST_VISIT_NOT_CLOSED: STATUS_NOT_INTERESTED,
    CLIENT_CLOSED: STATUS_VISIT_SCHEDULED,
    NOT_INTERESTED: STATUS_NOT_INTERESTED,
    DISCARDED: STATUS_NOT_INTERESTED,
}

DEFAULT_LEGACY_STATUS = STATUS_CALL_DONE


def legacy_status_for(stage_key: str | None) -> str:
    """Status legado correspondente à etapa; etapas desconhecidas caem em `call_done`."""
    return LEGACY_STATUS_FROM_STAGE.get(stage_key or "", DEFAULT_LEGACY_STATUS)


# ───────────────────────────────────────────────
# Resultados de chamada
# ───────────────────────────────────────────────
OUTCOME_CONTACTED = "contacted"
OUTCOME_NO_RESPONSE = "no_response"
OUTCOME_NOT_INTERESTED = "not_interested"
OUTCOME_APPOINTMENT_PROPOSED = "appointment_proposed"
OUTCOME_APPOINTMENT_SCHEDULED = "appointment_scheduled"

CALL_OUTCOMES = frozenset({
    OUTCOME_CONTACTED,
    OUTCOME_NO_RESPONSE,
    OUTCOME_NOT_INTERESTED,
    OUTCOME_APPOINTMENT_PROPOSED,
    OUTCOME_APPOINTMENT_SCHEDULED,
})

# ───────────────────────────────────────────────
# Catálogo embutido (modo degradado)
# ───────────────────────────────────────────────
_CATALOG_ROWS: tuple[tuple[str, str, str, str, bool], ...] = (
    # (pipeline, stage_key, label, descrição, terminal)
    (PIPELINE_CALLS, NEW_LEAD, "Nuevo lead", "Lead entrante sin contacto", False),
    (PIPELINE_CALLS, FIRST_CALL_IN_PROGRESS, "Primera llamada en curso", "Primer intento de llamada en curso", False),
    (PIPELINE_CALLS, NO_ANSWER_FIRST_CALL, "Sin respuesta (1ª llamada)", "No respondió al primer intento", False),
    (PIPELINE_CALLS, SECOND_CALL_SCHEDULED, "Segunda llamada programada", "Segunda llamada pendiente en otra franja", False),
    (PIPELINE_CALLS, SECOND_CALL_IN_PROGRESS, "Segunda llamada en curso", "Segundo intento de llamada en curso", False),
    (PIPELINE_CALLS, NO_ANSWER_SECOND_CALL, "Sin respuesta (2ª llamada)", "Pasa a canal WhatsApp", False),
    (PIPELINE_WHATSAPP, CONTACTING_WHATSAPP, "Contactando por WhatsApp", "Primer mensaje WhatsApp enviado", False),
    (PIPELINE_WHATSAPP, WHATSAPP_CONVERSATION_ACTIVE, "Conversación activa", "Conversación activa para cierre", False),
    (PIPELINE_WHATSAPP, WHATSAPP_FOLLOWUP_PENDING, "Seguimiento pendiente", "Esperando respuesta del lead", False),
    (PIPELINE_WHATSAPP, WHATSAPP_FAILED_TEAM_REVIEW, "Revisión del equipo", "Revisión manual por el equipo", False),
    (PIPELINE_CLOSED, VISIT_SCHEDULED, "Visita agendada", "Cita cerrada", False),
    (PIPELINE_CLOSED, POST_VISIT_PENDING_DECISION, "Pendiente de decisión", "Visitó la clínica y está valorando la propuesta", False),
    (PIPELINE_CLOSED, POST_VISIT_FOLLOW_UP, "Seguimiento post-visita", "Hace falta seguimiento comercial tras la visita", False),
    (PIPELINE_CLOSED, POST_VISIT_NOT_CLOSED, "Visita sin cierre", "Tuvo visita, pero no se cerró la venta", True),
    (PIPELINE_CLOSED, CLIENT_CLOSED, "Cliente cerrado", "Cliente convertido con venta cerrada", True),
    (PIPELINE_CLOSED, NOT_INTERESTED, "No interesado", "Lead no interesado", True),
    (PIPELINE_CLOSED, DISCARDED, "Descartado", "Cierre interno", True),
)

_PIPELINE_ORDER = {PIPELINE_CALLS: 1, PIPELINE_WHATSAPP: 2, PIPELINE_CLOSED: 3}


def _build_catalog() -> tuple[LeadStageEntity, ...]:
    position: dict[str, int] = {}
    rows = []
    for pipeline, key, label, description, terminal in _CATALOG_ROWS:
        position[pipeline] = position.get(pipeline, 0) + 1
        rows.append(
            LeadStageEntity(
                stage_key=key,
                pipeline_key=pipeline,
                pipeline_label=PIPELINE_LABELS[pipeline],
                label=label,
                description=description,
                pipeline_order=_PIPELINE_ORDER[pipeline],
                order_index=position[pipeline],
                is_terminal=terminal,
            )
        )
    return tuple(rows)


BUILTIN_STAGE_CATALOG: tuple[LeadStageEntity, ...] = _build_catalog()
