"""
Admin site registry
-------------------
Registra os modelos do funil e da agenda de forma dinâmica.
`LeadStageHistory` é somente leitura (tabela de auditoria).
"""

import structlog
from django.contrib import admin as django_admin

from . import models

logger = structlog.get_logger(__name__)

# ╭──────────────────────────────────────────────╮
# │ Configuração de cada ModelAdmin             │
# ╰──────────────────────────────────────────────╯
MODEL_ADMIN_REGISTRY: dict[type[models.models.Model], dict] = {
    # 1. Clínicas / acesso
    models.Clinic: dict(
        list_display=("name", "time_zone", "created_at"),
        search_fields=("name",),
    ),
    models.ClinicMembership: dict(
        list_display=("user", "clinic", "role", "linked_at"),
        list_filter=("clinic", "role"),
    ),
    # 2. Funil
    models.LeadStage: dict(
        list_display=("stage_key", "pipeline_key", "label", "order_index", "is_terminal", "is_active"),
        list_filter=("pipeline_key", "is_terminal", "is_active"),
        ordering=("pipeline_order", "order_index"),
    ),
    models.Lead: dict(
        list_display=("full_name", "phone", "clinic", "stage_key", "status", "next_action_at"),
        list_filter=("clinic", "status", "stage_key", "whatsapp_blocked"),
        search_fields=("full_name", "phone"),
        readonly_fields=("status",),
    ),
    # 3. Ligações
    models.Call: dict(
        list_display=("external_call_id", "lead", "attempt_no", "status", "outcome", "started_at"),
        list_filter=("clinic", "status", "outcome"),
        search_fields=("external_call_id", "phone"),
    ),
    models.SystemState: dict(
        list_display=("clinic", "current_call_external_id", "current_call_started_at", "updated_at"),
    ),
    models.PendingAction: dict(
        list_display=("action_type", "lead", "due_at", "status", "idempotency_key"),
        list_filter=("clinic", "status", "action_type"),
    ),
    # 4. Agenda
    models.Appointment: dict(
        list_display=("title", "lead_name", "start_at", "status", "source_channel", "clinic"),
        list_filter=("clinic", "status", "source_channel"),
        search_fields=("lead_name", "lead_phone"),
    ),
    models.BusyBlock: dict(
        list_display=("clinic", "start_at", "end_at", "reason"),
        list_filter=("clinic",),
    ),
    models.CalendarEvent: dict(
        list_display=("summary", "start_at", "end_at", "status", "clinic"),
        list_filter=("clinic", "status"),
    ),
    # 5. Auditoria
    models.AuditLog: dict(
        list_display=("entity_type", "entity_id", "action", "actor_type", "created_at"),
        list_filter=("entity_type", "action"),
    ),
}


class LeadStageHistoryAdmin(django_admin.ModelAdmin):
    list_display = ("lead", "from_stage_key", "to_stage_key", "actor_type", "created_at")
    list_filter = ("to_stage_key", "actor_type")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ╭──────────────────────────────────────────────╮
# │ Registro dinâmico                           │
# ╰──────────────────────────────────────────────╯
for model, opts in MODEL_ADMIN_REGISTRY.items():
    admin_class = type(f"{model.__name__}Admin", (django_admin.ModelAdmin,), opts)
    django_admin.site.register(model, admin_class)
    logger.debug("Registered model in admin", model=model.__name__)

django_admin.site.register(models.LeadStageHistory, LeadStageHistoryAdmin)
