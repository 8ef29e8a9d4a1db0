# =========================================================
# Serializers de saída compatíveis com as *entities*
# (dataclasses do lead_pipeline), não com os modelos Django.
# =========================================================
from rest_framework import serializers


# ───────────────────────────────────────────────
# Funil de leads
# ───────────────────────────────────────────────
class LeadStageSerializer(serializers.Serializer):
    stage_key      = serializers.CharField()
    pipeline_key   = serializers.CharField()
    pipeline_label = serializers.CharField()
    label          = serializers.CharField()
    description    = serializers.CharField()
    pipeline_order = serializers.IntegerField()
    order_index    = serializers.IntegerField()
    is_terminal    = serializers.BooleanField()
    is_active      = serializers.BooleanField()


class LeadSerializer(serializers.Serializer):
    id                          = serializers.UUIDField()
    clinic_id                   = serializers.UUIDField()
    full_name                   = serializers.CharField()
    phone                       = serializers.CharField(allow_null=True)
    treatment                   = serializers.CharField(allow_null=True)
    source                      = serializers.CharField(allow_null=True)
    stage_key                   = serializers.CharField()
    status                      = serializers.CharField()
    last_contact_at             = serializers.DateTimeField(allow_null=True)
    next_action_at              = serializers.DateTimeField(allow_null=True)
    converted_to_client         = serializers.BooleanField()
    converted_value_eur         = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    converted_service_name      = serializers.CharField(allow_null=True)
    converted_at                = serializers.DateTimeField(allow_null=True)
    post_visit_outcome_reason   = serializers.CharField(allow_null=True)
    whatsapp_blocked            = serializers.BooleanField()
    whatsapp_blocked_reason     = serializers.CharField(allow_null=True)
    whatsapp_blocked_at         = serializers.DateTimeField(allow_null=True)
    whatsapp_blocked_by_user_id = serializers.CharField(allow_null=True)
    created_at                  = serializers.DateTimeField(allow_null=True)
    updated_at                  = serializers.DateTimeField(allow_null=True)


class LeadStageHistorySerializer(serializers.Serializer):
    id             = serializers.UUIDField()
    lead_id        = serializers.UUIDField()
    from_stage_key = serializers.CharField(allow_null=True)
    to_stage_key   = serializers.CharField()
    reason         = serializers.CharField(allow_null=True)
    actor_type     = serializers.CharField()
    actor_id       = serializers.CharField(allow_null=True)
    meta           = serializers.DictField()
    created_at     = serializers.DateTimeField(allow_null=True)


class StageTransitionSerializer(serializers.Serializer):
    lead_id        = serializers.CharField()
    from_stage_key = serializers.CharField(allow_null=True)
    to_stage_key   = serializers.CharField()
    fallback       = serializers.BooleanField()


# ───────────────────────────────────────────────
# Agenda
# ───────────────────────────────────────────────
class AppointmentSerializer(serializers.Serializer):
    id                = serializers.UUIDField()
    clinic_id         = serializers.UUIDField()
    lead_id           = serializers.UUIDField(allow_null=True)
    lead_name         = serializers.CharField(allow_null=True)
    lead_phone        = serializers.CharField(allow_null=True)
    title             = serializers.CharField()
    notes             = serializers.CharField(allow_null=True)
    start_at          = serializers.DateTimeField()
    end_at            = serializers.DateTimeField()
    status            = serializers.CharField()
    source_channel    = serializers.CharField()
    created_by        = serializers.CharField()
    external_event_id = serializers.CharField(allow_null=True)
    created_at        = serializers.DateTimeField(allow_null=True)
    updated_at        = serializers.DateTimeField(allow_null=True)


class BusyBlockSerializer(serializers.Serializer):
    id                 = serializers.UUIDField()
    clinic_id          = serializers.UUIDField()
    start_at           = serializers.DateTimeField()
    end_at             = serializers.DateTimeField()
    reason             = serializers.CharField(allow_null=True)
    created_by_user_id = serializers.CharField(allow_null=True)


# ───────────────────────────────────────────────
# Ligações & ações pendentes
# ───────────────────────────────────────────────
class PendingActionSerializer(serializers.Serializer):
    id              = serializers.UUIDField()
    clinic_id       = serializers.UUIDField()
    lead_id         = serializers.UUIDField(allow_null=True)
    action_type     = serializers.CharField()
    due_at          = serializers.DateTimeField()
    status          = serializers.CharField()
    payload         = serializers.DictField()
    dispatched_at   = serializers.DateTimeField(allow_null=True)
    completed_at    = serializers.DateTimeField(allow_null=True)


class CallSerializer(serializers.Serializer):
    id               = serializers.UUIDField()
    external_call_id = serializers.CharField()
    lead_id          = serializers.UUIDField(allow_null=True)
    attempt_no       = serializers.IntegerField()
    status           = serializers.CharField()
    outcome          = serializers.CharField(allow_null=True)
    started_at       = serializers.DateTimeField(allow_null=True)
    ended_at         = serializers.DateTimeField(allow_null=True)
    duration_sec     = serializers.IntegerField(allow_null=True)
    cost_eur         = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)


class CurrentCallSerializer(serializers.Serializer):
    clinic_id               = serializers.UUIDField()
    in_call                 = serializers.BooleanField()
    current_call_external_id = serializers.CharField(allow_null=True)
    current_call_lead_id    = serializers.UUIDField(allow_null=True)
    current_call_started_at = serializers.DateTimeField(allow_null=True)
    updated_at              = serializers.DateTimeField(allow_null=True)
