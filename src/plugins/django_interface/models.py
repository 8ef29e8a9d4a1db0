"""
Dominio → ORM do painel da clínica.

⚑ IDs UUID em todas as tabelas de negócio
⚑ `leads.status` é sempre derivado de `stage_key` (nunca gravado à parte)
⚑ `lead_stage_history` é somente inserção
⚑ Unicidade parcial em `appointments` impede duas citas ativas no mesmo início
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError, models
from django.db.models import Index, Q, UniqueConstraint

from lead_pipeline.core.domain import lead_stages as ls


def default_clinic_time_zone() -> str:
    return getattr(settings, "CLINIC_TIMEZONE", "Europe/Madrid")


# ╭──────────────────────────────────────────────╮
# │ 1. Clínicas / Acesso                         │
# ╰──────────────────────────────────────────────╯
class Clinic(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    time_zone = models.CharField(max_length=64, default=default_clinic_time_zone)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "clinics"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class ClinicMembership(models.Model):
    """Vínculo usuário da equipe → clínica (um usuário atende uma clínica)."""
    class Role(models.TextChoices):
        OWNER = "owner", "Propietario"
        STAFF = "staff", "Equipo"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="clinic_membership"
    )
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STAFF)
    linked_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "clinic_memberships"
        indexes = [Index(fields=["clinic"], name="membership_clinic_idx")]

    def __str__(self) -> str:
        return f"{self.user} ⇄ {self.clinic}"


# ╭──────────────────────────────────────────────╮
# │ 2. Funil de leads                            │
# ╰──────────────────────────────────────────────╯
class LeadStage(models.Model):
    """Catálogo de etapas (dado de referência)."""
    stage_key = models.CharField(max_length=64, primary_key=True)
    pipeline_key = models.CharField(max_length=32)
    pipeline_label = models.CharField(max_length=100)
    label = models.CharField(max_length=100)
    description = models.CharField(max_length=255, blank=True, default="")
    pipeline_order = models.PositiveSmallIntegerField(default=1)
    order_index = models.PositiveSmallIntegerField(default=1)
    is_terminal = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        db_table = "lead_stages"
        ordering = ["pipeline_order", "order_index"]

    def __str__(self) -> str:
        return f"{self.pipeline_key}/{self.stage_key}"


class Lead(models.Model):
    class Status(models.TextChoices):
        NEW = ls.STATUS_NEW, "Nuevo lead"
        WHATSAPP_SENT = ls.STATUS_WHATSAPP_SENT, "WhatsApp enviado"
        CALL_DONE = ls.STATUS_CALL_DONE, "Llamada realizada"
        CONTACTED = ls.STATUS_CONTACTED, "Contactado"
        VISIT_SCHEDULED = ls.STATUS_VISIT_SCHEDULED, "Visita agendada"
        NO_RESPONSE = ls.STATUS_NO_RESPONSE, "No responde"
        NOT_INTERESTED = ls.STATUS_NOT_INTERESTED, "No interesado"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="leads")
    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, blank=True, null=True)
    # sem FK: o caminho degradado pode gravar etapas fora do catálogo
    stage_key = models.CharField(max_length=64, default=ls.NEW_LEAD, db_index=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.NEW, editable=False
    )
    treatment = models.CharField(max_length=255, blank=True, null=True)
    source = models.CharField(max_length=50, default="meta")
    last_contact_at = models.DateTimeField(blank=True, null=True)
    next_action_at = models.DateTimeField(blank=True, null=True, db_index=True)

    converted_to_client = models.BooleanField(default=False)
    converted_value_eur = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    converted_service_name = models.CharField(max_length=255, blank=True, null=True)
    converted_at = models.DateTimeField(blank=True, null=True)
    post_visit_outcome_reason = models.TextField(blank=True, null=True)

    whatsapp_blocked = models.BooleanField(default=False)
    whatsapp_blocked_reason = models.CharField(max_length=255, blank=True, null=True)
    whatsapp_blocked_at = models.DateTimeField(blank=True, null=True)
    whatsapp_blocked_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="+",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "leads"
        ordering = ["-created_at"]
        constraints = [
            UniqueConstraint(fields=["clinic", "phone"], name="uq_lead_clinic_phone"),
        ]
        indexes = [
            Index(fields=["clinic", "stage_key"], name="lead_clinic_stage_idx"),
            Index(fields=["clinic", "created_at"], name="lead_clinic_created_idx"),
        ]

    def save(self, *args, **kwargs):
        self.status = ls.legacy_status_for(self.stage_key)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "stage_key" in update_fields:
            kwargs["update_fields"] = {*update_fields, "status"}
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.full_name} [{self.stage_key}]"


class LeadStageHistoryQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise IntegrityError("lead_stage_history é somente inserção")

    def delete(self):
        # exclusão em cascata do lead usa o Collector, não passa por aqui
        raise IntegrityError("lead_stage_history é somente inserção")


class LeadStageHistory(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="+")
    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name="stage_history")
    from_stage_key = models.CharField(max_length=64, blank=True, null=True)
    to_stage_key = models.CharField(max_length=64)
    reason = models.TextField(blank=True, null=True)
    actor_type = models.CharField(max_length=20)
    actor_id = models.CharField(max_length=128, blank=True, null=True)
    meta = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = LeadStageHistoryQuerySet.as_manager()

    class Meta:
        db_table = "lead_stage_history"
        ordering = ["-created_at"]
        indexes = [Index(fields=["lead", "created_at"], name="history_lead_created_idx")]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise IntegrityError("lead_stage_history é somente inserção")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise IntegrityError("lead_stage_history é somente inserção")

    def __str__(self) -> str:
        return f"{self.lead_id}: {self.from_stage_key} → {self.to_stage_key}"


# ╭──────────────────────────────────────────────╮
# │ 3. Ligações do agente de voz                 │
# ╰──────────────────────────────────────────────╯
class Call(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "En curso"
        ENDED = "ended", "Finalizada"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="calls")
    external_call_id = models.CharField(max_length=128, unique=True)
    lead = models.ForeignKey(
        Lead, on_delete=models.SET_NULL, blank=True, null=True, related_name="calls"
    )
    phone = models.CharField(max_length=20, blank=True, null=True)
    attempt_no = models.PositiveSmallIntegerField(default=1)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)
    started_at = models.DateTimeField(blank=True, null=True)
    ended_at = models.DateTimeField(blank=True, null=True)
    duration_sec = models.PositiveIntegerField(blank=True, null=True)
    outcome = models.CharField(max_length=40, blank=True, null=True)
    transcript = models.TextField(blank=True, null=True)
    summary = models.TextField(blank=True, null=True)
    extracted = models.JSONField(blank=True, null=True, encoder=DjangoJSONEncoder)
    recording_url = models.URLField(max_length=500, blank=True, null=True)
    cost_eur = models.DecimalField(max_digits=8, decimal_places=2, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "calls"
        ordering = ["-created_at"]
        indexes = [
            Index(fields=["clinic", "started_at"], name="call_clinic_started_idx"),
            Index(fields=["lead"], name="call_lead_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.external_call_id} ({self.status})"


class SystemState(models.Model):
    """Estado volátil por clínica: ligação em curso no painel."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.OneToOneField(Clinic, on_delete=models.CASCADE, related_name="system_state")
    current_call_external_id = models.CharField(max_length=128, blank=True, null=True)
    current_call_lead_id = models.UUIDField(blank=True, null=True)
    current_call_started_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "system_states"

    def __str__(self) -> str:
        return f"{self.clinic_id}: {self.current_call_external_id or '-'}"


# ╭──────────────────────────────────────────────╮
# │ 4. Agenda                                    │
# ╰──────────────────────────────────────────────╯
class Appointment(models.Model):
    class Status(models.TextChoices):
        SCHEDULED = "scheduled", "Programada"
        CANCELED = "canceled", "Cancelada"
        DONE = "done", "Realizada"

    class SourceChannel(models.TextChoices):
        CALL_AI = "call_ai", "Agente de llamada"
        WHATSAPP_AI = "whatsapp_ai", "Agente de WhatsApp"
        STAFF = "staff", "Equipo"

    class CreatedBy(models.TextChoices):
        AGENT = "agent", "Agente"
        STAFF = "staff", "Equipo"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="appointments")
    lead = models.ForeignKey(
        Lead, on_delete=models.SET_NULL, blank=True, null=True, related_name="appointments"
    )
    lead_name = models.CharField(max_length=255, blank=True, null=True)
    lead_phone = models.CharField(max_length=20, blank=True, null=True)
    title = models.CharField(max_length=255, default="Cita")
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.SCHEDULED, db_index=True
    )
    source_channel = models.CharField(
        max_length=20, choices=SourceChannel.choices, default=SourceChannel.STAFF
    )
    created_by = models.CharField(max_length=20, choices=CreatedBy.choices, default=CreatedBy.STAFF)
    notes = models.TextField(blank=True, null=True)
    external_event_id = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "appointments"
        ordering = ["start_at"]
        indexes = [Index(fields=["clinic", "start_at", "end_at"], name="appointment_range_idx")]
        constraints = [
            UniqueConstraint(
                fields=["clinic", "start_at"],
                condition=Q(status="scheduled"),
                name="uq_appointment_active_start",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} @ {self.start_at:%Y-%m-%d %H:%M}"


class BusyBlock(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="busy_blocks")
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    reason = models.CharField(max_length=255, blank=True, null=True)
    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, blank=True, null=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "busy_blocks"
        ordering = ["start_at"]
        indexes = [Index(fields=["clinic", "start_at", "end_at"], name="busy_block_range_idx")]

    def __str__(self) -> str:
        return f"Bloqueo {self.start_at:%Y-%m-%d %H:%M} → {self.end_at:%H:%M}"


class CalendarEvent(models.Model):
    """Espelho local do calendário externo (somente leitura para a agenda)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="calendar_events")
    external_event_id = models.CharField(max_length=255)
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    status = models.CharField(max_length=20, blank=True, null=True)
    summary = models.CharField(max_length=255, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "calendar_events"
        ordering = ["start_at"]
        indexes = [Index(fields=["clinic", "start_at", "end_at"], name="calendar_event_range_idx")]
        constraints = [
            UniqueConstraint(fields=["clinic", "external_event_id"], name="uq_calendar_event_external"),
        ]

    def __str__(self) -> str:
        return f"{self.summary or self.external_event_id} @ {self.start_at:%Y-%m-%d %H:%M}"


# ╭──────────────────────────────────────────────╮
# │ 5. Ações pendentes / Auditoria               │
# ╰──────────────────────────────────────────────╯
class PendingAction(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pendiente"
        DISPATCHED = "dispatched", "Enviada"
        DONE = "done", "Hecha"
        CANCELLED = "cancelled", "Cancelada"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="pending_actions")
    lead = models.ForeignKey(
        Lead, on_delete=models.CASCADE, blank=True, null=True, related_name="pending_actions"
    )
    action_type = models.CharField(max_length=40)
    due_at = models.DateTimeField(db_index=True)
    idempotency_key = models.CharField(max_length=255)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    payload = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    dispatched_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pending_actions"
        ordering = ["due_at"]
        indexes = [Index(fields=["clinic", "status", "due_at"], name="pending_action_due_idx")]
        constraints = [
            UniqueConstraint(fields=["clinic", "idempotency_key"], name="uq_pending_action_key"),
        ]

    def __str__(self) -> str:
        return f"[{self.status}] {self.action_type} @ {self.due_at:%Y-%m-%d %H:%M}"


class AuditLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="audit_logs")
    entity_type = models.CharField(max_length=40)
    entity_id = models.CharField(max_length=64)
    action = models.CharField(max_length=60)
    actor_type = models.CharField(max_length=20)
    actor_id = models.CharField(max_length=128, blank=True, null=True)
    meta = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "audit_logs"
        ordering = ["-created_at"]
        indexes = [Index(fields=["clinic", "entity_type", "entity_id"], name="audit_entity_idx")]

    def __str__(self) -> str:
        return f"{self.action} {self.entity_type}:{self.entity_id}"
