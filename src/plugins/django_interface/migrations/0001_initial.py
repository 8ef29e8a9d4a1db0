import uuid

import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import plugins.django_interface.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Clinic",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("time_zone", models.CharField(default=plugins.django_interface.models.default_clinic_time_zone, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "clinics",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="LeadStage",
            fields=[
                ("stage_key", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("pipeline_key", models.CharField(max_length=32)),
                ("pipeline_label", models.CharField(max_length=100)),
                ("label", models.CharField(max_length=100)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("pipeline_order", models.PositiveSmallIntegerField(default=1)),
                ("order_index", models.PositiveSmallIntegerField(default=1)),
                ("is_terminal", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
            ],
            options={
                "db_table": "lead_stages",
                "ordering": ["pipeline_order", "order_index"],
            },
        ),
        migrations.CreateModel(
            name="ClinicMembership",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("role", models.CharField(choices=[("owner", "Propietario"), ("staff", "Equipo")], default="staff", max_length=20)),
                ("linked_at", models.DateTimeField(auto_now_add=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to="django_interface.clinic")),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="clinic_membership", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "clinic_memberships",
                "indexes": [models.Index(fields=["clinic"], name="membership_clinic_idx")],
            },
        ),
        migrations.CreateModel(
            name="Lead",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("full_name", models.CharField(max_length=255)),
                ("phone", models.CharField(blank=True, max_length=20, null=True)),
                ("stage_key", models.CharField(db_index=True, default="new_lead", max_length=64)),
                ("status", models.CharField(
                    choices=[
                        ("new", "Nuevo lead"),
                        ("whatsapp_sent", "WhatsApp enviado"),
                        ("call_done", "Llamada realizada"),
                        ("contacted", "Contactado"),
                        ("visit_scheduled", "Visita agendada"),
                        ("no_response", "No responde"),
                        ("not_interested", "No interesado"),
                    ],
                    default="new",
                    editable=False,
                    max_length=20,
                )),
                ("treatment", models.CharField(blank=True, max_length=255, null=True)),
                ("source", models.CharField(default="meta", max_length=50)),
                ("last_contact_at", models.DateTimeField(blank=True, null=True)),
                ("next_action_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("converted_to_client", models.BooleanField(default=False)),
                ("converted_value_eur", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("converted_service_name", models.CharField(blank=True, max_length=255, null=True)),
                ("converted_at", models.DateTimeField(blank=True, null=True)),
                ("post_visit_outcome_reason", models.TextField(blank=True, null=True)),
                ("whatsapp_blocked", models.BooleanField(default=False)),
                ("whatsapp_blocked_reason", models.CharField(blank=True, max_length=255, null=True)),
                ("whatsapp_blocked_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="leads", to="django_interface.clinic")),
                ("whatsapp_blocked_by_user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "leads",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["clinic", "stage_key"], name="lead_clinic_stage_idx"),
                    models.Index(fields=["clinic", "created_at"], name="lead_clinic_created_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("clinic", "phone"), name="uq_lead_clinic_phone"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LeadStageHistory",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("from_stage_key", models.CharField(blank=True, max_length=64, null=True)),
                ("to_stage_key", models.CharField(max_length=64)),
                ("reason", models.TextField(blank=True, null=True)),
                ("actor_type", models.CharField(max_length=20)),
                ("actor_id", models.CharField(blank=True, max_length=128, null=True)),
                ("meta", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to="django_interface.clinic")),
                ("lead", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="stage_history", to="django_interface.lead")),
            ],
            options={
                "db_table": "lead_stage_history",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["lead", "created_at"], name="history_lead_created_idx")],
            },
        ),
        migrations.CreateModel(
            name="Call",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("external_call_id", models.CharField(max_length=128, unique=True)),
                ("phone", models.CharField(blank=True, max_length=20, null=True)),
                ("attempt_no", models.PositiveSmallIntegerField(default=1)),
                ("status", models.CharField(choices=[("in_progress", "En curso"), ("ended", "Finalizada")], default="in_progress", max_length=20)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
                ("duration_sec", models.PositiveIntegerField(blank=True, null=True)),
                ("outcome", models.CharField(blank=True, max_length=40, null=True)),
                ("transcript", models.TextField(blank=True, null=True)),
                ("summary", models.TextField(blank=True, null=True)),
                ("extracted", models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ("recording_url", models.URLField(blank=True, max_length=500, null=True)),
                ("cost_eur", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="calls", to="django_interface.clinic")),
                ("lead", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="calls", to="django_interface.lead")),
            ],
            options={
                "db_table": "calls",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["clinic", "started_at"], name="call_clinic_started_idx"),
                    models.Index(fields=["lead"], name="call_lead_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SystemState",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("current_call_external_id", models.CharField(blank=True, max_length=128, null=True)),
                ("current_call_lead_id", models.UUIDField(blank=True, null=True)),
                ("current_call_started_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="system_state", to="django_interface.clinic")),
            ],
            options={
                "db_table": "system_states",
            },
        ),
        migrations.CreateModel(
            name="Appointment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("lead_name", models.CharField(blank=True, max_length=255, null=True)),
                ("lead_phone", models.CharField(blank=True, max_length=20, null=True)),
                ("title", models.CharField(default="Cita", max_length=255)),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                ("status", models.CharField(choices=[("scheduled", "Programada"), ("canceled", "Cancelada"), ("done", "Realizada")], db_index=True, default="scheduled", max_length=20)),
                ("source_channel", models.CharField(choices=[("call_ai", "Agente de llamada"), ("whatsapp_ai", "Agente de WhatsApp"), ("staff", "Equipo")], default="staff", max_length=20)),
                ("created_by", models.CharField(choices=[("agent", "Agente"), ("staff", "Equipo")], default="staff", max_length=20)),
                ("notes", models.TextField(blank=True, null=True)),
                ("external_event_id", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="appointments", to="django_interface.clinic")),
                ("lead", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="appointments", to="django_interface.lead")),
            ],
            options={
                "db_table": "appointments",
                "ordering": ["start_at"],
                "indexes": [models.Index(fields=["clinic", "start_at", "end_at"], name="appointment_range_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "scheduled")),
                        fields=("clinic", "start_at"),
                        name="uq_appointment_active_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BusyBlock",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                ("reason", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="busy_blocks", to="django_interface.clinic")),
                ("created_by_user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "busy_blocks",
                "ordering": ["start_at"],
                "indexes": [models.Index(fields=["clinic", "start_at", "end_at"], name="busy_block_range_idx")],
            },
        ),
        migrations.CreateModel(
            name="CalendarEvent",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("external_event_id", models.CharField(max_length=255)),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                ("status", models.CharField(blank=True, max_length=20, null=True)),
                ("summary", models.CharField(blank=True, max_length=255, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="calendar_events", to="django_interface.clinic")),
            ],
            options={
                "db_table": "calendar_events",
                "ordering": ["start_at"],
                "indexes": [models.Index(fields=["clinic", "start_at", "end_at"], name="calendar_event_range_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("clinic", "external_event_id"), name="uq_calendar_event_external"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PendingAction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("action_type", models.CharField(max_length=40)),
                ("due_at", models.DateTimeField(db_index=True)),
                ("idempotency_key", models.CharField(max_length=255)),
                ("status", models.CharField(choices=[("pending", "Pendiente"), ("dispatched", "Enviada"), ("done", "Hecha"), ("cancelled", "Cancelada")], db_index=True, default="pending", max_length=20)),
                ("payload", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("dispatched_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="pending_actions", to="django_interface.clinic")),
                ("lead", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="pending_actions", to="django_interface.lead")),
            ],
            options={
                "db_table": "pending_actions",
                "ordering": ["due_at"],
                "indexes": [models.Index(fields=["clinic", "status", "due_at"], name="pending_action_due_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("clinic", "idempotency_key"), name="uq_pending_action_key"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("entity_type", models.CharField(max_length=40)),
                ("entity_id", models.CharField(max_length=64)),
                ("action", models.CharField(max_length=60)),
                ("actor_type", models.CharField(max_length=20)),
                ("actor_id", models.CharField(blank=True, max_length=128, null=True)),
                ("meta", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("clinic", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="audit_logs", to="django_interface.clinic")),
            ],
            options={
                "db_table": "audit_logs",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["clinic", "entity_type", "entity_id"], name="audit_entity_idx")],
            },
        ),
    ]
