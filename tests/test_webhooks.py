"""
Webhooks do agente de voz: autenticação, resolução da clínica,
idempotência das entregas repetidas e efeitos no funil.
"""

import uuid
from datetime import UTC, datetime

from django.test import TestCase, override_settings
from django.urls import reverse
from prometheus_client import REGISTRY
from rest_framework.test import APIClient

from lead_pipeline.core.domain import lead_stages as ls
from plugins.django_interface.models import (
    Appointment,
    Call,
    Clinic,
    Lead,
    LeadStageHistory,
    PendingAction,
    SystemState,
)
from tests.helpers.factories import make_lead

SECRET = "s3cret-webhook"
CLINIC_ID = "5b0f7a52-3a0c-4f51-9a53-2f0c7f3f6a10"


@override_settings(WEBHOOK_SECRET=SECRET, DEFAULT_CLINIC_ID=CLINIC_ID)
class WebhookTestCase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.clinic = Clinic.objects.create(id=CLINIC_ID, name="Clínica Centro", time_zone="Europe/Madrid")

    def setUp(self):
        self.client = APIClient()

    def post(self, name, payload, secret=SECRET):
        headers = {"HTTP_X_WEBHOOK_SECRET": secret} if secret is not None else {}
        return self.client.post(reverse(name), payload, format="json", **headers)


class WebhookAuthTests(WebhookTestCase):
    def test_missing_secret(self):
        resp = self.post("webhook-lead-created", {"full_name": "Ana", "phone": "612345678"}, secret=None)
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Unauthorized"})
        self.assertFalse(Lead.objects.exists())

    def test_wrong_secret(self):
        resp = self.post("webhook-call-started", {"call_id": "c-1"}, secret="nope")
        self.assertEqual(resp.status_code, 401)

    @override_settings(WEBHOOK_SECRET="")
    def test_unconfigured_secret_rejects_everything(self):
        resp = self.post("webhook-lead-created", {"full_name": "Ana", "phone": "612345678"}, secret="")
        self.assertEqual(resp.status_code, 401)

    def test_rejections_are_counted(self):
        labels = {"event": "call_ended", "result": "client_error"}
        before = REGISTRY.get_sample_value("webhook_requests_total", labels) or 0
        self.post("webhook-call-ended", {"call_id": "c-1"}, secret="nope")
        self.assertEqual(REGISTRY.get_sample_value("webhook_requests_total", labels), before + 1)


class TenantResolutionTests(WebhookTestCase):
    def test_default_clinic_is_used_without_clinic_id(self):
        resp = self.post("webhook-lead-created", {"full_name": "Ana", "phone": "612345678"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(Lead.objects.get().clinic_id, self.clinic.id)

    def test_payload_clinic_id_wins(self):
        other = Clinic.objects.create(name="Clínica Norte")
        resp = self.post(
            "webhook-lead-created", {"clinic_id": str(other.id), "full_name": "Ana", "phone": "612345678"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(Lead.objects.get().clinic_id, other.id)

    @override_settings(DEFAULT_CLINIC_ID="")
    def test_no_clinic_at_all(self):
        resp = self.post("webhook-lead-created", {"full_name": "Ana", "phone": "612345678"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "clinic_id es obligatorio.")

    def test_unknown_clinic(self):
        resp = self.post(
            "webhook-lead-created", {"clinic_id": str(uuid.uuid4()), "full_name": "Ana", "phone": "612345678"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Clinica no encontrada.")


class LeadCreatedWebhookTests(WebhookTestCase):
    def test_upsert_by_phone_is_idempotent(self):
        first = self.post("webhook-lead-created", {"name": "Ana", "phone": "612 345 678", "treatment": "Implante"})
        second = self.post("webhook-lead-created", {"full_name": "Ana María", "phone": "+34612345678"})

        self.assertEqual(first.status_code, 200)
        self.assertTrue(first.json()["created"])
        self.assertFalse(second.json()["created"])
        self.assertEqual(first.json()["lead_id"], second.json()["lead_id"])

        lead = Lead.objects.get()
        self.assertEqual(lead.full_name, "Ana María")
        self.assertEqual(lead.treatment, "Implante")
        self.assertEqual(lead.stage_key, ls.NEW_LEAD)

    def test_existing_stage_is_not_reset(self):
        lead = make_lead(self.clinic, stage_key=ls.VISIT_SCHEDULED, phone="612345678")
        self.post("webhook-lead-created", {"full_name": "Ana", "phone": "612345678"})
        lead.refresh_from_db()
        self.assertEqual(lead.stage_key, ls.VISIT_SCHEDULED)

    def test_invalid_phone(self):
        resp = self.post("webhook-lead-created", {"full_name": "Ana", "phone": "123"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Telefono invalido: debe tener 9 digitos.")

    def test_name_required(self):
        resp = self.post("webhook-lead-created", {"phone": "612345678"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "full_name es obligatorio.")


class CallLifecycleWebhookTests(WebhookTestCase):
    def setUp(self):
        super().setUp()
        self.lead = make_lead(self.clinic)

    def _start(self, call_id="call-1", **extra):
        return self.post("webhook-call-started", {"call_id": call_id, "lead_id": str(self.lead.id), **extra})

    def _end(self, call_id="call-1", outcome="no_response", ended_at="2024-06-03T08:00:00Z", **extra):
        return self.post(
            "webhook-call-ended",
            {"call_id": call_id, "lead_id": str(self.lead.id), "outcome": outcome, "ended_at": ended_at, **extra},
        )

    def _history(self):
        return list(
            LeadStageHistory.objects.filter(lead=self.lead).values_list("to_stage_key", flat=True)
        )

    def test_call_started_moves_lead_and_sets_current_call(self):
        resp = self._start()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True, "call_id": "call-1", "attempt_no": 1})

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.FIRST_CALL_IN_PROGRESS)
        state = SystemState.objects.get(clinic=self.clinic)
        self.assertEqual(state.current_call_external_id, "call-1")

    def test_repeated_call_started_is_a_no_op(self):
        self._start()
        self._start()
        self.assertEqual(Call.objects.count(), 1)
        self.assertEqual(self._history(), [ls.FIRST_CALL_IN_PROGRESS])

    def test_no_answer_on_first_call_schedules_retry(self):
        self._start()
        resp = self._end(duration=42)
        self.assertEqual(resp.status_code, 200)

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.NO_ANSWER_FIRST_CALL)
        self.assertEqual(self.lead.status, ls.STATUS_NO_RESPONSE)
        self.assertEqual(self.lead.last_contact_at, datetime(2024, 6, 3, 8, 0, tzinfo=UTC))

        action = PendingAction.objects.get(lead=self.lead)
        self.assertEqual(action.action_type, "retry_call")
        self.assertEqual(action.idempotency_key, f"retry_call:{self.lead.id}:2")
        # 10:00 em Madri: antes do corte, +6h
        self.assertEqual(action.due_at, datetime(2024, 6, 3, 14, 0, tzinfo=UTC))
        self.assertEqual(action.payload["attempt_no"], 2)
        self.assertEqual(self.lead.next_action_at, action.due_at)

        call = Call.objects.get(external_call_id="call-1")
        self.assertEqual(call.status, Call.Status.ENDED)
        self.assertEqual(call.duration_sec, 42)
        self.assertEqual(str(call.cost_eur), "0.07")
        self.assertIsNone(SystemState.objects.get(clinic=self.clinic).current_call_external_id)

    def test_afternoon_no_answer_retries_next_morning(self):
        self._start()
        self._end(ended_at="2024-06-03T13:00:00Z")
        action = PendingAction.objects.get(lead=self.lead)
        self.assertEqual(action.due_at, datetime(2024, 6, 4, 5, 0, tzinfo=UTC))

    def test_duplicate_call_ended_does_not_transition_twice(self):
        self._start()
        self._end()
        self._end(ended_at="2024-06-03T09:00:00Z")

        self.assertEqual(self._history().count(ls.NO_ANSWER_FIRST_CALL), 1)
        self.assertEqual(PendingAction.objects.filter(lead=self.lead).count(), 1)
        call = Call.objects.get(external_call_id="call-1")
        self.assertEqual(call.ended_at, datetime(2024, 6, 3, 8, 0, tzinfo=UTC))

    def test_second_attempt_goes_to_whatsapp_path(self):
        self._start("call-1")
        self._end("call-1")
        resp = self._start("call-2")
        self.assertEqual(resp.json()["attempt_no"], 2)

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.SECOND_CALL_IN_PROGRESS)

        self._end("call-2", ended_at="2024-06-03T15:00:00Z")
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.NO_ANSWER_SECOND_CALL)
        self.assertEqual(PendingAction.objects.filter(lead=self.lead).count(), 1)

    def test_contacted_schedules_second_call_stage(self):
        self._start()
        self._end(outcome="contacted")
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.SECOND_CALL_SCHEDULED)
        self.assertFalse(PendingAction.objects.exists())

    def test_appointment_scheduled_outcome_cancels_pending_retry(self):
        self._start("call-1")
        self._end("call-1")
        self._start("call-2")
        self._end("call-2", outcome="appointment_scheduled")

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.VISIT_SCHEDULED)
        self.assertIsNone(self.lead.next_action_at)
        self.assertEqual(PendingAction.objects.get(lead=self.lead).status, PendingAction.Status.CANCELLED)

    def test_call_ended_without_start_creates_the_call(self):
        resp = self._end("call-9", outcome="contacted", summary="Interesado en ortodoncia")
        self.assertEqual(resp.status_code, 200)
        call = Call.objects.get(external_call_id="call-9")
        self.assertEqual(call.attempt_no, 1)
        self.assertEqual(call.summary, "Interesado en ortodoncia")

    def test_unknown_lead_is_ignored(self):
        resp = self.post(
            "webhook-call-ended", {"call_id": "call-x", "lead_id": str(uuid.uuid4()), "outcome": "no_response"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(Call.objects.get(external_call_id="call-x").lead_id)
        self.assertFalse(PendingAction.objects.exists())

    def test_invalid_payload(self):
        resp = self.post("webhook-call-ended", {"outcome": "no_response", "duration": -5})
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertEqual(body["error"], "Payload invalido.")
        fields = {d["field"] for d in body["details"]}
        self.assertIn("call_id", fields)


class CrossClinicCallTests(WebhookTestCase):
    """`call_id` é único global: outra clínica não encerra nem reabre a ligação."""

    def setUp(self):
        super().setUp()
        self.lead = make_lead(self.clinic)
        self.other = Clinic.objects.create(name="Clínica Norte", time_zone="Europe/Madrid")
        self.post("webhook-call-started", {"call_id": "call-1", "lead_id": str(self.lead.id)})

    def test_call_ended_from_other_clinic_is_rejected(self):
        resp = self.post(
            "webhook-call-ended",
            {
                "clinic_id": str(self.other.id),
                "call_id": "call-1",
                "outcome": "contacted",
                "transcript": "texto ajeno",
                "ended_at": "2024-06-03T08:00:00Z",
            },
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "La llamada pertenece a otra clinica."})

        call = Call.objects.get(external_call_id="call-1")
        self.assertEqual(call.clinic_id, self.clinic.id)
        self.assertEqual(call.status, Call.Status.IN_PROGRESS)
        self.assertIsNone(call.outcome)
        self.assertFalse(call.transcript)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.FIRST_CALL_IN_PROGRESS)
        self.assertEqual(SystemState.objects.get(clinic=self.clinic).current_call_external_id, "call-1")

    def test_call_started_from_other_clinic_is_rejected(self):
        resp = self.post("webhook-call-started", {"clinic_id": str(self.other.id), "call_id": "call-1"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(Call.objects.get(external_call_id="call-1").clinic_id, self.clinic.id)
        self.assertFalse(SystemState.objects.filter(clinic=self.other, current_call_external_id="call-1").exists())


class AppointmentCreatedWebhookTests(WebhookTestCase):
    def test_agent_books_a_visit(self):
        resp = self.post(
            "webhook-appointment-created",
            {
                "start_at": "2024-06-03T10:00:00",
                "lead_name": "Marta Ruiz",
                "lead_phone": "699 123 456",
                "title": "Primera visita",
            },
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["ok"])

        appt = Appointment.objects.get(pk=body["appointment_id"])
        self.assertEqual(appt.start_at, datetime(2024, 6, 3, 8, 0, tzinfo=UTC))
        self.assertEqual(appt.source_channel, "call_ai")
        self.assertEqual(appt.created_by, "agent")

        lead = Lead.objects.get(pk=body["lead_id"])
        self.assertEqual(lead.phone, "+34699123456")
        self.assertEqual(lead.stage_key, ls.VISIT_SCHEDULED)
        hist = LeadStageHistory.objects.get(lead=lead, to_stage_key=ls.VISIT_SCHEDULED)
        self.assertEqual(hist.actor_type, "retell_ai")

    def test_taken_slot_returns_conflict(self):
        payload = {"start_at": "2024-06-03T10:00:00", "lead_name": "Marta", "lead_phone": "699123456"}
        self.post("webhook-appointment-created", payload)
        resp = self.post(
            "webhook-appointment-created", {**payload, "lead_name": "Luis", "lead_phone": "699000111"}
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(
            resp.json(),
            {"error": "Ese bloque ya esta ocupado por otra cita.", "conflict_source": "appointment"},
        )

    def test_off_grid_slot(self):
        resp = self.post(
            "webhook-appointment-created",
            {"start_at": "2024-06-03T10:10:00", "lead_name": "Marta", "lead_phone": "699123456"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Solo se permiten bloques de 30 minutos.")

    def test_missing_start(self):
        resp = self.post("webhook-appointment-created", {"lead_name": "Marta", "lead_phone": "699123456"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Hora de inicio invalida.")
