"""Rotas do painel da equipe: funil, agenda e ações pendentes, sempre na clínica do usuário."""

from datetime import UTC, datetime
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from lead_pipeline.core.domain import lead_stages as ls
from plugins.django_interface.models import (
    Appointment,
    AuditLog,
    BusyBlock,
    ClinicMembership,
    Lead,
    PendingAction,
    SystemState,
)
from tests.helpers.factories import make_clinic, make_lead, make_staff_user


class StaffApiTestCase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.clinic = make_clinic()
        cls.other_clinic = make_clinic(name="Clínica Norte")
        cls.user = make_staff_user(cls.clinic)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(self.user)


class AccessTests(StaffApiTestCase):
    def test_anonymous_is_rejected(self):
        resp = APIClient().get(reverse("leads-list"))
        self.assertEqual(resp.status_code, 403)

    def test_user_without_clinic_is_rejected(self):
        outsider = get_user_model().objects.create_user(username="sin_clinica", password="x")
        client = APIClient()
        client.force_authenticate(outsider)
        self.assertEqual(client.get(reverse("leads-list")).status_code, 403)

    def test_seeded_owner_can_log_in(self):
        call_command(
            "seed_clinic", name="Clínica Este", username="dra_ruiz", password="s3nha!", stdout=StringIO()
        )
        client = APIClient()
        self.assertTrue(client.login(username="dra_ruiz", password="s3nha!"))
        self.assertEqual(client.get(reverse("leads-list")).json()["total_items"], 0)

        # rodar de novo não duplica nada
        call_command(
            "seed_clinic", name="Clínica Este", username="dra_ruiz", password="s3nha!", stdout=StringIO()
        )
        self.assertEqual(ClinicMembership.objects.filter(user__username="dra_ruiz").count(), 1)

    def test_healthcheck_is_public(self):
        resp = APIClient().get(reverse("healthz"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})


class LeadApiTests(StaffApiTestCase):
    def test_list_is_scoped_to_the_user_clinic(self):
        mine = make_lead(self.clinic, full_name="Ana")
        make_lead(self.clinic, full_name="Bea", stage_key=ls.VISIT_SCHEDULED)
        make_lead(self.other_clinic, full_name="Carla")

        resp = self.client.get(reverse("leads-list"), {"page_size": 1})
        body = resp.json()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(body["total_items"], 2)
        self.assertEqual(body["total_pages"], 2)
        self.assertEqual(body["items_on_page"], 1)

        resp = self.client.get(reverse("leads-list"), {"stage_key": ls.NEW_LEAD})
        self.assertEqual([r["id"] for r in resp.json()["results"]], [str(mine.id)])

        resp = self.client.get(reverse("leads-list"), {"clinic_id": str(self.other_clinic.id)})
        self.assertEqual(resp.json()["total_items"], 2)

    def test_search(self):
        make_lead(self.clinic, full_name="Lucía Gómez")
        make_lead(self.clinic, full_name="Pedro Sanz")
        resp = self.client.get(reverse("leads-list"), {"search": "lucía"})
        self.assertEqual(resp.json()["total_items"], 1)

    def test_bad_pagination(self):
        resp = self.client.get(reverse("leads-list"), {"page": "uno"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Payload invalido.")

    def test_transition_and_history(self):
        lead = make_lead(self.clinic)
        resp = self.client.post(
            reverse("leads-transition", args=[lead.id]),
            {"to_stage_key": ls.WHATSAPP_FAILED_TEAM_REVIEW},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["to_stage_key"], ls.WHATSAPP_FAILED_TEAM_REVIEW)
        self.assertFalse(resp.json()["fallback"])

        rows = self.client.get(reverse("leads-history", args=[lead.id])).json()["results"]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["reason"], "Movido manualmente")
        self.assertEqual(rows[0]["actor_type"], "staff")
        self.assertEqual(rows[0]["actor_id"], str(self.user.pk))
        self.assertEqual(rows[0]["meta"], {"source": "pipeline_board"})

    def test_lead_from_another_clinic_is_not_found(self):
        foreign = make_lead(self.other_clinic)
        resp = self.client.post(
            reverse("leads-transition", args=[foreign.id]), {"to_stage_key": ls.DISCARDED}, format="json"
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "Lead no encontrado."})
        foreign.refresh_from_db()
        self.assertEqual(foreign.stage_key, ls.NEW_LEAD)

    def test_outcome(self):
        lead = make_lead(self.clinic, stage_key=ls.VISIT_SCHEDULED)
        url = reverse("leads-outcome", args=[lead.id])

        resp = self.client.post(
            url,
            {"to_stage_key": ls.CLIENT_CLOSED, "converted_value_eur": "-1", "converted_service_name": "Implante"},
            format="json",
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "El importe de la venta no puede ser negativo.")

        resp = self.client.post(
            url,
            {"to_stage_key": ls.CLIENT_CLOSED, "converted_value_eur": "2400", "converted_service_name": "Implante"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["converted_to_client"])
        self.assertEqual(resp.json()["converted_value_eur"], "2400.00")

    def test_whatsapp_block(self):
        lead = make_lead(self.clinic)
        url = reverse("leads-whatsapp-block", args=[lead.id])

        resp = self.client.post(url, {"blocked": True}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["whatsapp_blocked"])
        self.assertEqual(resp.json()["whatsapp_blocked_reason"], "Bloqueado manualmente desde el panel")

        resp = self.client.post(url, {"blocked": False, "reason": "ignorado"}, format="json")
        self.assertFalse(resp.json()["whatsapp_blocked"])
        self.assertIsNone(resp.json()["whatsapp_blocked_reason"])
        self.assertEqual(
            list(AuditLog.objects.order_by("created_at").values_list("action", flat=True)),
            ["whatsapp_blocked", "whatsapp_unblocked"],
        )

    def test_stage_catalog(self):
        resp = self.client.get(reverse("lead-stages"))
        body = resp.json()
        self.assertTrue(body["degraded"])
        self.assertEqual(body["results"][0]["stage_key"], ls.NEW_LEAD)


class AgendaApiTests(StaffApiTestCase):
    def _create(self, start="2024-06-03T10:00:00", phone="612345678"):
        return self.client.post(
            reverse("appointments-list"),
            {"start_at": start, "lead_name": "Lucía", "lead_phone": phone},
            format="json",
        )

    def test_create_and_conflict(self):
        resp = self._create()
        self.assertEqual(resp.status_code, 201)
        appt = Appointment.objects.get(pk=resp.json()["id"])
        self.assertEqual(appt.source_channel, "staff")
        self.assertEqual(appt.created_by, "staff")

        resp = self._create(phone="699111222")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["conflict_source"], "appointment")

    def test_invalid_slot(self):
        resp = self._create(start="2024-06-03T20:00:00")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "La agenda solo admite citas entre 09:00 y 19:00.")

    def test_list_range_includes_every_status(self):
        appt_id = self._create().json()["id"]
        self.client.post(reverse("appointments-cancel", args=[appt_id]))
        resp = self.client.get(
            reverse("appointments-list"),
            {"start_at": "2024-06-03T00:00:00", "end_at": "2024-06-04T00:00:00"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([r["status"] for r in resp.json()["results"]], ["canceled"])

    def test_list_requires_a_valid_range(self):
        resp = self.client.get(
            reverse("appointments-list"),
            {"start_at": "2024-06-04T00:00:00", "end_at": "2024-06-03T00:00:00"},
        )
        self.assertEqual(resp.status_code, 400)

    def test_reschedule(self):
        appt_id = self._create().json()["id"]
        resp = self.client.post(
            reverse("appointments-reschedule", args=[appt_id]), {"start_at": "2024-06-03T12:00:00"}, format="json"
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            Appointment.objects.get(pk=appt_id).start_at, datetime(2024, 6, 3, 10, 0, tzinfo=UTC)
        )

    def test_availability(self):
        self._create()
        url = reverse("availability")

        busy = self.client.get(url, {"start_at": "2024-06-03T10:00:00"}).json()
        self.assertFalse(busy["available"])
        self.assertEqual(busy["conflict_source"], "appointment")
        self.assertEqual(busy["start_at"], "2024-06-03T08:00:00Z")

        free = self.client.get(url, {"start_at": "2024-06-03T10:30:00"}).json()
        self.assertTrue(free["available"])
        self.assertIsNone(free["error"])

        block = self.client.get(
            url, {"start_at": "2024-06-03T11:00:00", "end_at": "2024-06-03T13:00:00", "kind": "busy_block"}
        ).json()
        self.assertTrue(block["available"])

        resp = self.client.get(url, {"start_at": "2024-06-08T10:00:00"})
        self.assertEqual(resp.status_code, 400)

    def test_busy_block_crud(self):
        resp = self.client.post(
            reverse("busy_blocks-list"),
            {"start_at": "2024-06-03T15:00:00", "end_at": "2024-06-03T16:30:00", "reason": "Formación"},
            format="json",
        )
        self.assertEqual(resp.status_code, 201)
        block_id = resp.json()["id"]

        resp = self._create(start="2024-06-03T15:30:00")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["conflict_source"], "busy_block")

        resp = self.client.patch(
            reverse("busy_blocks-detail", args=[block_id]),
            {"start_at": "2024-06-03T16:00:00", "end_at": "2024-06-03T17:00:00"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)

        resp = self.client.delete(reverse("busy_blocks-detail", args=[block_id]))
        self.assertEqual(resp.status_code, 204)
        self.assertFalse(BusyBlock.objects.exists())

        resp = self.client.delete(reverse("busy_blocks-detail", args=[block_id]))
        self.assertEqual(resp.status_code, 404)


class OpsApiTests(StaffApiTestCase):
    def test_pending_actions(self):
        lead = make_lead(self.clinic)
        action = PendingAction.objects.create(
            clinic=self.clinic,
            lead=lead,
            action_type="retry_call",
            due_at=timezone.now(),
            idempotency_key=f"retry_call:{lead.id}:2",
        )
        resp = self.client.get(reverse("pending_actions-list"), {"status": "pending"})
        self.assertEqual(resp.json()["total_items"], 1)

        resp = self.client.post(reverse("pending_actions-mark-done", args=[action.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "done")

        # repetir não muda nada
        resp = self.client.post(reverse("pending_actions-mark-done", args=[action.id]))
        self.assertEqual(resp.json()["status"], "done")

    def test_current_call(self):
        resp = self.client.get(reverse("current-call"))
        self.assertFalse(resp.json()["in_call"])

        lead = make_lead(self.clinic)
        SystemState.objects.create(
            clinic=self.clinic,
            current_call_external_id="call-1",
            current_call_lead_id=lead.id,
            current_call_started_at=timezone.now(),
        )
        body = self.client.get(reverse("current-call")).json()
        self.assertTrue(body["in_call"])
        self.assertEqual(body["current_call_external_id"], "call-1")
        self.assertEqual(Lead.objects.get(pk=body["current_call_lead_id"]), lead)
