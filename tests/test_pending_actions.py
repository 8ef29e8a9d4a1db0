from datetime import timedelta
from io import StringIO
from unittest import mock

import httpx
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from clinic_ops_api.tasks import dispatch_pending_actions_for_clinic
from lead_pipeline.adapters.config.composition_root import container
from lead_pipeline.adapters.integrations.outbound_dialer import OutboundDialerClient
from lead_pipeline.core.application.commands.pending_action_commands import (
    DispatchDuePendingActionsCommand,
    MarkPendingActionDoneCommand,
)
from lead_pipeline.core.domain.events.events import PendingActionDueEvent
from lead_pipeline.core.domain.events.exceptions import ExternalServiceError, PendingActionNotFoundError
from plugins.django_interface.models import PendingAction
from tests.helpers.factories import make_clinic, make_lead


class PendingActionDispatchTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.clinic = make_clinic()
        cls.lead = make_lead(cls.clinic)

    def _action(self, minutes: int, key: str) -> PendingAction:
        return PendingAction.objects.create(
            clinic=self.clinic,
            lead=self.lead,
            action_type="retry_call",
            due_at=timezone.now() + timedelta(minutes=minutes),
            idempotency_key=key,
            payload={"attempt_no": 2},
        )

    def _dispatch(self):
        return container.command_bus().dispatch(
            DispatchDuePendingActionsCommand(clinic_id=str(self.clinic.id), now=timezone.now())
        )

    def test_due_actions_are_published_once(self):
        due = self._action(-5, "retry_call:a:2")
        later = self._action(60, "retry_call:b:2")

        with mock.patch.object(OutboundDialerClient, "__call__", autospec=True) as dialer:
            events = self._dispatch()
            again = self._dispatch()

        self.assertEqual(len(events), 1)
        self.assertEqual(again, [])
        self.assertIsInstance(events[0], PendingActionDueEvent)
        self.assertEqual(events[0].action_id, due.id)
        self.assertEqual(events[0].payload, {"attempt_no": 2})
        dialer.assert_called_once()

        due.refresh_from_db()
        later.refresh_from_db()
        self.assertEqual(due.status, PendingAction.Status.DISPATCHED)
        self.assertIsNotNone(due.dispatched_at)
        self.assertEqual(later.status, PendingAction.Status.PENDING)

    def test_mark_dispatched_is_scoped_to_the_clinic(self):
        due = self._action(-5, "retry_call:d:2")
        other = make_clinic(name="Clínica Norte")
        repo = container.pending_action_repo()

        self.assertFalse(repo.mark_dispatched(str(other.id), str(due.id)))
        due.refresh_from_db()
        self.assertEqual(due.status, PendingAction.Status.PENDING)
        self.assertTrue(repo.mark_dispatched(str(self.clinic.id), str(due.id)))

    def test_dialer_failure_does_not_undo_dispatch(self):
        due = self._action(-1, "retry_call:c:2")
        with mock.patch.object(
            OutboundDialerClient, "__call__", autospec=True, side_effect=ExternalServiceError("down")
        ):
            events = self._dispatch()
        self.assertEqual(len(events), 1)
        due.refresh_from_db()
        self.assertEqual(due.status, PendingAction.Status.DISPATCHED)

    def test_task_and_management_command(self):
        self._action(-1, "retry_call:d:2")
        self.assertEqual(dispatch_pending_actions_for_clinic(str(self.clinic.id)), 1)

        self._action(-1, "retry_call:e:2")
        out = StringIO()
        call_command("dispatch_pending_actions", clinic_id=str(self.clinic.id), stdout=out)
        self.assertIn("1 ações despachadas", out.getvalue())

    def test_mark_done_is_idempotent(self):
        action = self._action(-1, "retry_call:f:2")
        cmd = MarkPendingActionDoneCommand(clinic_id=str(self.clinic.id), action_id=str(action.id))

        first = container.command_bus().dispatch(cmd)
        second = container.command_bus().dispatch(cmd)
        self.assertEqual(first.status, "done")
        self.assertEqual(second.completed_at, first.completed_at)

        other = make_clinic(name="Clínica Sur")
        with self.assertRaises(PendingActionNotFoundError):
            container.command_bus().dispatch(
                MarkPendingActionDoneCommand(clinic_id=str(other.id), action_id=str(action.id))
            )


class OutboundDialerClientTests(SimpleTestCase):
    def _event(self):
        return PendingActionDueEvent(
            clinic_id="c1", action_id="a1", lead_id=None, action_type="retry_call", payload={}
        )

    def test_without_url_only_logs(self):
        client = OutboundDialerClient(base_url="")
        with mock.patch.object(client, "_request") as req:
            client(self._event())
        req.assert_not_called()

    def test_posts_action(self):
        client = OutboundDialerClient(base_url="https://dialer.example.com/", token="tok")
        with mock.patch.object(client, "_request") as req:
            client(self._event())
        req.assert_called_once_with(
            "POST",
            "/actions",
            json={
                "clinic_id": "c1",
                "action_id": "a1",
                "lead_id": None,
                "action_type": "retry_call",
                "payload": {},
            },
        )
        self.assertEqual(client._headers()["Authorization"], "Bearer tok")

    def test_http_error_becomes_external_service_error(self):
        client = OutboundDialerClient(base_url="https://dialer.example.com")
        with mock.patch.object(client, "_request", side_effect=httpx.ConnectError("boom")):
            with self.assertRaises(ExternalServiceError):
                client(self._event())


class SchedulingTests(TestCase):
    def test_beat_schedule_points_to_registered_task(self):
        from clinic_ops_api.celery import app

        entry = app.conf.beat_schedule["dispatch-due-pending-actions"]
        self.assertIn(entry["task"], app.tasks)

    def test_orchestrator_enqueues_one_task_per_clinic(self):
        from clinic_ops_api import tasks

        make_clinic(name="A")
        make_clinic(name="B")
        with mock.patch.object(tasks.dispatch_pending_actions_for_clinic, "delay") as delay:
            self.assertEqual(tasks.dispatch_due_pending_actions(), 2)
        self.assertEqual(delay.call_count, 2)
