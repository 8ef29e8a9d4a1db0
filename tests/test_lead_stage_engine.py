"""Motor de etapas: histórico, status legado, caminho degradado e efeitos colaterais."""

from datetime import timedelta
from unittest import mock

from django.core.management import call_command
from django.db import IntegrityError
from django.test import TestCase
from django.utils import timezone
from prometheus_client import REGISTRY

from lead_pipeline.adapters.config.composition_root import container
from lead_pipeline.adapters.observability.stage_recorder import StageTransitionRecorder
from lead_pipeline.core.application.services.lead_stage_engine import ACTOR_STAFF
from lead_pipeline.core.application.services.stage_catalog_service import StageCatalogService
from lead_pipeline.core.domain import lead_stages as ls
from lead_pipeline.core.domain.events.exceptions import (
    CatalogUnavailableError,
    StageTransitionError,
)
from lead_pipeline.core.domain.repositories.stage_transitioner import TransitionResult
from plugins.django_interface.models import Lead, LeadStage, LeadStageHistory, PendingAction
from tests.helpers.factories import make_clinic, make_lead, stage_engine_with


class _FailingTransitioner:
    def transition(self, **kwargs):
        return TransitionResult(ok=False, error="procedure_failed")


class LeadStageEngineTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.clinic = make_clinic()

    def setUp(self):
        self.engine = container.lead_stage_engine()
        self.lead = make_lead(self.clinic)

    def _transition(self, to_stage_key, **kwargs):
        return self.engine.transition(
            clinic_id=str(self.clinic.id),
            lead_id=str(self.lead.id),
            to_stage_key=to_stage_key,
            reason=kwargs.pop("reason", "Movido manualmente"),
            actor_type=kwargs.pop("actor_type", ACTOR_STAFF),
            actor_id=kwargs.pop("actor_id", "7"),
            **kwargs,
        )

    def test_transition_writes_history_and_derives_status(self):
        outcome = self._transition(ls.CONTACTING_WHATSAPP, meta={"source": "pipeline_board"})

        self.assertFalse(outcome.fallback)
        self.assertEqual(outcome.from_stage_key, ls.NEW_LEAD)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.CONTACTING_WHATSAPP)
        self.assertEqual(self.lead.status, ls.STATUS_WHATSAPP_SENT)

        hist = LeadStageHistory.objects.get(lead=self.lead)
        self.assertEqual(hist.from_stage_key, ls.NEW_LEAD)
        self.assertEqual(hist.to_stage_key, ls.CONTACTING_WHATSAPP)
        self.assertEqual(hist.actor_type, ACTOR_STAFF)
        self.assertEqual(hist.actor_id, "7")
        self.assertEqual(hist.meta, {"source": "pipeline_board"})

    def test_each_transition_appends_one_row(self):
        self._transition(ls.FIRST_CALL_IN_PROGRESS)
        self._transition(ls.NO_ANSWER_FIRST_CALL)
        self._transition(ls.SECOND_CALL_SCHEDULED)

        chain = list(
            LeadStageHistory.objects.filter(lead=self.lead)
            .order_by("created_at")
            .values_list("from_stage_key", "to_stage_key")
        )
        self.assertEqual(len(chain), 3)
        self.assertIn((ls.NO_ANSWER_FIRST_CALL, ls.SECOND_CALL_SCHEDULED), chain)

    def test_same_stage_transition_is_recorded(self):
        self._transition(ls.NEW_LEAD)
        hist = LeadStageHistory.objects.get(lead=self.lead)
        self.assertEqual((hist.from_stage_key, hist.to_stage_key), (ls.NEW_LEAD, ls.NEW_LEAD))

    def test_unknown_stage_takes_degraded_path(self):
        outcome = self._transition("stage_from_the_future")

        self.assertTrue(outcome.fallback)
        self.assertIsNone(outcome.history)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, "stage_from_the_future")
        self.assertEqual(self.lead.status, ls.STATUS_CALL_DONE)
        self.assertFalse(LeadStageHistory.objects.filter(lead=self.lead).exists())

    def test_failed_procedure_falls_back_to_direct_update(self):
        outcome = stage_engine_with(_FailingTransitioner()).transition(
            clinic_id=str(self.clinic.id),
            lead_id=str(self.lead.id),
            to_stage_key=ls.VISIT_SCHEDULED,
        )
        self.assertTrue(outcome.fallback)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.VISIT_SCHEDULED)
        self.assertEqual(self.lead.status, ls.STATUS_VISIT_SCHEDULED)
        self.assertEqual(LeadStageHistory.objects.count(), 0)

    def test_stage_changes_are_counted_by_mode(self):
        def sample(mode):
            labels = {"to_stage": ls.VISIT_SCHEDULED, "mode": mode}
            return REGISTRY.get_sample_value("lead_stage_transitions_total", labels) or 0

        atomic, fallback = sample("atomic"), sample("fallback")
        self._transition(ls.VISIT_SCHEDULED)
        stage_engine_with(_FailingTransitioner()).transition(
            clinic_id=str(self.clinic.id),
            lead_id=str(self.lead.id),
            to_stage_key=ls.VISIT_SCHEDULED,
        )
        self.assertEqual(sample("atomic"), atomic + 1)
        self.assertEqual(sample("fallback"), fallback + 1)

    def test_stage_change_event_reaches_subscribers(self):
        received = []
        with mock.patch.object(StageTransitionRecorder, "__call__", autospec=True) as recorder:
            recorder.side_effect = lambda _self, event: received.append(event)
            self._transition(ls.CONTACTING_WHATSAPP, actor_type=ACTOR_STAFF)

        self.assertEqual(len(received), 1)
        event = received[0]
        self.assertEqual(str(event.lead_id), str(self.lead.id))
        self.assertEqual(event.from_stage_key, ls.NEW_LEAD)
        self.assertEqual(event.to_stage_key, ls.CONTACTING_WHATSAPP)
        self.assertEqual(event.actor_type, ACTOR_STAFF)
        self.assertFalse(event.fallback)

    def test_failed_procedure_without_fallback_raises(self):
        with self.assertRaises(StageTransitionError):
            stage_engine_with(_FailingTransitioner()).transition(
                clinic_id=str(self.clinic.id),
                lead_id=str(self.lead.id),
                to_stage_key=ls.CLIENT_CLOSED,
                allow_fallback=False,
            )
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.NEW_LEAD)

    def test_visit_scheduled_cancels_pending_retries(self):
        due = timezone.now() + timedelta(hours=6)
        container.pending_action_repo().schedule(
            clinic_id=str(self.clinic.id),
            lead_id=str(self.lead.id),
            action_type="retry_call",
            due_at=due,
            idempotency_key=f"retry_call:{self.lead.id}:2",
        )
        Lead.objects.filter(pk=self.lead.pk).update(next_action_at=due)

        self._transition(ls.VISIT_SCHEDULED)

        action = PendingAction.objects.get(lead=self.lead)
        self.assertEqual(action.status, PendingAction.Status.CANCELLED)
        self.lead.refresh_from_db()
        self.assertIsNone(self.lead.next_action_at)

    def test_terminal_stage_cancels_pending_retries(self):
        container.pending_action_repo().schedule(
            clinic_id=str(self.clinic.id),
            lead_id=str(self.lead.id),
            action_type="retry_call",
            due_at=timezone.now(),
            idempotency_key=f"retry_call:{self.lead.id}:2",
        )
        self._transition(ls.NOT_INTERESTED)
        self.assertEqual(PendingAction.objects.get(lead=self.lead).status, PendingAction.Status.CANCELLED)

    def test_non_terminal_stage_keeps_pending_retries(self):
        container.pending_action_repo().schedule(
            clinic_id=str(self.clinic.id),
            lead_id=str(self.lead.id),
            action_type="retry_call",
            due_at=timezone.now(),
            idempotency_key=f"retry_call:{self.lead.id}:2",
        )
        self._transition(ls.SECOND_CALL_SCHEDULED)
        self.assertEqual(PendingAction.objects.get(lead=self.lead).status, PendingAction.Status.PENDING)


class LeadModelInvariantTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.clinic = make_clinic()

    def test_status_is_always_derived_from_stage(self):
        lead = make_lead(self.clinic, stage_key=ls.CLIENT_CLOSED)
        self.assertEqual(lead.status, ls.STATUS_VISIT_SCHEDULED)

        lead.status = ls.STATUS_NEW
        lead.stage_key = ls.WHATSAPP_CONVERSATION_ACTIVE
        lead.save(update_fields=["stage_key"])
        lead.refresh_from_db()
        self.assertEqual(lead.status, ls.STATUS_CONTACTED)

    def test_history_is_append_only(self):
        lead = make_lead(self.clinic)
        hist = LeadStageHistory.objects.create(
            clinic=self.clinic, lead=lead, from_stage_key=None, to_stage_key=ls.NEW_LEAD, actor_type="system"
        )
        hist.reason = "editado"
        with self.assertRaises(IntegrityError):
            hist.save()
        with self.assertRaises(IntegrityError):
            hist.delete()
        with self.assertRaises(IntegrityError):
            LeadStageHistory.objects.filter(pk=hist.pk).update(reason="editado")
        with self.assertRaises(IntegrityError):
            LeadStageHistory.objects.filter(lead=lead).delete()
        self.assertEqual(LeadStageHistory.objects.filter(lead=lead).count(), 1)


class StageCatalogTests(TestCase):
    def test_seeded_catalog_is_not_degraded(self):
        call_command("seed_lead_stages")
        catalog = container.stage_catalog_service().load()
        self.assertFalse(catalog.degraded)
        self.assertEqual(len(catalog.stages), len(ls.BUILTIN_STAGE_CATALOG))
        self.assertTrue(catalog.is_terminal(ls.CLIENT_CLOSED))

    def test_empty_table_uses_builtin_catalog(self):
        self.assertFalse(LeadStage.objects.exists())
        catalog = container.stage_catalog_service().load()
        self.assertTrue(catalog.degraded)
        self.assertTrue(catalog.is_known(ls.VISIT_SCHEDULED))

    def test_inactive_rows_are_hidden(self):
        call_command("seed_lead_stages")
        LeadStage.objects.filter(stage_key=ls.DISCARDED).update(is_active=False)
        catalog = container.stage_catalog_service().load()
        self.assertFalse(catalog.is_known(ls.DISCARDED))

    def test_unavailable_table_uses_builtin_catalog(self):
        repo = mock.Mock()
        repo.list_active.side_effect = CatalogUnavailableError("relation does not exist")
        catalog = StageCatalogService(repo=repo).load()
        self.assertTrue(catalog.degraded)
        self.assertEqual(catalog.stages, ls.BUILTIN_STAGE_CATALOG)
