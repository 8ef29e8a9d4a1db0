from decimal import Decimal

from django.test import TestCase

from lead_pipeline.adapters.config.composition_root import container
from lead_pipeline.core.application.commands.lead_commands import RecordLeadOutcomeCommand
from lead_pipeline.core.application.services import lead_outcome_service as los
from lead_pipeline.core.application.services.lead_outcome_service import LeadOutcomeService
from lead_pipeline.core.domain import lead_stages as ls
from lead_pipeline.core.domain.events.exceptions import OutcomeValidationError, StageTransitionError
from lead_pipeline.core.domain.repositories.stage_transitioner import TransitionResult
from plugins.django_interface.models import AuditLog, LeadStageHistory
from tests.helpers.factories import make_clinic, make_lead, stage_engine_with


class _BrokenTransitioner:
    def transition(self, **kwargs):
        return TransitionResult(ok=False, error="procedure_failed")


class LeadOutcomeTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.clinic = make_clinic()

    def setUp(self):
        self.lead = make_lead(self.clinic, stage_key=ls.VISIT_SCHEDULED)

    def _record(self, to_stage_key, **kwargs):
        return container.command_bus().dispatch(
            RecordLeadOutcomeCommand(
                clinic_id=str(self.clinic.id),
                lead_id=str(self.lead.id),
                to_stage_key=to_stage_key,
                actor_type="staff",
                actor_id="3",
                source="dashboard",
                **kwargs,
            )
        )

    def test_closed_sale_records_conversion(self):
        lead = self._record(ls.CLIENT_CLOSED, converted_value_eur="1500.50", converted_service_name="Implante")

        self.assertTrue(lead.converted_to_client)
        self.assertEqual(lead.converted_value_eur, Decimal("1500.50"))
        self.assertEqual(lead.converted_service_name, "Implante")
        self.assertIsNotNone(lead.converted_at)
        self.assertIsNone(lead.post_visit_outcome_reason)
        self.assertEqual(lead.stage_key, ls.CLIENT_CLOSED)

        hist = LeadStageHistory.objects.get(lead=self.lead)
        self.assertEqual(hist.reason, los.OUTCOME_REASON)
        self.assertEqual(hist.meta, {"source": "dashboard"})

        audit = AuditLog.objects.get(entity_id=str(self.lead.id))
        self.assertEqual(audit.action, los.ACTION_CONVERTED)
        self.assertEqual(audit.meta["converted_value_eur"], "1500.50")

    def test_zero_value_is_accepted(self):
        lead = self._record(ls.CLIENT_CLOSED, converted_value_eur=0, converted_service_name="Revisión")
        self.assertEqual(lead.converted_value_eur, Decimal("0"))

    def test_follow_up_clears_conversion_fields(self):
        self._record(ls.CLIENT_CLOSED, converted_value_eur="900", converted_service_name="Ortodoncia")
        lead = self._record(ls.POST_VISIT_FOLLOW_UP, outcome_reason="  Quiere pensarlo  ")

        self.assertFalse(lead.converted_to_client)
        self.assertIsNone(lead.converted_value_eur)
        self.assertIsNone(lead.converted_service_name)
        self.assertEqual(lead.post_visit_outcome_reason, "Quiere pensarlo")
        self.assertEqual(
            AuditLog.objects.filter(action=los.ACTION_POST_VISIT_UPDATED).count(), 1
        )

    def test_validation_messages(self):
        cases = [
            (ls.VISIT_SCHEDULED, {}, los.MSG_INVALID_STAGE),
            (ls.CLIENT_CLOSED, {"converted_service_name": "Implante"}, los.MSG_VALUE_REQUIRED),
            (ls.CLIENT_CLOSED, {"converted_value_eur": "abc", "converted_service_name": "x"}, los.MSG_VALUE_REQUIRED),
            (ls.CLIENT_CLOSED, {"converted_value_eur": "-10", "converted_service_name": "x"}, los.MSG_VALUE_NEGATIVE),
            (ls.CLIENT_CLOSED, {"converted_value_eur": "10"}, los.MSG_SERVICE_REQUIRED),
            (ls.POST_VISIT_NOT_CLOSED, {"outcome_reason": " "}, los.MSG_REASON_REQUIRED),
        ]
        for stage, extra, message in cases:
            with self.subTest(stage=stage, extra=extra):
                with self.assertRaises(OutcomeValidationError) as ctx:
                    self._record(stage, **extra)
                self.assertEqual(ctx.exception.message, message)

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.VISIT_SCHEDULED)
        self.assertFalse(AuditLog.objects.exists())

    def test_failed_transition_leaves_lead_untouched(self):
        service = LeadOutcomeService(
            engine=stage_engine_with(_BrokenTransitioner()),
            lead_repo=container.lead_repo(),
            audit_repo=container.audit_log_repo(),
        )
        with self.assertRaises(StageTransitionError):
            service.record(
                clinic_id=str(self.clinic.id),
                lead_id=str(self.lead.id),
                to_stage_key=ls.CLIENT_CLOSED,
                actor_type="staff",
                actor_id="3",
                source="dashboard",
                converted_value_eur="100",
                converted_service_name="Limpieza",
            )
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.stage_key, ls.VISIT_SCHEDULED)
        self.assertFalse(self.lead.converted_to_client)
        self.assertFalse(AuditLog.objects.exists())
