from datetime import UTC, datetime, timedelta

from django.test import SimpleTestCase

from lead_pipeline.core.application.services.stage_policy import (
    compute_retry_due_at,
    in_progress_stage_for_attempt,
    map_call_outcome_to_stage,
    retry_idempotency_key,
)
from lead_pipeline.core.domain import lead_stages as ls


class CallOutcomeMappingTests(SimpleTestCase):
    def test_first_attempt(self):
        cases = {
            "appointment_scheduled": ls.VISIT_SCHEDULED,
            "not_interested": ls.NOT_INTERESTED,
            "no_response": ls.NO_ANSWER_FIRST_CALL,
            "appointment_proposed": ls.SECOND_CALL_SCHEDULED,
            "contacted": ls.SECOND_CALL_SCHEDULED,
            None: ls.FIRST_CALL_IN_PROGRESS,
            "voicemail": ls.FIRST_CALL_IN_PROGRESS,
        }
        for outcome, expected in cases.items():
            with self.subTest(outcome=outcome):
                self.assertEqual(map_call_outcome_to_stage(outcome, 1), expected)

    def test_later_attempts(self):
        self.assertEqual(map_call_outcome_to_stage("no_response", 2), ls.NO_ANSWER_SECOND_CALL)
        self.assertEqual(map_call_outcome_to_stage("appointment_scheduled", 3), ls.VISIT_SCHEDULED)
        self.assertEqual(map_call_outcome_to_stage(None, 2), ls.SECOND_CALL_SCHEDULED)

    def test_attempt_zero_behaves_as_first(self):
        self.assertEqual(map_call_outcome_to_stage("no_response", 0), ls.NO_ANSWER_FIRST_CALL)

    def test_in_progress_stage(self):
        self.assertEqual(in_progress_stage_for_attempt(1), ls.FIRST_CALL_IN_PROGRESS)
        self.assertEqual(in_progress_stage_for_attempt(2), ls.SECOND_CALL_IN_PROGRESS)


class RetrySchedulingTests(SimpleTestCase):
    def test_morning_call_retries_same_day(self):
        ended = datetime(2024, 6, 3, 8, 0, tzinfo=UTC)  # 10:00 em Madri
        self.assertEqual(compute_retry_due_at(ended, "Europe/Madrid"), ended + timedelta(hours=6))

    def test_afternoon_call_retries_next_morning(self):
        ended = datetime(2024, 6, 3, 13, 0, tzinfo=UTC)  # 15:00 em Madri
        self.assertEqual(compute_retry_due_at(ended, "Europe/Madrid"), ended + timedelta(hours=16))

    def test_cutoff_uses_clinic_local_hour(self):
        ended = datetime(2024, 6, 3, 12, 30, tzinfo=UTC)  # 14:30 em Madri, 12:30 em UTC
        self.assertEqual(compute_retry_due_at(ended, "Europe/Madrid"), ended + timedelta(hours=16))
        self.assertEqual(compute_retry_due_at(ended, "UTC"), ended + timedelta(hours=6))

    def test_delay_is_elapsed_time_across_fall_back(self):
        ended = datetime(2024, 10, 26, 13, 0, tzinfo=UTC)  # sábado 15:00 CEST
        due = compute_retry_due_at(ended, "Europe/Madrid")
        self.assertEqual(due, datetime(2024, 10, 27, 5, 0, tzinfo=UTC))
        self.assertEqual(due.tzinfo, UTC)

    def test_naive_reference_is_utc(self):
        due = compute_retry_due_at(datetime(2024, 6, 3, 8, 0), "UTC")
        self.assertEqual(due, datetime(2024, 6, 3, 14, 0, tzinfo=UTC))

    def test_idempotency_key_targets_next_attempt(self):
        self.assertEqual(retry_idempotency_key("abc", 1), "retry_call:abc:2")


class LegacyStatusTests(SimpleTestCase):
    def test_every_catalog_stage_has_a_status(self):
        for stage in ls.BUILTIN_STAGE_CATALOG:
            with self.subTest(stage=stage.stage_key):
                self.assertIn(stage.stage_key, ls.LEGACY_STATUS_FROM_STAGE)

    def test_unknown_stage_maps_to_call_done(self):
        self.assertEqual(ls.legacy_status_for("made_up_stage"), ls.STATUS_CALL_DONE)
        self.assertEqual(ls.legacy_status_for(None), ls.STATUS_CALL_DONE)

    def test_known_examples(self):
        self.assertEqual(ls.legacy_status_for(ls.CLIENT_CLOSED), ls.STATUS_VISIT_SCHEDULED)
        self.assertEqual(ls.legacy_status_for(ls.CONTACTING_WHATSAPP), ls.STATUS_WHATSAPP_SENT)
        self.assertEqual(ls.legacy_status_for(ls.POST_VISIT_NOT_CLOSED), ls.STATUS_NOT_INTERESTED)

    def test_builtin_catalog_order(self):
        keys = [s.stage_key for s in ls.BUILTIN_STAGE_CATALOG]
        self.assertEqual(keys[0], ls.NEW_LEAD)
        self.assertEqual(len(keys), 17)
        terminal = {s.stage_key for s in ls.BUILTIN_STAGE_CATALOG if s.is_terminal}
        self.assertEqual(terminal, {ls.POST_VISIT_NOT_CLOSED, ls.CLIENT_CLOSED, ls.NOT_INTERESTED, ls.DISCARDED})
