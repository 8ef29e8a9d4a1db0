"""Regras da grade da agenda (citas e bloqueios), incluindo as trocas de horário de Madri."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from django.test import SimpleTestCase

from lead_pipeline.core.application.services import slot_rules as sr
from lead_pipeline.core.domain.events.exceptions import SlotValidationError

MADRID = "Europe/Madrid"


class AppointmentSlotTests(SimpleTestCase):
    def assertRejected(self, message, start, end=None):
        with self.assertRaises(SlotValidationError) as ctx:
            sr.validate_slot_range(start, end, MADRID)
        self.assertEqual(ctx.exception.message, message)

    def test_naive_input_is_clinic_local_time(self):
        slot = sr.validate_slot_range("2024-06-03T09:00:00", None, MADRID)
        self.assertEqual(slot.start_at, datetime(2024, 6, 3, 7, 0, tzinfo=UTC))
        self.assertEqual(slot.end_at, datetime(2024, 6, 3, 7, 30, tzinfo=UTC))
        self.assertEqual(slot.start_iso, "2024-06-03T07:00:00Z")

    def test_end_defaults_to_thirty_minutes(self):
        slot = sr.validate_slot_range("2024-06-03T18:30:00+02:00", None, MADRID)
        self.assertEqual(slot.duration_minutes, 30)

    def test_explicit_offset_is_respected(self):
        slot = sr.validate_slot_range("2024-06-03T08:00:00Z", "2024-06-03T08:30:00Z", MADRID)
        self.assertEqual(slot.start_at.astimezone(ZoneInfo(MADRID)).hour, 10)

    def test_opening_hour_follows_wall_clock_across_spring_forward(self):
        # sexta antes da troca: 09:00 local = 08:00Z
        friday = sr.validate_slot_range("2024-03-29T08:00:00Z", None, MADRID)
        self.assertEqual(friday.start_at.astimezone(ZoneInfo(MADRID)).hour, 9)
        # segunda depois da troca: 09:00 local = 07:00Z
        monday = sr.validate_slot_range("2024-04-01T07:00:00Z", None, MADRID)
        self.assertEqual(monday.start_at.astimezone(ZoneInfo(MADRID)).hour, 9)
        # 07:30Z na sexta ainda é 08:30 local
        self.assertRejected(sr.MSG_HOURS, "2024-03-29T07:30:00Z")

    def test_closing_hour_follows_wall_clock_across_fall_back(self):
        # sexta 25/10 (CEST): 18:30 local = 16:30Z
        sr.validate_slot_range("2024-10-25T16:30:00Z", None, MADRID)
        # segunda 28/10 (CET): 18:30 local = 17:30Z; 16:30Z + 1h seria 18:30Z → 19:30 local
        sr.validate_slot_range("2024-10-28T17:30:00Z", None, MADRID)
        self.assertRejected(sr.MSG_HOURS, "2024-10-28T18:00:00Z")

    def test_transition_sunday_is_rejected_as_weekend(self):
        self.assertRejected(sr.MSG_WEEKEND, "2024-03-31T10:00:00")
        self.assertRejected(sr.MSG_WEEKEND, "2024-10-27T10:00:00")

    def test_last_slot_of_the_day(self):
        sr.validate_slot_range("2024-06-03T18:30:00", "2024-06-03T19:00:00", MADRID)
        self.assertRejected(sr.MSG_HOURS, "2024-06-03T19:00:00")
        self.assertRejected(sr.MSG_HOURS, "2024-06-03T08:30:00")

    def test_grid_and_precision(self):
        self.assertRejected(sr.MSG_GRID, "2024-06-03T09:15:00")
        self.assertRejected(sr.MSG_START_OFF_GRID, "2024-06-03T09:00:30")
        self.assertRejected(sr.MSG_END_OFF_GRID, "2024-06-03T09:00:00", "2024-06-03T09:30:00.500000")

    def test_duration_must_be_exactly_thirty_minutes(self):
        self.assertRejected(sr.MSG_DURATION, "2024-06-03T09:00:00", "2024-06-03T10:00:00")
        self.assertRejected(sr.MSG_DURATION, "2024-06-03T09:30:00", "2024-06-03T09:00:00")

    def test_cannot_cross_midnight(self):
        self.assertRejected(sr.MSG_CROSS_DAY, "2024-06-03T23:45:00", "2024-06-04T00:15:00")

    def test_unparseable_values(self):
        self.assertRejected(sr.MSG_INVALID_START, "mañana a las diez")
        self.assertRejected(sr.MSG_INVALID_START, None)
        self.assertRejected(sr.MSG_INVALID_END, "2024-06-03T09:00:00", "???")

    def test_weekend(self):
        self.assertRejected(sr.MSG_WEEKEND, "2024-06-08T10:00:00")
        # sábado com offset explícito
        self.assertRejected(sr.MSG_WEEKEND, "2024-06-08T10:00:00+02:00")

    def test_forty_five_minute_range(self):
        self.assertRejected(sr.MSG_DURATION, "2024-06-03T10:00:00+02:00", "2024-06-03T10:45:00+02:00")


class BusyBlockRangeTests(SimpleTestCase):
    def assertRejected(self, message, start, end):
        with self.assertRaises(SlotValidationError) as ctx:
            sr.validate_busy_block_range(start, end, MADRID)
        self.assertEqual(ctx.exception.message, message)

    def test_multiple_of_thirty_minutes(self):
        slot = sr.validate_busy_block_range("2024-06-03T09:00:00", "2024-06-03T10:30:00", MADRID)
        self.assertEqual(slot.duration_minutes, 90)

    def test_whole_day_block_on_fall_back_monday(self):
        slot = sr.validate_busy_block_range("2024-10-28T09:00:00", "2024-10-28T19:00:00", MADRID)
        self.assertEqual(slot.duration_minutes, 600)
        self.assertEqual(slot.start_at, datetime(2024, 10, 28, 8, 0, tzinfo=UTC))

    def test_duration_rules(self):
        self.assertRejected(sr.MSG_BLOCK_MIN_DURATION, "2024-06-03T09:00:00", "2024-06-03T09:15:00")
        self.assertRejected(sr.MSG_BLOCK_STEP, "2024-06-03T09:00:00", "2024-06-03T10:15:00")

    def test_block_must_sit_on_the_grid(self):
        self.assertRejected(sr.MSG_BLOCK_START_OFF_GRID, "2024-06-03T09:15:00", "2024-06-03T10:15:00")

    def test_calendar_rules(self):
        self.assertRejected(sr.MSG_BLOCK_WEEKEND, "2024-06-08T09:00:00", "2024-06-08T10:00:00")
        self.assertRejected(sr.MSG_BLOCK_HOURS, "2024-06-03T18:00:00", "2024-06-03T19:30:00")
        self.assertRejected(sr.MSG_BLOCK_CROSS_DAY, "2024-06-03T23:00:00", "2024-06-04T00:00:00")

    def test_missing_start(self):
        self.assertRejected(sr.MSG_BLOCK_INVALID, None, "2024-06-03T10:00:00")
        self.assertRejected(sr.MSG_BLOCK_INVALID, "2024-06-03T09:00:00", "ayer")

    def test_end_defaults_to_one_slot(self):
        for end in (None, ""):
            slot = sr.validate_busy_block_range("2024-06-03T09:00:00", end, MADRID)
            self.assertEqual(slot.duration_minutes, 30)
            self.assertEqual(slot.end_iso, "2024-06-03T07:30:00Z")
        # o bloco padrão segue as regras de horário: 18:30 fecha às 19:00, 19:00 não cabe
        sr.validate_busy_block_range("2024-06-03T18:30:00", None, MADRID)
        self.assertRejected(sr.MSG_BLOCK_HOURS, "2024-06-03T19:00:00", None)
