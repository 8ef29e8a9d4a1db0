from django.test import SimpleTestCase

from lead_pipeline.adapters.utils.phone_utils import normalize_phone


class NormalizePhoneTests(SimpleTestCase):
    def test_accepted_formats(self):
        for raw in ("612345678", "612 34 56 78", "612-345-678", "+34 612 345 678", "0034612345678", "34612345678"):
            with self.subTest(raw=raw):
                self.assertEqual(normalize_phone(raw), "+34612345678")

    def test_national_number_starting_with_country_code(self):
        # 9 dígitos começando por 34 continuam sendo número nacional
        self.assertEqual(normalize_phone("346123456"), "+34346123456")

    def test_rejected(self):
        for raw in (None, "", "abc", "61234567", "6123456789", "+44 7911 123456"):
            with self.subTest(raw=raw):
                self.assertIsNone(normalize_phone(raw))

    def test_other_region(self):
        self.assertEqual(normalize_phone("912345678", default_region="PT"), "+351912345678")
