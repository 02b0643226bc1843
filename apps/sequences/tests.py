from django.test import TestCase
from django.utils import timezone

from apps.sequences.models import Counter
from apps.sequences.services import (
    generate_chit_number,
    generate_receipt_number,
    next_formatted_number,
    next_value,
)


class CounterTests(TestCase):
    def test_next_value_creates_counter_and_increments(self):
        self.assertEqual(next_value("widgets"), 1)
        self.assertEqual(next_value("widgets"), 2)
        self.assertEqual(next_value("other"), 1)
        self.assertEqual(Counter.objects.get(name="widgets").value, 2)

    def test_chit_and_receipt_numbers_follow_year_format(self):
        year = timezone.localdate().year
        self.assertEqual(generate_chit_number(), f"CHIT{year}0001")
        self.assertEqual(generate_chit_number(), f"CHIT{year}0002")
        self.assertEqual(generate_receipt_number(), f"RC{year}000001")

    def test_receipt_numbers_are_never_repeated(self):
        receipts = [generate_receipt_number() for _ in range(25)]
        self.assertEqual(len(set(receipts)), 25)

    def test_formatted_numbers_use_prefix_counter(self):
        year = timezone.localdate().year
        self.assertEqual(next_formatted_number("ORD", "-"), f"ORD-{year}-0001")
        self.assertEqual(next_formatted_number("INV", "/"), f"INV/{year}/0001")
        self.assertEqual(next_formatted_number("ORD", "-"), f"ORD-{year}-0002")
