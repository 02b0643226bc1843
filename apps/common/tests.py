from django.db import IntegrityError
from django.test import SimpleTestCase

from apps.common.exceptions import DomainError, api_exception_handler, is_unique_violation


class ExceptionHandlerTests(SimpleTestCase):
    def handle(self, exc):
        return api_exception_handler(exc, {"view": None})

    def test_unique_violations_report_duplicate(self):
        sqlite = IntegrityError("UNIQUE constraint failed: chits_chitpayment.receipt_number")
        postgres = IntegrityError('duplicate key value violates unique constraint "unique_chit_installment"')
        self.assertTrue(is_unique_violation(sqlite))
        self.assertTrue(is_unique_violation(postgres))
        self.assertEqual(self.handle(sqlite).data["code"], "duplicate")
        self.assertEqual(self.handle(postgres).data["code"], "duplicate")

    def test_check_constraint_failures_are_not_reported_as_duplicates(self):
        response = self.handle(IntegrityError("CHECK constraint failed: chit_end_after_start"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "integrity")
        self.assertFalse(response.data["success"])

    def test_domain_errors_keep_their_code_and_fields(self):
        response = self.handle(DomainError("Bad line.", code="invalid_order", fields={"items": ["Bad."]}))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_order")
        self.assertEqual(response.data["fields"], {"items": ["Bad."]})
