from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.chits.models import Chit, ChitPayment, ChitPurchaseItem
from apps.chits.services import ChitPaymentError, create_chit, record_payment
from apps.customers.models import Customer
from apps.rates.services import set_rate

User = get_user_model()


def make_chit(customer, chit_amount="11000", total_installments=11, start_date=None):
    start_date = start_date or date(2026, 1, 15)
    return create_chit(
        customer=customer,
        start_date=start_date,
        end_date=start_date + timedelta(days=365),
        chit_amount=Decimal(chit_amount),
        total_installments=total_installments,
    )


def complete_chit(chit, gold_weight):
    chit.paid_installments = chit.total_installments
    chit.total_gold_weight = Decimal(gold_weight)
    chit.save()
    return chit


class ChitModelTests(TestCase):
    def setUp(self):
        self.customer = Customer.objects.create(name="Lakshmi", phone="98765 43210")

    def test_save_keeps_remaining_in_step_and_auto_completes(self):
        chit = make_chit(self.customer, total_installments=4)
        self.assertEqual(chit.remaining_installments, 4)

        chit.paid_installments = 3
        chit.save()
        self.assertEqual(chit.remaining_installments, 1)
        self.assertEqual(chit.status, "active")

        chit.paid_installments = 4
        chit.save(update_fields=["paid_installments"])
        chit.refresh_from_db()
        self.assertEqual(chit.remaining_installments, 0)
        self.assertEqual(chit.status, "completed")
        self.assertEqual(chit.end_date, timezone.localdate())

    def test_progress_labels_follow_completion_percentage(self):
        chit = make_chit(self.customer, total_installments=4)
        expectations = [(0, "new", 0), (1, "in-progress", 25), (2, "half-way", 50), (3, "almost-completed", 75)]
        for paid, label, percentage in expectations:
            chit.paid_installments = paid
            self.assertEqual(chit.completion_percentage, percentage)
            self.assertEqual(chit.progress_status, label)

        chit.status = "defaulted"
        self.assertEqual(chit.progress_status, "defaulted")

    def test_derived_amounts(self):
        chit = make_chit(self.customer)
        chit.paid_installments = 4
        chit.save()
        self.assertEqual(chit.total_paid_amount, Decimal("4000.00"))
        self.assertEqual(chit.remaining_amount, Decimal("7000.00"))

        chit.total_gold_weight = Decimal("2.5")
        chit.current_gold_rate = Decimal("6000")
        self.assertEqual(chit.accumulated_gold_value, Decimal("15000.00"))
        self.assertEqual(chit.settlement_gold_value, Decimal("0.00"))

    def test_overdue_is_derived_from_next_due_date(self):
        chit = make_chit(self.customer)
        chit.next_due_date = timezone.localdate() - timedelta(days=3)
        self.assertTrue(chit.is_overdue)
        self.assertEqual(chit.days_overdue, 3)

        chit.next_due_date = timezone.localdate()
        self.assertFalse(chit.is_overdue)
        self.assertEqual(chit.days_overdue, 0)

        chit.next_due_date = timezone.localdate() - timedelta(days=3)
        chit.status = "cancelled"
        self.assertFalse(chit.is_overdue)

    def test_installment_amount_rounds_half_up(self):
        chit = make_chit(self.customer, chit_amount="10000", total_installments=8)
        self.assertEqual(chit.installment_amount, Decimal("1250.00"))
        odd = make_chit(self.customer, chit_amount="1000", total_installments=3)
        self.assertEqual(odd.installment_amount, Decimal("333.00"))
        half = make_chit(self.customer, chit_amount="5", total_installments=2)
        self.assertEqual(half.installment_amount, Decimal("3.00"))

    def test_creation_uses_rate_board_or_default_rate(self):
        chit = make_chit(self.customer)
        self.assertEqual(chit.current_gold_rate, Decimal("5000.00"))
        self.assertEqual(chit.gold_weight_per_installment, Decimal("0.200000"))

        set_rate("gold", "22K", "6250")
        chit = make_chit(self.customer)
        self.assertEqual(chit.current_gold_rate, Decimal("6250.00"))
        self.assertEqual(chit.gold_weight_per_installment, Decimal("0.160000"))

    def test_payment_weights_accumulate_exactly(self):
        chit = make_chit(self.customer)
        rates = [Decimal("5000"), Decimal("6000"), Decimal("6250")]
        for rate in rates:
            payment, chit = record_payment(chit.id, Decimal("1000"), "cash", rate)
            self.assertEqual(payment.gold_weight, (Decimal("1000") / rate).quantize(Decimal("0.000001")))
            self.assertEqual(chit.paid_installments + chit.remaining_installments, chit.total_installments)

        weights = sum(ChitPayment.objects.filter(chit=chit).values_list("gold_weight", flat=True))
        chit.refresh_from_db()
        self.assertEqual(chit.total_gold_weight, weights)
        self.assertEqual(chit.total_gold_weight, Decimal("0.526667"))
        self.assertEqual(chit.current_gold_rate, Decimal("6250.00"))
        self.assertEqual(chit.next_due_date, date(2026, 5, 15))
        self.assertEqual([entry["installment_number"] for entry in chit.payment_history], [1, 2, 3])

    def test_payment_weight_uses_stored_amount_and_rate(self):
        chit = make_chit(self.customer)
        payment, chit = record_payment(chit.id, Decimal("1000.004"), "cash", Decimal("6000.004"))
        payment.refresh_from_db()
        self.assertEqual(payment.amount, Decimal("1000.00"))
        self.assertEqual(payment.gold_rate, Decimal("6000.00"))
        self.assertEqual(payment.gold_weight, (payment.amount / payment.gold_rate).quantize(Decimal("0.000001")))
        self.assertEqual(chit.current_gold_rate, Decimal("6000.00"))

    def test_completion_never_sets_end_before_future_start(self):
        start = timezone.localdate() + timedelta(days=10)
        chit = make_chit(self.customer, chit_amount="1000", total_installments=1, start_date=start)
        payment, chit = record_payment(chit.id, Decimal("1000"), "cash", Decimal("5000"))
        chit.refresh_from_db()
        self.assertEqual(chit.status, "completed")
        self.assertEqual(chit.end_date, start)
        self.assertEqual(payment.installment_number, 1)

    def test_installment_already_written_raises_conflict_and_leaves_chit_untouched(self):
        chit = make_chit(self.customer)
        ChitPayment.objects.create(
            chit=chit,
            customer=self.customer,
            chit_number=chit.chit_number,
            customer_name=chit.customer_name,
            installment_number=1,
            amount=Decimal("1000"),
            receipt_number="RC-OTHER-TILL",
            gold_rate=Decimal("5000"),
            gold_weight=Decimal("0.2"),
            calculated_value=Decimal("1000"),
        )

        with self.assertRaises(ChitPaymentError) as raised:
            record_payment(chit.id, Decimal("1000"), "cash", Decimal("5000"))
        self.assertEqual(raised.exception.code, "conflict")

        chit.refresh_from_db()
        self.assertEqual(chit.paid_installments, 0)
        self.assertEqual(chit.remaining_installments, 11)
        self.assertEqual(chit.total_gold_weight, Decimal("0"))
        self.assertEqual(chit.payment_history, [])
        self.assertEqual(ChitPayment.objects.filter(chit=chit).count(), 1)

    def test_installment_constraint_rejects_second_row(self):
        chit = make_chit(self.customer)
        record_payment(chit.id, Decimal("1000"), "cash", Decimal("5000"))
        with self.assertRaises(IntegrityError), transaction.atomic():
            ChitPayment.objects.create(
                chit=chit,
                customer=self.customer,
                chit_number=chit.chit_number,
                customer_name=chit.customer_name,
                installment_number=1,
                amount=Decimal("1000"),
                receipt_number="RC-SECOND-WRITE",
                gold_rate=Decimal("5000"),
                gold_weight=Decimal("0.2"),
                calculated_value=Decimal("1000"),
            )

    def test_report_overdue_chits_command(self):
        overdue = make_chit(self.customer, start_date=timezone.localdate() - timedelta(days=90))
        make_chit(self.customer, start_date=timezone.localdate())
        out = StringIO()
        call_command("report_overdue_chits", stdout=out)
        output = out.getvalue()
        self.assertIn(overdue.chit_number, output)
        self.assertIn("Overdue chits: 1", output)


class ChitApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_chits", password="admin123", role="ADMIN")
        self.cashier = User.objects.create_user(username="cashier_chits", password="cash123", role="CASHIER")
        self.collector = User.objects.create_user(username="collector_chits", password="collect123", role="COLLECTOR")
        self.customer = Customer.objects.create(name="Meena", phone="9876543210")
        self.chit = make_chit(self.customer)

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def pay(self, chit, **overrides):
        payload = {"amount": "1000", "payment_method": "cash", "current_gold_rate": "5000"}
        payload.update(overrides)
        return self.client.post(f"/api/v1/chits/{chit.id}/payment/", payload, format="json")

    def test_create_chit_derives_installment_and_due_date(self):
        self.auth_as("cashier_chits", "cash123")
        response = self.client.post(
            "/api/v1/chits/",
            {
                "customer": str(self.customer.id),
                "start_date": "2026-03-10",
                "end_date": "2027-02-10",
                "chit_amount": "11000",
                "total_installments": 11,
                "agent_name": "Ravi",
            },
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data["success"])
        chit = response.data["chit"]
        self.assertEqual(chit["installment_amount"], "1000.00")
        self.assertEqual(chit["next_due_date"], "2026-04-10")
        self.assertEqual(chit["status"], "active")
        self.assertEqual(chit["customer_name"], "Meena")
        self.assertEqual(chit["remaining_installments"], 11)
        self.assertTrue(chit["chit_number"].startswith(f"CHIT{timezone.localdate().year}"))
        self.assertTrue(AuditLog.objects.filter(action="chits.create", entity_id=chit["id"]).exists())

    def test_create_chit_rejects_end_before_start(self):
        self.auth_as("cashier_chits", "cash123")
        response = self.client.post(
            "/api/v1/chits/",
            {
                "customer": str(self.customer.id),
                "start_date": "2026-03-10",
                "end_date": "2026-03-01",
                "chit_amount": "11000",
            },
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("end_date", response.data["fields"])

    def test_payment_updates_ledger_and_history(self):
        self.auth_as("collector_chits", "collect123")
        response = self.pay(self.chit, current_gold_rate="6000", notes="first")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["payment"]["installment_number"], 1)
        self.assertEqual(response.data["payment"]["gold_weight"], "0.166667")
        self.assertEqual(response.data["payment"]["collected_by"], "Admin")
        self.assertEqual(response.data["chit"]["paid_installments"], 1)
        self.assertEqual(response.data["chit"]["remaining_installments"], 10)
        self.assertEqual(response.data["chit"]["next_due_date"], "2026-03-15")
        self.assertEqual(len(response.data["chit"]["payment_history"]), 1)
        self.assertTrue(response.data["payment"]["receipt_number"].startswith("RC"))

    def test_payment_requires_positive_gold_rate(self):
        self.auth_as("cashier_chits", "cash123")
        missing = self.client.post(f"/api/v1/chits/{self.chit.id}/payment/", {"amount": "1000"}, format="json")
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.data["code"], "invalid_payment")

        zero = self.pay(self.chit, current_gold_rate="0")
        self.assertEqual(zero.status_code, 400)
        self.assertEqual(zero.data["code"], "invalid_payment")

        negative_amount = self.pay(self.chit, amount="-5")
        self.assertEqual(negative_amount.status_code, 400)
        self.assertFalse(ChitPayment.objects.exists())

    def test_wrong_installment_number_is_rejected_without_state_change(self):
        self.auth_as("cashier_chits", "cash123")
        response = self.pay(self.chit, installment_number=3)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "installment_mismatch")

        self.chit.refresh_from_db()
        self.assertEqual(self.chit.paid_installments, 0)
        self.assertEqual(self.chit.remaining_installments, 11)
        self.assertEqual(self.chit.total_gold_weight, Decimal("0"))
        self.assertEqual(self.chit.payment_history, [])
        self.assertFalse(ChitPayment.objects.exists())

        ok = self.pay(self.chit, installment_number=1)
        self.assertEqual(ok.status_code, 201)

    def test_completed_chit_rejects_further_payments(self):
        chit = make_chit(self.customer, chit_amount="2000", total_installments=2)
        self.auth_as("cashier_chits", "cash123")
        self.assertEqual(self.pay(chit).status_code, 201)
        last = self.pay(chit)
        self.assertEqual(last.status_code, 201)
        self.assertEqual(last.data["chit"]["status"], "completed")
        self.assertEqual(last.data["chit"]["end_date"], timezone.localdate().isoformat())

        rejected = self.pay(chit)
        self.assertEqual(rejected.status_code, 400)
        self.assertEqual(rejected.data["code"], "invalid_state")
        self.assertEqual(ChitPayment.objects.filter(chit=chit).count(), 2)

    def test_future_start_chit_completes_on_final_payment(self):
        start = timezone.localdate() + timedelta(days=10)
        chit = make_chit(self.customer, chit_amount="1000", total_installments=1, start_date=start)
        self.auth_as("cashier_chits", "cash123")
        response = self.pay(chit)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["chit"]["status"], "completed")
        self.assertEqual(response.data["chit"]["end_date"], start.isoformat())
        chit.refresh_from_db()
        self.assertEqual(chit.paid_installments, 1)

    def test_payment_for_installment_written_elsewhere_returns_conflict(self):
        ChitPayment.objects.create(
            chit=self.chit,
            customer=self.customer,
            chit_number=self.chit.chit_number,
            customer_name=self.chit.customer_name,
            installment_number=1,
            amount=Decimal("1000"),
            receipt_number="RC-OTHER-TILL",
            gold_rate=Decimal("5000"),
            gold_weight=Decimal("0.2"),
            calculated_value=Decimal("1000"),
        )
        self.auth_as("cashier_chits", "cash123")
        response = self.pay(self.chit)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "conflict")
        self.chit.refresh_from_db()
        self.assertEqual(self.chit.paid_installments, 0)
        self.assertEqual(self.chit.remaining_installments, 11)
        self.assertEqual(ChitPayment.objects.filter(chit=self.chit).count(), 1)

    def test_duplicate_receipt_number_is_rejected(self):
        self.auth_as("cashier_chits", "cash123")
        self.assertEqual(self.pay(self.chit, receipt_number="RC-MANUAL-1").status_code, 201)
        other = make_chit(self.customer)
        duplicate = self.pay(other, receipt_number="RC-MANUAL-1")
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.data["code"], "duplicate")
        other.refresh_from_db()
        self.assertEqual(other.paid_installments, 0)

    def test_generated_receipt_numbers_are_unique(self):
        self.auth_as("cashier_chits", "cash123")
        receipts = {self.pay(self.chit).data["payment"]["receipt_number"] for _ in range(5)}
        self.assertEqual(len(receipts), 5)

    def test_direct_payment_endpoint_updates_chit(self):
        self.auth_as("cashier_chits", "cash123")
        response = self.client.post(
            "/api/v1/chit-payments/",
            {"chit": str(self.chit.id), "amount": "1000", "payment_method": "upi", "current_gold_rate": "5000"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.chit.refresh_from_db()
        self.assertEqual(self.chit.paid_installments, 1)
        self.assertEqual(self.chit.payment_method, "upi")
        self.assertEqual(self.chit.total_gold_weight, Decimal("0.200000"))

    def test_settling_non_completed_chit_fails_on_both_endpoints(self):
        self.auth_as("cashier_chits", "cash123")
        cash = self.client.post(
            f"/api/v1/chits/{self.chit.id}/settle/",
            {"settlement_type": "cash", "settlement_amount": "11000"},
            format="json",
        )
        self.assertEqual(cash.status_code, 400)
        self.assertEqual(cash.data["code"], "invalid_settlement")

        purchase = self.client.post(
            f"/api/v1/chits/{self.chit.id}/settle-purchase/",
            {"purchase_amount": "12000", "invoice_number": "INV/2026/0001"},
            format="json",
        )
        self.assertEqual(purchase.status_code, 400)
        self.assertEqual(purchase.data["code"], "invalid_settlement")
        self.chit.refresh_from_db()
        self.assertEqual(self.chit.status, "active")

    def test_gold_settlement_uses_weight_times_rate(self):
        complete_chit(self.chit, "5")
        self.auth_as("cashier_chits", "cash123")

        missing_rate = self.client.post(
            f"/api/v1/chits/{self.chit.id}/settle/", {"settlement_type": "gold"}, format="json"
        )
        self.assertEqual(missing_rate.status_code, 400)

        response = self.client.post(
            f"/api/v1/chits/{self.chit.id}/settle/",
            {"settlement_type": "gold", "settlement_amount": "1", "settlement_gold_rate": "6000"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        chit = response.data["chit"]
        self.assertEqual(chit["status"], "settled")
        self.assertEqual(chit["settlement_amount"], "30000.00")
        self.assertEqual(chit["settlement_gold_value"], "30000.00")
        self.assertEqual(chit["settlement_status"], "completed")
        self.assertIsNotNone(chit["settlement_date"])

        again = self.client.post(
            f"/api/v1/chits/{self.chit.id}/settle/", {"settlement_type": "cash"}, format="json"
        )
        self.assertEqual(again.status_code, 400)

    def test_cash_settlement_takes_amount_as_given(self):
        complete_chit(self.chit, "2")
        self.auth_as("admin_chits", "admin123")
        response = self.client.post(
            f"/api/v1/chits/{self.chit.id}/settle/",
            {"settlement_type": "cash", "settlement_amount": "11500"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["chit"]["settlement_amount"], "11500.00")
        self.assertEqual(response.data["chit"]["settlement_gold_value"], "0.00")

    def test_purchase_settlement_records_invoice_and_items(self):
        complete_chit(self.chit, "2")
        self.chit.notes = "Prefers bangles"
        self.chit.save()
        self.auth_as("cashier_chits", "cash123")

        wrong_type = self.client.post(
            f"/api/v1/chits/{self.chit.id}/settle-purchase/",
            {"purchase_amount": "12000", "invoice_number": "INV/2026/0007", "settlement_type": "cash"},
            format="json",
        )
        self.assertEqual(wrong_type.status_code, 400)

        response = self.client.post(
            f"/api/v1/chits/{self.chit.id}/settle-purchase/",
            {
                "purchase_amount": "12000",
                "invoice_number": "INV/2026/0007",
                "items": [{"name": "Bangle", "sku": "BG-1", "price": "12000", "quantity": 1}],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        chit = response.data["chit"]
        self.assertEqual(chit["status"], "settled")
        self.assertEqual(chit["settlement_type"], "purchase_settlement")
        self.assertEqual(chit["settlement_amount"], "12000.00")
        self.assertEqual(chit["invoice_number"], "INV/2026/0007")
        self.assertTrue(chit["notes"].endswith("Settled for purchase - Invoice: INV/2026/0007"))
        self.assertTrue(chit["notes"].startswith("Prefers bangles"))
        self.assertEqual(ChitPurchaseItem.objects.filter(chit=self.chit).count(), 1)
        self.assertEqual(chit["purchase_items"][0]["sku"], "BG-1")

    def test_status_endpoint_allows_only_lateral_exits(self):
        self.auth_as("cashier_chits", "cash123")
        url = f"/api/v1/chits/{self.chit.id}/status/"

        bogus = self.client.patch(url, {"status": "paused"}, format="json")
        self.assertEqual(bogus.status_code, 400)
        self.assertEqual(bogus.data["code"], "invalid")

        to_settled = self.client.patch(url, {"status": "settled"}, format="json")
        self.assertEqual(to_settled.status_code, 400)
        to_completed = self.client.patch(url, {"status": "completed"}, format="json")
        self.assertEqual(to_completed.status_code, 400)

        defaulted = self.client.patch(url, {"status": "defaulted"}, format="json")
        self.assertEqual(defaulted.status_code, 200)
        self.assertEqual(defaulted.data["chit"]["status"], "defaulted")

        back = self.client.patch(url, {"status": "active"}, format="json")
        self.assertEqual(back.status_code, 400)
        self.assertEqual(back.data["code"], "invalid_state")

    def test_update_only_touches_editable_fields(self):
        self.auth_as("cashier_chits", "cash123")
        response = self.client.patch(
            f"/api/v1/chits/{self.chit.id}/",
            {"notes": "Call before visiting", "agent_name": "Suresh", "chit_number": "CHIT-HACK", "paid_installments": 9},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.chit.refresh_from_db()
        self.assertEqual(self.chit.notes, "Call before visiting")
        self.assertEqual(self.chit.agent_name, "Suresh")
        self.assertNotEqual(self.chit.chit_number, "CHIT-HACK")
        self.assertEqual(self.chit.paid_installments, 0)

    def test_delete_cascades_payments_and_customer_stats_drop(self):
        other = make_chit(self.customer, chit_amount="22000")
        record_payment(self.chit.id, Decimal("1000"), "cash", Decimal("5000"))
        record_payment(self.chit.id, Decimal("1000"), "cash", Decimal("5000"))
        record_payment(other.id, Decimal("2000"), "cash", Decimal("5000"))
        self.auth_as("admin_chits", "admin123")

        before = self.client.get(f"/api/v1/customers/{self.customer.id}/chit-stats/").data["stats"]
        self.assertEqual(before["total_chits"], 2)
        self.assertEqual(before["total_paid"], "4000.00")
        self.assertEqual(before["total_investment"], "33000.00")

        deleted = self.client.delete(f"/api/v1/chits/{self.chit.id}/")
        self.assertEqual(deleted.status_code, 200)
        self.assertFalse(ChitPayment.objects.filter(chit_id=self.chit.id).exists())
        self.assertEqual(ChitPayment.objects.count(), 1)

        after = self.client.get(f"/api/v1/customers/{self.customer.id}/chit-stats/").data["stats"]
        self.assertEqual(after["total_chits"], 1)
        self.assertEqual(after["total_paid"], "2000.00")
        self.assertEqual(after["total_investment"], "22000.00")
        self.assertEqual(after["total_gold_weight"], "0.400000")

    def test_collector_cannot_settle_or_delete(self):
        complete_chit(self.chit, "1")
        self.auth_as("collector_chits", "collect123")
        settle = self.client.post(f"/api/v1/chits/{self.chit.id}/settle/", {"settlement_type": "cash"}, format="json")
        self.assertEqual(settle.status_code, 403)
        delete = self.client.delete(f"/api/v1/chits/{self.chit.id}/")
        self.assertEqual(delete.status_code, 403)

    def test_identifier_errors(self):
        self.auth_as("cashier_chits", "cash123")
        malformed = self.client.post("/api/v1/chits/abc/payment/", {"amount": "1000"}, format="json")
        self.assertEqual(malformed.status_code, 400)
        self.assertEqual(malformed.data["code"], "invalid_id")

        missing = self.client.get("/api/v1/chits/00000000-0000-0000-0000-000000000000/")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.data["code"], "not_found")

        history = self.client.get("/api/v1/chit-payments/chit/not-a-uuid/")
        self.assertEqual(history.status_code, 400)
        self.assertEqual(history.data["code"], "invalid_id")

    def test_list_filters_and_search(self):
        other_customer = Customer.objects.create(name="Kavya", phone="9000000001")
        other = make_chit(other_customer)
        other.status = "defaulted"
        other.save()
        self.auth_as("cashier_chits", "cash123")

        active = self.client.get("/api/v1/chits/?status=active")
        self.assertEqual(active.data["count"], 1)
        self.assertEqual(active.data["results"][0]["id"], str(self.chit.id))

        by_phone = self.client.get("/api/v1/chits/?phone=90000")
        self.assertEqual(by_phone.data["count"], 1)

        search = self.client.get("/api/v1/chits/search/kavya/")
        self.assertEqual(search.status_code, 200)
        self.assertEqual(len(search.data["chits"]), 1)

    def test_customer_phone_lookups(self):
        completed = complete_chit(make_chit(self.customer), "3")
        self.auth_as("cashier_chits", "cash123")

        short = self.client.get("/api/v1/chits/customer/98765/")
        self.assertEqual(short.status_code, 400)

        all_chits = self.client.get("/api/v1/chits/customer/98765-43210/")
        self.assertEqual(all_chits.status_code, 200)
        self.assertEqual(len(all_chits.data["chits"]), 2)

        only_completed = self.client.get("/api/v1/chits/customer/9876543210/completed/")
        self.assertEqual(only_completed.status_code, 200)
        self.assertEqual([c["id"] for c in only_completed.data["chits"]], [str(completed.id)])

    def test_stats_summary(self):
        record_payment(self.chit.id, Decimal("1000"), "cash", Decimal("5000"))
        settled = complete_chit(make_chit(self.customer), "5")
        settled.status = "settled"
        settled.settlement_type = "gold"
        settled.settlement_amount = Decimal("30000")
        settled.save()
        overdue = make_chit(self.customer, start_date=timezone.localdate() - timedelta(days=70))
        self.auth_as("cashier_chits", "cash123")

        response = self.client.get("/api/v1/chits/stats/summary/")
        self.assertEqual(response.status_code, 200)
        stats = response.data["stats"]
        self.assertEqual(stats["total_chits"], 3)
        self.assertEqual(stats["active_chits"], 2)
        self.assertEqual(stats["settled_chits"], 1)
        self.assertGreaterEqual(stats["overdue_chits"], 1)
        self.assertEqual(stats["total_collection"], "12000.00")
        self.assertEqual(stats["pending_collection"], "21000.00")
        self.assertEqual(stats["total_gold_weight"], "5.200000")
        self.assertEqual(stats["settled_breakdown"][0]["settlement_type"], "gold")
        self.assertEqual(stats["settled_breakdown"][0]["total_amount"], "30000.00")
        self.assertIsNotNone(overdue)


class ChitPaymentQueryTests(APITestCase):
    def setUp(self):
        self.cashier = User.objects.create_user(username="cashier_pay", password="cash123", role="CASHIER")
        self.customer = Customer.objects.create(name="Anita", phone="9123456780")
        self.chit = make_chit(self.customer)
        self.payments = [
            record_payment(self.chit.id, Decimal("1000"), method, Decimal("5000"))[0]
            for method in ("cash", "upi", "upi")
        ]
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": "cashier_pay", "password": "cash123"},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_history_for_chit_is_newest_installment_first(self):
        response = self.client.get(f"/api/v1/chit-payments/chit/{self.chit.id}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 3)
        self.assertEqual([p["installment_number"] for p in response.data["results"]], [3, 2, 1])

    def test_payment_stats_count_by_method(self):
        response = self.client.get("/api/v1/chit-payments/stats/")
        self.assertEqual(response.status_code, 200)
        stats = response.data["stats"]
        self.assertEqual(stats["total_payments"], 3)
        self.assertEqual(stats["total_amount"], "3000.00")
        self.assertEqual(stats["upi_payments"], 2)
        self.assertEqual(stats["cash_payments"], 1)
        self.assertEqual(stats["total_gold_weight"], "0.600000")
        self.assertEqual({row["payment_method"] for row in stats["by_method"]}, {"cash", "upi"})

    def test_receipt_customer_recent_and_search_lookups(self):
        receipt = self.payments[1].receipt_number
        by_receipt = self.client.get(f"/api/v1/chit-payments/receipt/{receipt}/")
        self.assertEqual(by_receipt.status_code, 200)
        self.assertEqual(by_receipt.data["payment"]["installment_number"], 2)
        self.assertEqual(by_receipt.data["payment"]["customer_phone"], "9123456780")

        missing = self.client.get("/api/v1/chit-payments/receipt/RC-NOPE/")
        self.assertEqual(missing.status_code, 404)

        by_customer = self.client.get(f"/api/v1/chit-payments/customer/{self.customer.id}/")
        self.assertEqual(by_customer.data["count"], 3)

        recent = self.client.get("/api/v1/chit-payments/recent/?limit=2")
        self.assertEqual(len(recent.data["payments"]), 2)

        search = self.client.get(f"/api/v1/chit-payments/search/{self.chit.chit_number}/")
        self.assertEqual(len(search.data["payments"]), 3)

    def test_customer_rename_syncs_chit_snapshots(self):
        response = self.client.patch(
            f"/api/v1/customers/{self.customer.id}/", {"name": "Anita R", "phone": "9123456789"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.chit.refresh_from_db()
        self.assertEqual(self.chit.customer_name, "Anita R")
        self.assertEqual(self.chit.customer_phone, "9123456789")
        self.assertFalse(ChitPayment.objects.exclude(customer_name="Anita R").exists())
        self.assertEqual(Chit.objects.get(pk=self.chit.pk).chit_number, self.chit.chit_number)
