from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.chits.services import create_chit, record_payment
from apps.customers.models import Customer

User = get_user_model()


class CustomerModelTests(TestCase):
    def test_save_normalizes_phone_and_tax_ids(self):
        customer = Customer.objects.create(
            name="  Priya ",
            phone=" +91 98400-12345 ",
            pan_number="abcde1234f",
            gst_number="33abcde1234f1z5",
        )
        self.assertEqual(customer.name, "Priya")
        self.assertEqual(customer.phone, "+91 98400-12345")
        self.assertEqual(customer.phone_normalized, "919840012345")
        self.assertEqual(customer.pan_number, "ABCDE1234F")
        self.assertEqual(customer.gst_number, "33ABCDE1234F1Z5")

    def test_get_or_create_by_phone_reuses_existing_customer(self):
        first = Customer.get_or_create_by_phone("98400 12345", name="Priya")
        second = Customer.get_or_create_by_phone("9840012345", name="Someone else")
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Customer.objects.count(), 1)


class CustomerApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_customers", password="admin123", role="ADMIN")
        self.collector = User.objects.create_user(username="collector_customers", password="collect123", role="COLLECTOR")
        self.customer = Customer.objects.create(name="Revathi", phone="9444000111")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_create_customer_writes_audit(self):
        self.auth_as("admin_customers", "admin123")
        response = self.client.post(
            "/api/v1/customers/",
            {"name": "Divya", "phone": "94440-00222", "email": "divya@example.com"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["phone_normalized"], "9444000222")
        self.assertTrue(AuditLog.objects.filter(action="customers.create", entity_id=response.data["id"]).exists())

    def test_duplicate_normalized_phone_is_rejected(self):
        self.auth_as("admin_customers", "admin123")
        response = self.client.post(
            "/api/v1/customers/",
            {"name": "Copy", "phone": "94440 00111"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("phone", response.data["fields"])

    def test_phone_without_digits_is_rejected(self):
        self.auth_as("admin_customers", "admin123")
        response = self.client.post("/api/v1/customers/", {"name": "Nobody", "phone": "n/a"}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_list_filters_by_phone_and_query(self):
        Customer.objects.create(name="Sundari", phone="9000011111")
        self.auth_as("collector_customers", "collect123")

        by_phone = self.client.get("/api/v1/customers/?phone=944-400-0111")
        self.assertEqual(by_phone.status_code, 200)
        self.assertEqual([row["id"] for row in by_phone.data["results"]], [str(self.customer.id)])

        by_query = self.client.get("/api/v1/customers/?q=sund")
        self.assertEqual(by_query.data["count"], 1)
        self.assertEqual(by_query.data["results"][0]["name"], "Sundari")

    def test_collector_cannot_edit_customers(self):
        self.auth_as("collector_customers", "collect123")
        response = self.client.patch(f"/api/v1/customers/{self.customer.id}/", {"name": "X"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_update_syncs_chit_and_payment_snapshots(self):
        chit = create_chit(
            customer=self.customer,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 1),
            chit_amount=Decimal("11000"),
        )
        record_payment(chit.id, Decimal("1000"), "cash", Decimal("5000"))
        self.auth_as("admin_customers", "admin123")

        response = self.client.patch(
            f"/api/v1/customers/{self.customer.id}/",
            {"name": "Revathi K", "phone": "9444000999"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        chit.refresh_from_db()
        self.assertEqual(chit.customer_name, "Revathi K")
        self.assertEqual(chit.customer_phone, "9444000999")
        self.assertEqual(chit.payments.get().customer_name, "Revathi K")

        entry = AuditLog.objects.get(action="customers.update", entity_id=str(self.customer.id))
        self.assertEqual(entry.payload["before"]["name"], "Revathi")
        self.assertEqual(entry.payload["synced_chits"], 1)
        self.assertEqual(entry.payload["synced_payments"], 1)

    def test_chit_stats_aggregate_customer_chits(self):
        first = create_chit(
            customer=self.customer,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 1),
            chit_amount=Decimal("11000"),
        )
        create_chit(
            customer=self.customer,
            start_date=date(2026, 2, 1),
            end_date=date(2027, 1, 1),
            chit_amount=Decimal("5500"),
        )
        record_payment(first.id, Decimal("1000"), "cash", Decimal("4000"))
        self.auth_as("collector_customers", "collect123")

        response = self.client.get(f"/api/v1/customers/{self.customer.id}/chit-stats/")
        self.assertEqual(response.status_code, 200)
        stats = response.data["stats"]
        self.assertEqual(stats["total_chits"], 2)
        self.assertEqual(stats["active_chits"], 2)
        self.assertEqual(stats["total_investment"], "16500.00")
        self.assertEqual(stats["total_paid"], "1000.00")
        self.assertEqual(stats["total_gold_weight"], "0.250000")
        self.assertEqual(len(response.data["chits"]), 2)

    def test_delete_customer_with_chits_is_protected(self):
        create_chit(
            customer=self.customer,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 1),
            chit_amount=Decimal("11000"),
        )
        self.auth_as("admin_customers", "admin123")
        response = self.client.delete(f"/api/v1/customers/{self.customer.id}/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "protected")
        self.assertTrue(Customer.objects.filter(pk=self.customer.pk).exists())

    def test_delete_customer_without_chits(self):
        self.auth_as("admin_customers", "admin123")
        response = self.client.delete(f"/api/v1/customers/{self.customer.id}/")
        self.assertEqual(response.status_code, 204)
        self.assertTrue(AuditLog.objects.filter(action="customers.delete").exists())
