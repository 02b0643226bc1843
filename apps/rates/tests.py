from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Product
from apps.rates.models import Rate
from apps.rates.services import current_gold_rate, seed_rates, set_rate

User = get_user_model()


class RateBoardTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_rates", password="admin123", role="ADMIN")
        self.cashier = User.objects.create_user(username="cashier_rates", password="cash123", role="CASHIER")
        self.ring_22k = Product.objects.create(
            sku="RG-22",
            name="Ring 22K",
            purity="22K",
            weight=Decimal("5"),
            wastage=Decimal("10"),
            making_charges=Decimal("500"),
        )
        self.ring_18k = Product.objects.create(sku="RG-18", name="Ring 18K", purity="18K", weight=Decimal("5"), price=Decimal("100"))
        self.anklet = Product.objects.create(sku="AN-1", name="Anklet", metal="silver", weight=Decimal("30"), stone_price=Decimal("49.50"))

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_set_gold_rate_reprices_only_matching_purity(self):
        rate, updated = set_rate("gold", "22K", "6000")
        self.assertEqual(rate.price, Decimal("6000.00"))
        self.assertEqual(updated, 1)

        self.ring_22k.refresh_from_db()
        self.ring_18k.refresh_from_db()
        # 5*6000 + 10% wastage + 500 making
        self.assertEqual(self.ring_22k.price, Decimal("33500.00"))
        self.assertEqual(self.ring_18k.price, Decimal("100.00"))
        self.assertEqual(current_gold_rate(), Decimal("6000.00"))

    def test_silver_rate_has_no_purity_and_upserts(self):
        set_rate("silver", "22K", "80")
        rate, updated = set_rate("silver", None, "81")
        self.assertIsNone(rate.purity)
        self.assertEqual(updated, 1)
        self.assertEqual(Rate.objects.filter(metal="silver").count(), 1)

        self.anklet.refresh_from_db()
        # 30*81 + 49.50 stone rounds half up
        self.assertEqual(self.anklet.price, Decimal("2480.00"))

    def test_invalid_purity_falls_back_to_22k(self):
        rate, _ = set_rate("gold", "14K", "5000")
        self.assertEqual(rate.purity, "22K")

    def test_seed_does_not_overwrite_existing_rates(self):
        set_rate("gold", "24K", "7000")
        created = seed_rates()
        self.assertEqual(len(created), 3)
        self.assertEqual(Rate.objects.count(), 4)
        self.assertEqual(Rate.objects.get(metal="gold", purity="24K").price, Decimal("7000.00"))

    def test_put_rate_endpoint_returns_envelope_and_audits(self):
        self.auth_as("admin_rates", "admin123")
        response = self.client.put("/api/v1/rates/gold/", {"price": "6100", "purity": "22K"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["updated_products"], 1)
        self.assertEqual(response.data["rate"]["price"], "6100.00")
        self.assertTrue(AuditLog.objects.filter(action="rates.update").exists())

        listing = self.client.get("/api/v1/rates/")
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.data), 1)

    def test_negative_price_is_rejected(self):
        self.auth_as("admin_rates", "admin123")
        response = self.client.put("/api/v1/rates/gold/", {"price": "-1"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("price", response.data["fields"])

    def test_cashier_cannot_update_rates(self):
        self.auth_as("cashier_rates", "cash123")
        response = self.client.put("/api/v1/rates/gold/", {"price": "6100"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_seed_endpoint(self):
        self.auth_as("admin_rates", "admin123")
        response = self.client.post("/api/v1/rates/seed/", {}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["created"], 4)
