from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Product
from apps.inventory.models import InventoryMovement, MovementReason

User = get_user_model()


class ProductModelTests(TestCase):
    def test_net_weight_and_purity_are_normalized_on_save(self):
        ring = Product.objects.create(sku="RG-001", name="Ring", weight=Decimal("4.500"), stone_weight=Decimal("0.250"), purity="")
        self.assertEqual(ring.net_weight, Decimal("4.750"))
        self.assertEqual(ring.purity, "22K")

        anklet = Product.objects.create(sku="AN-001", name="Anklet", metal="silver", purity="22K", weight=Decimal("20"))
        self.assertIsNone(anklet.purity)

    def test_price_for_rate_adds_wastage_making_and_stone(self):
        product = Product(
            sku="CH-001",
            name="Chain",
            weight=Decimal("10"),
            wastage=Decimal("8"),
            making_charges=Decimal("1500"),
            stone_price=Decimal("250.50"),
        )
        # 10*6000 + 4800 wastage + 1500 + 250.50 rounds half up
        self.assertEqual(product.price_for_rate(Decimal("6000")), Decimal("66551"))


class CatalogAuditTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="ADMIN")
        self.cashier = User.objects.create_user(username="cashier", password="cash123", role="CASHIER")

    def auth_as(self, username, password):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_product_create_update_delete_are_audited(self):
        self.auth_as("admin", "admin123")
        created = self.client.post(
            "/api/v1/products/",
            {
                "sku": "BG-001",
                "name": "Bangle",
                "category": "Bangles",
                "metal": "gold",
                "purity": "22K",
                "weight": "12.000",
                "making_charges": "2000.00",
                "price": "80000.00",
                "cost_price": "70000.00",
            },
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        product_id = created.data["id"]
        self.assertEqual(created.data["net_weight"], "12.000")
        self.assertEqual(created.data["stock"], 0)

        updated = self.client.patch(f"/api/v1/products/{product_id}/", {"price": "82000.00"}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.data["price"], "82000.00")

        deleted = self.client.delete(f"/api/v1/products/{product_id}/")
        self.assertEqual(deleted.status_code, 204)

        self.assertTrue(AuditLog.objects.filter(action="catalog.product.create", entity_id=product_id).exists())
        self.assertTrue(AuditLog.objects.filter(action="catalog.product.update", entity_id=product_id).exists())
        self.assertTrue(AuditLog.objects.filter(action="catalog.product.delete", entity_id=product_id).exists())

    def test_product_stock_adjustment_requires_reason_and_creates_inventory_movement(self):
        self.auth_as("admin", "admin123")
        product = Product.objects.create(sku="ER-001", name="Earrings", weight=Decimal("3.2"))

        missing_reason = self.client.patch(f"/api/v1/products/{product.id}/", {"stock": 5}, format="json")
        self.assertEqual(missing_reason.status_code, 400)
        self.assertEqual(missing_reason.data["success"], False)
        self.assertIn("stock_adjust_reason", missing_reason.data["fields"])
        self.assertEqual(InventoryMovement.objects.filter(product=product).count(), 0)

        adjusted = self.client.patch(
            f"/api/v1/products/{product.id}/",
            {"stock": 5, "stock_adjust_reason": "Opening count"},
            format="json",
        )
        self.assertEqual(adjusted.status_code, 200)
        self.assertEqual(adjusted.data["stock"], 5)
        self.assertTrue(adjusted.data["available"])

        movement = InventoryMovement.objects.get(product=product)
        self.assertEqual(movement.reason, MovementReason.COUNT)
        self.assertEqual(movement.pieces, 5)
        self.assertEqual(movement.net_weight, Decimal("16.000"))
        self.assertEqual(movement.note, "Opening count")

        emptied = self.client.patch(
            f"/api/v1/products/{product.id}/",
            {"stock": 0, "stock_adjust_reason": "Sent for repair"},
            format="json",
        )
        self.assertEqual(emptied.data["stock"], 0)
        self.assertFalse(emptied.data["available"])

    def test_cashier_can_list_but_not_create_products(self):
        Product.objects.create(sku="NK-001", name="Necklace", weight=Decimal("25"))
        self.auth_as("cashier", "cash123")

        listing = self.client.get("/api/v1/products/?metal=gold")
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(listing.data["count"], 1)

        created = self.client.post("/api/v1/products/", {"sku": "NK-002", "name": "Necklace"}, format="json")
        self.assertEqual(created.status_code, 403)

    def test_malformed_product_id_is_rejected(self):
        self.auth_as("admin", "admin123")
        response = self.client.get("/api/v1/products/not-a-uuid/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_id")
