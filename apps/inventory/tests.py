from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Product
from apps.inventory.models import InventoryMovement, MovementReason
from apps.inventory.services import StockError, record_movement, stock_on_hand, sync_availability

User = get_user_model()


class InventoryMovementModelTests(TestCase):
    def setUp(self):
        self.ring = Product.objects.create(sku="RG-100", name="Solitaire ring", weight=Decimal("3.5"), stone_weight=Decimal("0.25"))

    def test_net_weight_follows_product_weight(self):
        movement = InventoryMovement.objects.create(product=self.ring, reason=MovementReason.RECEIPT, pieces=4, reference="GRN-1")
        self.assertEqual(movement.net_weight, Decimal("15.000"))

    def test_reason_fixes_the_sign_of_pieces(self):
        with self.assertRaises(ValidationError):
            InventoryMovement.objects.create(product=self.ring, reason=MovementReason.SALE, pieces=2, reference="ORD-X")
        with self.assertRaises(ValidationError):
            InventoryMovement.objects.create(product=self.ring, reason=MovementReason.RECEIPT, pieces=-2, reference="GRN-X")
        with self.assertRaises(ValidationError):
            InventoryMovement.objects.create(product=self.ring, reason=MovementReason.COUNT, pieces=0, reference="CNT-X")
        self.assertFalse(InventoryMovement.objects.exists())

    def test_count_cannot_leave_negative_pieces(self):
        record_movement(product=self.ring, reason=MovementReason.RECEIPT, pieces=2, reference="GRN-2")
        with self.assertRaises(StockError):
            record_movement(product=self.ring, reason=MovementReason.COUNT, pieces=-3, reference="CNT-1")
        self.assertEqual(stock_on_hand(self.ring.id), 2)

    def test_sync_availability_tracks_pieces_on_hand(self):
        untracked = Product.objects.create(sku="PD-1", name="Pendant", weight=Decimal("2"), available=False)
        record_movement(product=self.ring, reason=MovementReason.RECEIPT, pieces=1, reference="GRN-3")
        self.ring.refresh_from_db()
        self.assertTrue(self.ring.available)

        record_movement(product=self.ring, reason=MovementReason.COUNT, pieces=-1, reference="CNT-2")
        sync_availability([self.ring.id, untracked.id])
        self.ring.refresh_from_db()
        untracked.refresh_from_db()
        self.assertFalse(self.ring.available)
        self.assertFalse(untracked.available)


class InventoryApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="ADMIN")
        self.cashier = User.objects.create_user(username="cashier", password="cash123", role="CASHIER")
        self.collector = User.objects.create_user(username="collector", password="collect123", role="COLLECTOR")
        self.ring = Product.objects.create(sku="RG-100", name="Solitaire ring", weight=Decimal("3.5"))
        self.chain = Product.objects.create(sku="CH-100", name="Rope chain", weight=Decimal("18"))
        self.anklet = Product.objects.create(sku="AN-100", name="Anklet", metal="silver", weight=Decimal("40"))

    def auth_as(self, username, password):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def receive(self, product, pieces, reference):
        return self.client.post(
            "/api/v1/inventory/movements/",
            {"product": str(product.id), "reason": "receipt", "pieces": pieces, "reference": reference},
            format="json",
        )

    def test_stock_receipt_is_audited_and_weighed(self):
        self.auth_as("admin", "admin123")
        response = self.receive(self.ring, 3, "GRN-001")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["sku"], "RG-100")
        self.assertEqual(response.data["net_weight"], "10.500")
        self.assertEqual(response.data["created_by_username"], "admin")
        self.assertTrue(AuditLog.objects.filter(action="inventory.receipt.create", entity_id=response.data["id"]).exists())
        self.assertEqual(stock_on_hand(self.ring.id), 3)

    def test_manual_movements_reject_sale_reasons_and_repeated_references(self):
        self.auth_as("admin", "admin123")
        sale = self.client.post(
            "/api/v1/inventory/movements/",
            {"product": str(self.ring.id), "reason": "sale", "pieces": -1, "reference": "ORD-1"},
            format="json",
        )
        self.assertEqual(sale.status_code, 400)
        self.assertIn("reason", sale.data["fields"])

        negative = self.receive(self.ring, -1, "GRN-002")
        self.assertEqual(negative.status_code, 400)
        self.assertIn("pieces", negative.data["fields"])

        self.assertEqual(self.receive(self.ring, 1, "GRN-003").status_code, 201)
        repeated = self.receive(self.ring, 1, "GRN-003")
        self.assertEqual(repeated.status_code, 400)
        self.assertIn("reference", repeated.data["fields"])
        self.assertEqual(stock_on_hand(self.ring.id), 1)

    def test_count_below_zero_is_rejected(self):
        self.auth_as("admin", "admin123")
        response = self.client.post(
            "/api/v1/inventory/movements/",
            {"product": str(self.chain.id), "reason": "count", "pieces": -2, "reference": "CNT-001"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_stock")
        self.assertFalse(InventoryMovement.objects.exists())

    def test_movements_filter_by_product_and_reason(self):
        record_movement(product=self.ring, reason=MovementReason.RECEIPT, pieces=5, reference="GRN-1", user=self.admin)
        record_movement(product=self.chain, reason=MovementReason.RECEIPT, pieces=1, reference="GRN-2", user=self.admin)
        record_movement(product=self.ring, reason=MovementReason.COUNT, pieces=-1, reference="CNT-1", user=self.admin)
        self.auth_as("cashier", "cash123")

        by_product = self.client.get(f"/api/v1/inventory/movements/?product={self.ring.id}")
        self.assertEqual(by_product.status_code, status.HTTP_200_OK)
        self.assertEqual(by_product.data["count"], 2)

        counts = self.client.get(f"/api/v1/inventory/movements/?product={self.ring.id}&reason=count")
        self.assertEqual(counts.data["count"], 1)
        self.assertEqual(counts.data["results"][0]["pieces"], -1)

        bad_id = self.client.get("/api/v1/inventory/movements/?product=nope")
        self.assertEqual(bad_id.status_code, 400)
        self.assertEqual(bad_id.data["code"], "invalid_id")

    def test_stock_sheet_reports_pieces_weight_and_metal_totals(self):
        record_movement(product=self.ring, reason=MovementReason.RECEIPT, pieces=2, reference="GRN-1")
        record_movement(product=self.chain, reason=MovementReason.RECEIPT, pieces=1, reference="GRN-2")
        record_movement(product=self.anklet, reason=MovementReason.RECEIPT, pieces=3, reference="GRN-3")
        self.auth_as("cashier", "cash123")

        response = self.client.get("/api/v1/inventory/stock/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        items = {item["sku"]: item for item in response.data["items"]}
        self.assertEqual(items["RG-100"]["stock"], 2)
        self.assertEqual(items["RG-100"]["stock_weight"], "7.000")
        self.assertTrue(items["RG-100"]["available"])

        totals = {(row["metal"], row["purity"]): row for row in response.data["totals"]}
        self.assertEqual(totals[("gold", "22K")]["pieces"], 3)
        self.assertEqual(totals[("gold", "22K")]["net_weight"], "25.000")
        self.assertEqual(totals[("silver", None)]["net_weight"], "120.000")

        silver = self.client.get("/api/v1/inventory/stock/?metal=silver")
        self.assertEqual([item["sku"] for item in silver.data["items"]], ["AN-100"])

    def test_collector_cannot_view_inventory(self):
        self.auth_as("collector", "collect123")
        response = self.client.get("/api/v1/inventory/movements/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cashier_cannot_book_stock(self):
        self.auth_as("cashier", "cash123")
        self.assertEqual(self.receive(self.ring, 1, "GRN-9").status_code, status.HTTP_403_FORBIDDEN)

    def test_inventory_movements_require_authentication(self):
        response = self.client.get("/api/v1/inventory/movements/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
