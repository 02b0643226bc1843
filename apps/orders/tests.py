from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Product
from apps.chits.models import Chit
from apps.chits.services import create_chit
from apps.customers.models import Customer
from apps.inventory.models import InventoryMovement, MovementReason
from apps.inventory.services import record_movement, stock_on_hand
from apps.orders.models import Order, OrderPayment
from apps.rates.services import set_rate

User = get_user_model()


class OrderApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_orders", password="admin123", role="ADMIN")
        self.cashier = User.objects.create_user(username="cashier_orders", password="cash123", role="CASHIER")
        self.collector = User.objects.create_user(username="collector_orders", password="collect123", role="COLLECTOR")
        self.customer = Customer.objects.create(name="Nila", phone="9555000111")
        self.product = Product.objects.create(
            sku="RING-22",
            name="Ring",
            category="rings",
            metal="gold",
            purity="22K",
            weight=Decimal("4.000"),
            stone_weight=Decimal("0.500"),
            cost_price=Decimal("20000"),
            price=Decimal("30000"),
        )
        record_movement(product=self.product, reason=MovementReason.RECEIPT, pieces=5, reference="GRN-001", user=self.admin)
        self.year = timezone.localdate().year

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def stock(self):
        return stock_on_hand(self.product.id)

    def completed_chit(self, gold_weight):
        chit = create_chit(
            customer=self.customer,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 1),
            chit_amount=Decimal("11000"),
        )
        chit.paid_installments = chit.total_installments
        chit.total_gold_weight = Decimal(gold_weight)
        chit.save()
        return chit

    def place_order(self, payments, items=None, **extra):
        payload = {
            "customer": {"name": "Nila", "phone": "95550-00111"},
            "items": items if items is not None else [{"sku": "RING-22", "name": "Ring", "price": "30000", "qty": 2}],
            "payments": payments,
        }
        payload.update(extra)
        return self.client.post("/api/v1/orders/", payload, format="json")

    def test_create_order_snapshots_products_and_books_stock(self):
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order(
            items=[
                {"sku": "RING-22", "name": "Ring", "price": "30000", "qty": 2},
                {"sku": "CUSTOM-1", "name": "Engraving", "price": "500", "qty": 1, "metal_weight": "0.250"},
            ],
            payments=[
                {"method": "CASH", "amount": "40000"},
                {"method": "GOLD_EXCHANGE", "amount": "20500", "gold_weight": "3.5", "gold_rate_per_gram": "6000"},
            ],
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data["success"])
        order = response.data["order"]
        self.assertEqual(order["order_id"], f"ORD-{self.year}-0001")
        self.assertEqual(order["invoice_number"], f"INV/{self.year}/0001")
        self.assertEqual(order["subtotal"], "60500.00")
        self.assertEqual(order["grand_total"], "60500.00")
        self.assertEqual(order["total_paid"], "60500.00")
        self.assertEqual(order["balance"], "0.00")
        self.assertEqual(order["payment_mode"], "Multiple")
        self.assertEqual(str(order["customer"]), str(self.customer.id))

        lines = {line["sku"]: line for line in order["lines"]}
        self.assertEqual(lines["RING-22"]["metal_weight"], "4.000")
        self.assertEqual(lines["RING-22"]["net_weight"], "4.500")
        self.assertEqual(lines["RING-22"]["category"], "rings")
        self.assertEqual(lines["RING-22"]["cost_price"], "20000.00")
        self.assertIsNone(lines["CUSTOM-1"]["product"])
        self.assertEqual(lines["CUSTOM-1"]["metal_weight"], "0.250")

        exchange = next(p for p in order["payments"] if p["method"] == "GOLD_EXCHANGE")
        self.assertEqual(exchange["calculated_amount"], "21000.00")
        self.assertEqual(self.stock(), 3)
        self.assertTrue(AuditLog.objects.filter(action="orders.create", entity_id=order["id"]).exists())

    def test_second_order_advances_identifiers(self):
        self.auth_as("cashier_orders", "cash123")
        self.place_order([{"method": "CASH", "amount": "30000"}], items=[{"sku": "RING-22", "price": "30000"}])
        second = self.place_order([{"method": "CARD", "amount": "30000"}], items=[{"sku": "RING-22", "price": "30000"}])
        self.assertEqual(second.status_code, 201)
        self.assertEqual(second.data["order"]["order_id"], f"ORD-{self.year}-0002")
        self.assertEqual(second.data["order"]["invoice_number"], f"INV/{self.year}/0002")
        self.assertEqual(second.data["order"]["payment_mode"], "Card")
        self.assertEqual(second.data["order"]["lines"][0]["name"], "Ring")

    def test_discount_and_tax_feed_grand_total_and_balance(self):
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order(
            [{"method": "UPI", "amount": "900"}],
            items=[{"name": "Polish", "price": "1000"}],
            discount="100",
            tax="30",
        )
        self.assertEqual(response.status_code, 201)
        order = response.data["order"]
        self.assertEqual(order["grand_total"], "930.00")
        self.assertEqual(order["balance"], "30.00")

    def test_order_requires_items(self):
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order([{"method": "CASH", "amount": "10"}], items=[])
        self.assertEqual(response.status_code, 400)

    def test_gold_exchange_requires_weight_and_rate(self):
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order([{"method": "GOLD_EXCHANGE", "amount": "1000"}])
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Order.objects.exists())

    def test_selling_more_than_on_hand_is_booked_and_marks_product_unavailable(self):
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order(
            [{"method": "CASH", "amount": "180000"}],
            items=[{"sku": "RING-22", "price": "30000", "qty": 6}],
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.stock(), -1)
        self.product.refresh_from_db()
        self.assertFalse(self.product.available)

        sale = InventoryMovement.objects.get(product=self.product, reason=MovementReason.SALE)
        self.assertEqual(str(sale.order_id), response.data["order"]["id"])
        self.assertEqual(sale.reference, response.data["order"]["order_id"])
        self.assertEqual(sale.pieces, -6)
        self.assertEqual(sale.net_weight, Decimal("-27.000"))

    def test_catalog_product_without_stock_can_be_sold(self):
        bare = Product.objects.create(sku="CHAIN-18", name="Chain", weight=Decimal("8"), price=Decimal("50000"))
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order(
            [{"method": "CASH", "amount": "50000"}],
            items=[{"sku": "CHAIN-18", "price": "50000"}],
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(str(response.data["order"]["lines"][0]["product"]), str(bare.id))
        bare.refresh_from_db()
        self.assertFalse(bare.available)
        self.assertEqual(stock_on_hand(bare.id), -1)

    def test_last_piece_sold_and_restored_toggles_availability(self):
        self.auth_as("cashier_orders", "cash123")
        created = self.place_order(
            [{"method": "CASH", "amount": "150000"}],
            items=[{"sku": "RING-22", "price": "30000", "qty": 5}],
        )
        self.assertEqual(self.stock(), 0)
        self.product.refresh_from_db()
        self.assertFalse(self.product.available)

        self.auth_as("admin_orders", "admin123")
        self.client.delete(f"/api/v1/orders/{created.data['order']['id']}/")
        self.assertEqual(self.stock(), 5)
        self.product.refresh_from_db()
        self.assertTrue(self.product.available)
        reversal = InventoryMovement.objects.get(product=self.product, reason=MovementReason.SALE_REVERSAL)
        self.assertIsNone(reversal.order_id)
        self.assertEqual(reversal.reference, created.data["order"]["order_id"])

    def test_chit_settlement_uses_rate_board_and_leaves_chit_untouched(self):
        chit = self.completed_chit("2")
        set_rate("gold", "22K", "6000")
        self.auth_as("cashier_orders", "cash123")

        response = self.place_order(
            [{"method": "CHIT_SETTLEMENT", "amount": "15000", "chit": str(chit.id)}],
            items=[{"name": "Chain", "price": "15000"}],
        )
        self.assertEqual(response.status_code, 201)
        order = response.data["order"]
        payment = order["payments"][0]
        self.assertEqual(payment["gold_value"], "12000.00")
        self.assertEqual(payment["extra_amount"], "3000.00")
        self.assertEqual(payment["chit_gold_rate"], "6000.00")
        self.assertEqual(payment["accumulated_gold"], "2.000000")
        self.assertEqual(payment["chit_number"], chit.chit_number)
        self.assertEqual(payment["paid_amount"], "11000.00")
        self.assertEqual(order["chit_number"], chit.chit_number)
        self.assertEqual(order["chit_settlement_amount"], "15000.00")
        self.assertEqual(order["chit_settlement_type"], "chit_settlement")
        self.assertEqual(order["payment_mode"], "Chit Settlement")

        chit.refresh_from_db()
        self.assertEqual(chit.status, "completed")
        self.assertEqual(chit.total_gold_weight, Decimal("2"))
        self.assertIsNone(chit.settlement_amount)

    def test_chit_settlement_prefers_explicit_rate(self):
        chit = self.completed_chit("2")
        set_rate("gold", "22K", "6000")
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order(
            [{"method": "CHIT_SETTLEMENT", "amount": "15000", "chit": str(chit.id), "gold_rate": "7000"}],
            items=[{"name": "Chain", "price": "15000"}],
        )
        payment = response.data["order"]["payments"][0]
        self.assertEqual(payment["gold_value"], "14000.00")
        self.assertEqual(payment["extra_amount"], "1000.00")

    def test_chit_settlement_falls_back_to_chit_rate(self):
        chit = self.completed_chit("2")
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order(
            [{"method": "CHIT_SETTLEMENT", "amount": "8000", "chit": str(chit.id)}],
            items=[{"name": "Studs", "price": "8000"}],
        )
        payment = response.data["order"]["payments"][0]
        self.assertEqual(payment["chit_gold_rate"], "5000.00")
        self.assertEqual(payment["gold_value"], "10000.00")
        self.assertEqual(payment["extra_amount"], "0.00")

    def test_chit_settlement_rejects_active_chit(self):
        chit = create_chit(
            customer=self.customer,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 1),
            chit_amount=Decimal("11000"),
        )
        self.auth_as("cashier_orders", "cash123")
        response = self.place_order(
            [{"method": "CHIT_SETTLEMENT", "amount": "5000", "chit": str(chit.id)}],
            items=[{"name": "Studs", "price": "5000"}],
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_settlement")
        self.assertFalse(OrderPayment.objects.exists())

        missing_chit = self.place_order(
            [{"method": "CHIT_SETTLEMENT", "amount": "5000"}],
            items=[{"name": "Studs", "price": "5000"}],
        )
        self.assertEqual(missing_chit.status_code, 400)

    def test_deleting_chit_keeps_order_snapshot(self):
        chit = self.completed_chit("1")
        self.auth_as("admin_orders", "admin123")
        created = self.place_order(
            [{"method": "CHIT_SETTLEMENT", "amount": "5000", "chit": str(chit.id)}],
            items=[{"name": "Studs", "price": "5000"}],
        )
        self.assertEqual(created.status_code, 201)
        Chit.objects.filter(pk=chit.pk).delete()
        order = Order.objects.get(pk=created.data["order"]["id"])
        self.assertIsNone(order.chit_id)
        self.assertEqual(order.chit_number, chit.chit_number)

    def test_delete_order_restores_stock(self):
        self.auth_as("cashier_orders", "cash123")
        created = self.place_order([{"method": "CASH", "amount": "60000"}])
        self.assertEqual(self.stock(), 3)
        order_id = created.data["order"]["id"]

        forbidden = self.client.delete(f"/api/v1/orders/{order_id}/")
        self.assertEqual(forbidden.status_code, 403)

        self.auth_as("admin_orders", "admin123")
        response = self.client.delete(f"/api/v1/orders/{order_id}/")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["success"])
        self.assertEqual(self.stock(), 5)
        self.assertFalse(Order.objects.filter(pk=order_id).exists())
        self.assertTrue(AuditLog.objects.filter(action="orders.delete", entity_id=order_id).exists())

    def test_invoice_customer_and_list_lookups(self):
        self.auth_as("cashier_orders", "cash123")
        self.place_order([{"method": "CASH", "amount": "60000"}])

        by_invoice = self.client.get(f"/api/v1/orders/invoice/INV/{self.year}/0001/")
        self.assertEqual(by_invoice.status_code, 200)
        self.assertEqual(by_invoice.data["order"]["order_id"], f"ORD-{self.year}-0001")

        missing = self.client.get(f"/api/v1/orders/invoice/INV/{self.year}/9999/")
        self.assertEqual(missing.status_code, 404)

        by_customer = self.client.get("/api/v1/orders/customer/9555000111/")
        self.assertEqual(by_customer.status_code, 200)
        self.assertEqual(by_customer.data["total"], 1)

        by_name = self.client.get("/api/v1/orders/?customer=nil")
        self.assertEqual(by_name.data["count"], 1)
        today = self.client.get(f"/api/v1/orders/?date={timezone.localdate().isoformat()}")
        self.assertEqual(today.data["count"], 1)
        long_ago = self.client.get("/api/v1/orders/?date=2000-01-01")
        self.assertEqual(long_ago.data["count"], 0)

    def test_collector_cannot_see_orders(self):
        self.auth_as("collector_orders", "collect123")
        response = self.client.get("/api/v1/orders/")
        self.assertEqual(response.status_code, 403)

    def test_malformed_order_id(self):
        self.auth_as("cashier_orders", "cash123")
        response = self.client.get("/api/v1/orders/not-a-uuid/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_id")
