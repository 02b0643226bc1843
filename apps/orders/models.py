import uuid
from decimal import Decimal

from django.db import models

MONEY = Decimal("0.01")


class PaymentMethod(models.TextChoices):
    CASH = "CASH", "Cash"
    CARD = "CARD", "Card"
    UPI = "UPI", "UPI"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
    GOLD_EXCHANGE = "GOLD_EXCHANGE", "Gold Exchange"
    CHIT_SETTLEMENT = "CHIT_SETTLEMENT", "Chit Settlement"


MULTIPLE_PAYMENT_MODE = "Multiple"


class Order(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_id = models.CharField(max_length=32, unique=True, editable=False)
    invoice_number = models.CharField(max_length=32, unique=True, editable=False)
    cashier = models.ForeignKey(
        "accounts.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="orders"
    )
    customer = models.ForeignKey(
        "customers.Customer", null=True, blank=True, on_delete=models.SET_NULL, related_name="orders"
    )
    customer_name = models.CharField(max_length=255, blank=True)
    customer_phone = models.CharField(max_length=50, blank=True)
    customer_email = models.CharField(max_length=254, blank=True)
    customer_gst_number = models.CharField(max_length=20, blank=True)
    customer_aadhar_number = models.CharField(max_length=20, blank=True)
    customer_pan_number = models.CharField(max_length=20, blank=True)

    payment_mode = models.CharField(max_length=32, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    grand_total = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    chit = models.ForeignKey(
        "chits.Chit", null=True, blank=True, on_delete=models.SET_NULL, related_name="orders"
    )
    chit_number = models.CharField(max_length=32, blank=True)
    chit_settlement_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    chit_settlement_type = models.CharField(max_length=24, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer_phone"], name="order_customer_phone_idx"),
            models.Index(fields=["created_at"], name="order_created_idx"),
        ]

    @property
    def total_paid(self):
        return sum((payment.amount for payment in self.payments.all()), Decimal("0.00")).quantize(MONEY)

    @property
    def balance(self):
        return (self.grand_total - self.total_paid).quantize(MONEY)

    def __str__(self):
        return f"{self.order_id} ({self.invoice_number})"


class OrderLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="lines")
    product = models.ForeignKey(
        "catalog.Product", null=True, blank=True, on_delete=models.SET_NULL, related_name="order_lines"
    )
    sku = models.CharField(max_length=64, blank=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    qty = models.PositiveIntegerField(default=1)
    category = models.CharField(max_length=80, blank=True)
    metal = models.CharField(max_length=10, blank=True)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    metal_weight = models.DecimalField(max_digits=10, decimal_places=3, default=0)
    stone_weight = models.DecimalField(max_digits=10, decimal_places=3, default=0)
    net_weight = models.DecimalField(max_digits=10, decimal_places=3, default=0)

    class Meta:
        indexes = [
            models.Index(fields=["sku"], name="orderline_sku_idx"),
        ]

    @property
    def line_total(self):
        return (self.price * self.qty).quantize(MONEY)


class OrderPayment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="payments")
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    gold_weight = models.DecimalField(max_digits=14, decimal_places=6, null=True, blank=True)
    gold_rate_per_gram = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    calculated_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    chit = models.ForeignKey(
        "chits.Chit", null=True, blank=True, on_delete=models.SET_NULL, related_name="order_payments"
    )
    chit_number = models.CharField(max_length=32, blank=True)
    chit_customer_name = models.CharField(max_length=255, blank=True)
    chit_customer_phone = models.CharField(max_length=50, blank=True)
    accumulated_gold = models.DecimalField(max_digits=14, decimal_places=6, null=True, blank=True)
    chit_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    chit_gold_rate = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    gold_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    extra_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["order", "method"], name="orderpay_order_method_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gte=0), name="orderpay_amount_gte_zero"),
        ]
