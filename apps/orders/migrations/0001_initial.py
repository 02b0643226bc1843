import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("chits", "0001_initial"),
        ("customers", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_id", models.CharField(editable=False, max_length=32, unique=True)),
                ("invoice_number", models.CharField(editable=False, max_length=32, unique=True)),
                ("customer_name", models.CharField(blank=True, max_length=255)),
                ("customer_phone", models.CharField(blank=True, max_length=50)),
                ("customer_email", models.CharField(blank=True, max_length=254)),
                ("customer_gst_number", models.CharField(blank=True, max_length=20)),
                ("customer_aadhar_number", models.CharField(blank=True, max_length=20)),
                ("customer_pan_number", models.CharField(blank=True, max_length=20)),
                ("payment_mode", models.CharField(blank=True, max_length=32)),
                ("subtotal", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("discount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("tax", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("grand_total", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("chit_number", models.CharField(blank=True, max_length=32)),
                (
                    "chit_settlement_amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                ("chit_settlement_type", models.CharField(blank=True, max_length=24)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "cashier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "chit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="chits.chit",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["customer_phone"], name="order_customer_phone_idx"),
                    models.Index(fields=["created_at"], name="order_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLine",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(blank=True, max_length=64)),
                ("name", models.CharField(max_length=255)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("qty", models.PositiveIntegerField(default=1)),
                ("category", models.CharField(blank=True, max_length=80)),
                ("metal", models.CharField(blank=True, max_length=10)),
                ("cost_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("metal_weight", models.DecimalField(decimal_places=3, default=0, max_digits=10)),
                ("stone_weight", models.DecimalField(decimal_places=3, default=0, max_digits=10)),
                ("net_weight", models.DecimalField(decimal_places=3, default=0, max_digits=10)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_lines",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["sku"], name="orderline_sku_idx")],
            },
        ),
        migrations.CreateModel(
            name="OrderPayment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("CASH", "Cash"),
                            ("CARD", "Card"),
                            ("UPI", "UPI"),
                            ("BANK_TRANSFER", "Bank Transfer"),
                            ("GOLD_EXCHANGE", "Gold Exchange"),
                            ("CHIT_SETTLEMENT", "Chit Settlement"),
                        ],
                        max_length=20,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("gold_weight", models.DecimalField(blank=True, decimal_places=6, max_digits=14, null=True)),
                ("gold_rate_per_gram", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("calculated_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("chit_number", models.CharField(blank=True, max_length=32)),
                ("chit_customer_name", models.CharField(blank=True, max_length=255)),
                ("chit_customer_phone", models.CharField(blank=True, max_length=50)),
                ("accumulated_gold", models.DecimalField(blank=True, decimal_places=6, max_digits=14, null=True)),
                ("chit_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("paid_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("chit_gold_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("gold_value", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("extra_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "chit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_payments",
                        to="chits.chit",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["order", "method"], name="orderpay_order_method_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gte", 0)), name="orderpay_amount_gte_zero"),
                ],
            },
        ),
    ]
