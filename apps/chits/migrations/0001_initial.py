import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

PAYMENT_METHODS = [("cash", "Cash"), ("bank", "Bank"), ("upi", "UPI"), ("gold", "Gold")]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("customers", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Chit",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("chit_number", models.CharField(editable=False, max_length=32, unique=True)),
                ("customer_name", models.CharField(max_length=255)),
                ("customer_phone", models.CharField(max_length=50)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("total_installments", models.PositiveIntegerField(default=11)),
                ("chit_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("installment_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("next_due_date", models.DateField(blank=True, null=True)),
                ("paid_installments", models.PositiveIntegerField(default=0)),
                ("remaining_installments", models.PositiveIntegerField(default=11)),
                ("total_gold_weight", models.DecimalField(decimal_places=6, default=0, max_digits=14)),
                ("gold_weight_per_installment", models.DecimalField(decimal_places=6, default=0, max_digits=14)),
                ("current_gold_rate", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("gold_purity", models.CharField(default="22K", max_length=4)),
                ("gold_updated_at", models.DateTimeField(blank=True, null=True)),
                ("payment_history", models.JSONField(blank=True, default=list)),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=10)),
                ("agent_name", models.CharField(blank=True, max_length=120)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("defaulted", "Defaulted"),
                            ("cancelled", "Cancelled"),
                            ("settled", "Settled"),
                        ],
                        default="active",
                        max_length=12,
                    ),
                ),
                (
                    "settlement_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("cash", "Cash"),
                            ("gold", "Gold"),
                            ("partial_gold", "Partial gold"),
                            ("purchase_settlement", "Purchase settlement"),
                            ("chit_settlement", "Chit settlement"),
                        ],
                        max_length=24,
                    ),
                ),
                ("settlement_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("settlement_date", models.DateTimeField(blank=True, null=True)),
                ("settlement_gold_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "settlement_status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("completed", "Completed"), ("disputed", "Disputed")],
                        default="pending",
                        max_length=12,
                    ),
                ),
                ("invoice_number", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_chits",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="chits",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "ordering": ["next_due_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["status", "next_due_date"], name="chit_status_due_idx"),
                    models.Index(fields=["customer", "status"], name="chit_customer_status_idx"),
                    models.Index(fields=["customer_phone"], name="chit_customer_phone_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("chit_amount__gt", 0)), name="chit_amount_gt_zero"),
                    models.CheckConstraint(
                        condition=models.Q(("total_installments__gte", 1)), name="chit_installments_gte_one"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gte", models.F("start_date"))), name="chit_end_after_start"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChitPayment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("chit_number", models.CharField(max_length=32)),
                ("customer_name", models.CharField(max_length=255)),
                ("installment_number", models.PositiveIntegerField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("payment_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=10)),
                ("receipt_number", models.CharField(max_length=32, unique=True)),
                ("gold_rate", models.DecimalField(decimal_places=2, max_digits=12)),
                ("gold_weight", models.DecimalField(decimal_places=6, max_digits=14)),
                ("gold_purity", models.CharField(default="22K", max_length=4)),
                ("calculated_value", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        default="completed",
                        max_length=10,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("collected_by", models.CharField(default="Admin", max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "chit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="chits.chit",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="chit_payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="chit_payments",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "ordering": ["-payment_date"],
                "indexes": [
                    models.Index(fields=["chit", "installment_number"], name="chitpay_chit_installment_idx"),
                    models.Index(fields=["customer", "payment_date"], name="chitpay_customer_date_idx"),
                    models.Index(fields=["payment_date"], name="chitpay_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("chit", "installment_number"), name="unique_chit_installment"),
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="chitpay_amount_gt_zero"),
                    models.CheckConstraint(condition=models.Q(("gold_rate__gt", 0)), name="chitpay_gold_rate_gt_zero"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChitPurchaseItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, max_length=64)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("quantity", models.PositiveIntegerField(default=1)),
                (
                    "chit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="purchase_items",
                        to="chits.chit",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
    ]
