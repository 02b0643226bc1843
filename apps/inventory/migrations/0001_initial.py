import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("receipt", "Stock received"),
                            ("sale", "Sold on order"),
                            ("sale_reversal", "Order deleted"),
                            ("count", "Stock count correction"),
                        ],
                        max_length=16,
                    ),
                ),
                ("pieces", models.IntegerField()),
                ("net_weight", models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ("reference", models.CharField(max_length=64)),
                ("note", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="movements",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["product", "created_at"], name="invmove_product_created_idx"),
                    models.Index(fields=["reason"], name="invmove_reason_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("reason", "reference", "product"),
                        name="unique_inventory_reason_reference_product",
                    ),
                    models.CheckConstraint(condition=models.Q(("pieces", 0), _negated=True), name="invmove_pieces_nonzero"),
                ],
            },
        ),
    ]
