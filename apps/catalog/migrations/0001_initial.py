import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(db_index=True, max_length=64, unique=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("category", models.CharField(blank=True, max_length=80)),
                (
                    "metal",
                    models.CharField(choices=[("gold", "Gold"), ("silver", "Silver")], default="gold", max_length=10),
                ),
                (
                    "purity",
                    models.CharField(
                        blank=True, choices=[("24K", "24K"), ("22K", "22K"), ("18K", "18K")], max_length=4, null=True
                    ),
                ),
                ("weight", models.DecimalField(decimal_places=3, default=0, max_digits=10)),
                ("stone_weight", models.DecimalField(decimal_places=3, default=0, max_digits=10)),
                ("net_weight", models.DecimalField(decimal_places=3, default=0, max_digits=10)),
                ("making_charges", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("wastage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("stone_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("cost_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("description", models.TextField(blank=True)),
                ("available", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["metal", "purity"], name="product_metal_purity_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("weight__gte", 0)), name="product_weight_gte_zero"),
                    models.CheckConstraint(condition=models.Q(("price__gte", 0)), name="product_price_gte_zero"),
                ],
            },
        ),
    ]
