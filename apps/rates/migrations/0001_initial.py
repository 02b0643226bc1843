import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Rate",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("metal", models.CharField(choices=[("gold", "Gold"), ("silver", "Silver")], max_length=10)),
                (
                    "purity",
                    models.CharField(
                        blank=True, choices=[("24K", "24K"), ("22K", "22K"), ("18K", "18K")], max_length=4, null=True
                    ),
                ),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["metal", "purity"],
                "constraints": [
                    models.UniqueConstraint(fields=("metal", "purity"), name="unique_rate_metal_purity"),
                    models.UniqueConstraint(
                        condition=models.Q(("purity__isnull", True)),
                        fields=("metal",),
                        name="unique_rate_metal_without_purity",
                    ),
                    models.CheckConstraint(condition=models.Q(("price__gte", 0)), name="rate_price_gte_zero"),
                ],
            },
        ),
    ]
