import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.db import models


class Metal(models.TextChoices):
    GOLD = "gold", "Gold"
    SILVER = "silver", "Silver"


class Purity(models.TextChoices):
    K24 = "24K", "24K"
    K22 = "22K", "22K"
    K18 = "18K", "18K"


def normalize_purity(metal, purity):
    if metal == Metal.SILVER:
        return None
    value = str(purity or "").strip().upper()
    if value in Purity.values:
        return value
    return Purity.K22


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sku = models.CharField(max_length=64, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=80, blank=True)
    metal = models.CharField(max_length=10, choices=Metal.choices, default=Metal.GOLD)
    purity = models.CharField(max_length=4, choices=Purity.choices, null=True, blank=True)
    weight = models.DecimalField(max_digits=10, decimal_places=3, default=0)
    stone_weight = models.DecimalField(max_digits=10, decimal_places=3, default=0)
    net_weight = models.DecimalField(max_digits=10, decimal_places=3, default=0)
    making_charges = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    wastage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    stone_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    description = models.TextField(blank=True)
    available = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["metal", "purity"], name="product_metal_purity_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(weight__gte=0), name="product_weight_gte_zero"),
            models.CheckConstraint(condition=models.Q(price__gte=0), name="product_price_gte_zero"),
        ]

    def save(self, *args, **kwargs):
        self.sku = (self.sku or "").strip()
        self.purity = normalize_purity(self.metal, self.purity)
        self.net_weight = (Decimal(self.weight or 0) + Decimal(self.stone_weight or 0)).quantize(Decimal("0.001"))
        super().save(*args, **kwargs)

    def price_for_rate(self, rate):
        weight = Decimal(self.weight or 0)
        rate = Decimal(rate)
        metal_value = weight * rate
        wastage_value = metal_value * Decimal(self.wastage or 0) / Decimal("100")
        total = metal_value + wastage_value + Decimal(self.making_charges or 0) + Decimal(self.stone_price or 0)
        return total.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    def __str__(self):
        return f"{self.sku} - {self.name}"
