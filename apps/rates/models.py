import uuid

from django.db import models

from apps.catalog.models import Metal, Purity


class Rate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    metal = models.CharField(max_length=10, choices=Metal.choices)
    purity = models.CharField(max_length=4, choices=Purity.choices, null=True, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    updated_by = models.ForeignKey("accounts.User", null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["metal", "purity"]
        constraints = [
            models.UniqueConstraint(fields=["metal", "purity"], name="unique_rate_metal_purity"),
            models.UniqueConstraint(
                fields=["metal"],
                condition=models.Q(purity__isnull=True),
                name="unique_rate_metal_without_purity",
            ),
            models.CheckConstraint(condition=models.Q(price__gte=0), name="rate_price_gte_zero"),
        ]

    def __str__(self):
        return f"{self.metal} {self.purity or ''} @ {self.price}".strip()
