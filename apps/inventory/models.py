import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

WEIGHT = Decimal("0.001")


class MovementReason(models.TextChoices):
    RECEIPT = "receipt", "Stock received"
    SALE = "sale", "Sold on order"
    SALE_REVERSAL = "sale_reversal", "Order deleted"
    COUNT = "count", "Stock count correction"


INBOUND_REASONS = {MovementReason.RECEIPT, MovementReason.SALE_REVERSAL}
OUTBOUND_REASONS = {MovementReason.SALE}
# Reasons a user may post directly; sale movements come from orders only.
MANUAL_REASONS = {MovementReason.RECEIPT, MovementReason.COUNT}


class InventoryMovement(models.Model):
    """One signed change to the pieces on hand of a catalog product.

    ``net_weight`` carries the grams that moved with those pieces, taken from
    the product's net weight at booking time, so the stock sheet can report
    weight on hand even after a product is re-weighed.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey("catalog.Product", on_delete=models.CASCADE, related_name="movements")
    reason = models.CharField(max_length=16, choices=MovementReason.choices)
    pieces = models.IntegerField()
    net_weight = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    order = models.ForeignKey(
        "orders.Order", null=True, blank=True, on_delete=models.SET_NULL, related_name="stock_movements"
    )
    reference = models.CharField(max_length=64)
    note = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        "accounts.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="inventory_movements"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["product", "created_at"], name="invmove_product_created_idx"),
            models.Index(fields=["reason"], name="invmove_reason_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reason", "reference", "product"],
                name="unique_inventory_reason_reference_product",
            ),
            models.CheckConstraint(condition=~models.Q(pieces=0), name="invmove_pieces_nonzero"),
        ]

    def clean(self):
        if not self.pieces:
            raise ValidationError({"pieces": "Pieces cannot be zero."})
        if self.reason in INBOUND_REASONS and self.pieces < 0:
            raise ValidationError({"pieces": f"A {self.get_reason_display().lower()} movement must add pieces."})
        if self.reason in OUTBOUND_REASONS and self.pieces > 0:
            raise ValidationError({"pieces": "A sale movement must remove pieces."})

    def save(self, *args, **kwargs):
        if self.product_id and not self.net_weight:
            self.net_weight = (self.product.net_weight * self.pieces).quantize(WEIGHT)
        self.full_clean(validate_unique=False)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.get_reason_display()} {self.pieces:+d} ({self.reference})"
