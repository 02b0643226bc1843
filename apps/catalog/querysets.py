from django.db.models import DecimalField, IntegerField, OuterRef, Subquery, Sum, Value
from django.db.models.functions import Coalesce

from apps.inventory.models import InventoryMovement

PIECES_FIELD = IntegerField()
WEIGHT_FIELD = DecimalField(max_digits=12, decimal_places=3)


def _on_hand(field, output_field):
    total = (
        InventoryMovement.objects.filter(product_id=OuterRef("pk"))
        .values("product_id")
        .annotate(total=Sum(field))
        .values("total")
    )
    return Coalesce(Subquery(total, output_field=output_field), Value(0, output_field=output_field))


def with_stock(queryset):
    """Annotate pieces on hand (``stock``) and the grams they weigh (``stock_weight``)."""
    return queryset.annotate(
        stock=_on_hand("pieces", PIECES_FIELD),
        stock_weight=_on_hand("net_weight", WEIGHT_FIELD),
    )
