from rest_framework import serializers

from apps.catalog.models import Product
from apps.inventory.models import MANUAL_REASONS, InventoryMovement, MovementReason


class InventoryMovementSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source="product.sku", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    order_id = serializers.CharField(source="order.order_id", read_only=True, default=None)
    created_by_username = serializers.CharField(source="created_by.username", read_only=True, default=None)

    class Meta:
        model = InventoryMovement
        fields = [
            "id",
            "product",
            "sku",
            "product_name",
            "reason",
            "pieces",
            "net_weight",
            "order",
            "order_id",
            "reference",
            "note",
            "created_by_username",
            "created_at",
        ]
        read_only_fields = fields


class MovementCreateSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    reason = serializers.ChoiceField(choices=sorted(MANUAL_REASONS))
    pieces = serializers.IntegerField()
    reference = serializers.CharField(max_length=64)
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["pieces"] == 0:
            raise serializers.ValidationError({"pieces": "Pieces cannot be zero."})
        if attrs["reason"] == MovementReason.RECEIPT and attrs["pieces"] < 0:
            raise serializers.ValidationError({"pieces": "A receipt must add pieces; book a count to remove them."})
        if InventoryMovement.objects.filter(
            product=attrs["product"], reason=attrs["reason"], reference=attrs["reference"]
        ).exists():
            raise serializers.ValidationError({"reference": "This reference was already booked for the product."})
        return attrs


class StockLineSerializer(serializers.ModelSerializer):
    stock = serializers.IntegerField(read_only=True)
    stock_weight = serializers.DecimalField(max_digits=12, decimal_places=3, read_only=True)

    class Meta:
        model = Product
        fields = ["id", "sku", "name", "metal", "purity", "net_weight", "available", "stock", "stock_weight"]
        read_only_fields = fields
