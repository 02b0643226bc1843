from django.db import transaction
from rest_framework import serializers

from apps.catalog.models import Product
from apps.inventory.services import count_to, stock_on_hand


class ProductSerializer(serializers.ModelSerializer):
    stock = serializers.IntegerField(min_value=0, required=False, write_only=True)
    stock_adjust_reason = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "category",
            "metal",
            "purity",
            "weight",
            "stone_weight",
            "net_weight",
            "making_charges",
            "wastage",
            "stone_price",
            "price",
            "cost_price",
            "description",
            "available",
            "stock",
            "stock_adjust_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "net_weight", "created_at", "updated_at"]

    def to_representation(self, instance):
        data = super().to_representation(instance)
        request = self.context.get("request")
        stock = getattr(instance, "stock", None)
        if stock is None or (request and request.method in {"POST", "PUT", "PATCH"}):
            stock = stock_on_hand(instance.id)
        data["stock"] = stock
        return data

    def _count_stock(self, product, target_stock, reason):
        if target_stock == stock_on_hand(product.id):
            return
        if not reason.strip():
            raise serializers.ValidationError({"stock_adjust_reason": "A reason is required to adjust stock."})
        count_to(product, target_stock, reason.strip(), user=self.context["request"].user)
        product.refresh_from_db(fields=["available"])

    def create(self, validated_data):
        target_stock = validated_data.pop("stock", None)
        stock_adjust_reason = validated_data.pop("stock_adjust_reason", "")

        with transaction.atomic():
            product = super().create(validated_data)
            if target_stock is not None:
                self._count_stock(product, target_stock, stock_adjust_reason)
        return product

    def update(self, instance, validated_data):
        target_stock = validated_data.pop("stock", None)
        stock_adjust_reason = validated_data.pop("stock_adjust_reason", "")

        with transaction.atomic():
            product = super().update(instance, validated_data)
            if target_stock is not None:
                self._count_stock(product, target_stock, stock_adjust_reason)
        return product
