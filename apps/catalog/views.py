from django.db.models import Q
from rest_framework import viewsets

from apps.audit.services import record_audit
from apps.catalog.models import Product
from apps.catalog.querysets import with_stock
from apps.catalog.serializers import ProductSerializer
from apps.common.permissions import RolePermission
from apps.common.viewsets import UUIDLookupMixin
from apps.inventory.services import stock_on_hand


def _product_snapshot(product, stock=None):
    snapshot = {
        "sku": product.sku,
        "name": product.name,
        "metal": product.metal,
        "purity": product.purity,
        "weight": str(product.weight),
        "price": str(product.price),
        "cost_price": str(product.cost_price) if product.cost_price is not None else None,
        "available": product.available,
    }
    if stock is not None:
        snapshot["stock"] = str(stock)
    return snapshot


class ProductViewSet(UUIDLookupMixin, viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [RolePermission]
    lookup_label = "product id"
    capability_map = {
        "list": ["catalog.view"],
        "retrieve": ["catalog.view"],
        "create": ["catalog.manage"],
        "partial_update": ["catalog.manage"],
        "update": ["catalog.manage"],
        "destroy": ["catalog.manage"],
    }

    def get_queryset(self):
        queryset = with_stock(Product.objects.all())
        query = self.request.query_params.get("q")
        if query:
            queryset = queryset.filter(Q(name__icontains=query) | Q(sku__icontains=query))

        for param in ("metal", "purity", "category"):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})

        available = self.request.query_params.get("available")
        if available is not None:
            queryset = queryset.filter(available=available.strip().lower() in {"1", "true", "yes"})

        has_stock = self.request.query_params.get("has_stock")
        if has_stock is not None:
            normalized_has_stock = has_stock.strip().lower()
            if normalized_has_stock in {"1", "true", "yes"}:
                queryset = queryset.filter(stock__gt=0)
            elif normalized_has_stock in {"0", "false", "no"}:
                queryset = queryset.filter(stock__lte=0)
        return queryset

    def perform_create(self, serializer):
        product = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.product.create",
            entity_type="product",
            entity_id=product.id,
            payload=_product_snapshot(product),
        )

    def perform_update(self, serializer):
        old_product = self.get_object()
        old_snapshot = _product_snapshot(old_product, getattr(old_product, "stock", None))
        product = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.product.update",
            entity_type="product",
            entity_id=product.id,
            payload={
                "before": old_snapshot,
                "after": _product_snapshot(product, stock_on_hand(product.id)),
            },
        )

    def perform_destroy(self, instance):
        record_audit(
            actor=self.request.user,
            action="catalog.product.delete",
            entity_type="product",
            entity_id=instance.id,
            payload=_product_snapshot(instance),
        )
        super().perform_destroy(instance)
