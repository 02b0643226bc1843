from decimal import Decimal

from rest_framework import generics, mixins, status, viewsets
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.catalog.models import Product
from apps.catalog.querysets import with_stock
from apps.common.exceptions import ensure_uuid
from apps.common.permissions import RolePermission
from apps.common.viewsets import UUIDLookupMixin
from apps.inventory.models import InventoryMovement
from apps.inventory.serializers import InventoryMovementSerializer, MovementCreateSerializer, StockLineSerializer
from apps.inventory.services import record_movement


class InventoryMovementViewSet(
    UUIDLookupMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = InventoryMovement.objects.select_related("product", "order", "created_by")
    serializer_class = InventoryMovementSerializer
    permission_classes = [RolePermission]
    lookup_label = "movement id"
    capability_map = {
        "list": ["inventory.view"],
        "retrieve": ["inventory.view"],
        "create": ["inventory.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        for param, field in (("product", "product_id"), ("order", "order_id")):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{field: ensure_uuid(value, f"{param} id")})
        reason = self.request.query_params.get("reason")
        if reason:
            queryset = queryset.filter(reason=reason)
        sku = self.request.query_params.get("sku")
        if sku:
            queryset = queryset.filter(product__sku=sku)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = MovementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        movement = record_movement(user=request.user, **serializer.validated_data)
        record_audit(
            actor=request.user,
            action=f"inventory.{movement.reason}.create",
            entity_type="inventory_movement",
            entity_id=movement.id,
            payload={
                "sku": movement.product.sku,
                "pieces": movement.pieces,
                "net_weight": str(movement.net_weight),
                "reference": movement.reference,
            },
        )
        return Response(self.get_serializer(movement).data, status=status.HTTP_201_CREATED)


class InventoryStockView(generics.GenericAPIView):
    """Stock sheet: pieces and grams on hand per product, with metal/purity totals."""

    permission_classes = [RolePermission]
    capability_map = {"get": ["inventory.view"]}
    serializer_class = StockLineSerializer

    def get(self, request, *args, **kwargs):
        queryset = with_stock(Product.objects.all())
        product_id = request.query_params.get("product")
        if product_id:
            queryset = queryset.filter(pk=ensure_uuid(product_id, "product id"))
        for param in ("metal", "purity"):
            value = request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        if request.query_params.get("oversold", "").strip().lower() in {"1", "true", "yes"}:
            queryset = queryset.filter(stock__lt=0)

        lines = list(queryset.order_by("sku"))
        totals = {}
        for product in lines:
            group = totals.setdefault(
                (product.metal, product.purity or ""),
                {"metal": product.metal, "purity": product.purity, "products": 0, "pieces": 0, "net_weight": Decimal("0")},
            )
            group["products"] += 1
            group["pieces"] += product.stock
            group["net_weight"] += product.stock_weight
        return Response(
            {
                "success": True,
                "items": self.get_serializer(lines, many=True).data,
                "totals": [{**totals[key], "net_weight": f"{totals[key]['net_weight']:.3f}"} for key in sorted(totals)],
            }
        )
