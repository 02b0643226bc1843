from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission
from apps.common.viewsets import UUIDLookupMixin
from apps.customers.models import normalize_phone
from apps.orders.models import Order
from apps.orders.serializers import OrderCreateSerializer, OrderSerializer
from apps.orders.services import create_order, delete_order


class OrderViewSet(UUIDLookupMixin, viewsets.ModelViewSet):
    queryset = (
        Order.objects.select_related("cashier", "customer", "chit")
        .prefetch_related("lines", "payments")
        .order_by("-created_at")
    )
    serializer_class = OrderSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "delete", "head", "options"]
    lookup_label = "order id"
    capability_map = {
        "list": ["orders.view"],
        "retrieve": ["orders.view"],
        "by_invoice": ["orders.view"],
        "by_customer": ["orders.view"],
        "create": ["orders.create"],
        "destroy": ["orders.delete"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset
        customer = self.request.query_params.get("customer")
        date = self.request.query_params.get("date")
        if customer:
            queryset = queryset.filter(Q(customer_name__icontains=customer) | Q(customer_phone__icontains=customer))
        if date:
            queryset = queryset.filter(created_at__date=date)
        return queryset

    def get_serializer_class(self):
        if self.action == "create":
            return OrderCreateSerializer
        return OrderSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = create_order(user=request.user, **serializer.validated_data)
        order = self.get_queryset().get(pk=order.pk)
        record_audit(
            actor=request.user,
            action="orders.create",
            entity_type="order",
            entity_id=order.id,
            payload={
                "order_id": order.order_id,
                "invoice_number": order.invoice_number,
                "grand_total": str(order.grand_total),
                "payment_mode": order.payment_mode,
                "chit_number": order.chit_number or None,
            },
        )
        return Response(
            {
                "success": True,
                "order": OrderSerializer(order).data,
                "message": f"Order created successfully. Total paid: {order.total_paid}",
            },
            status=status.HTTP_201_CREATED,
        )

    def destroy(self, request, *args, **kwargs):
        order = self.get_object()
        order_pk = order.pk
        summary = delete_order(order, user=request.user)
        record_audit(
            actor=request.user,
            action="orders.delete",
            entity_type="order",
            entity_id=order_pk,
            payload=summary,
        )
        return Response({"success": True, "message": f"Order {summary['order_id']} deleted successfully."})

    @action(detail=False, methods=["get"], url_path=r"invoice/(?P<invoice_number>.+)")
    def by_invoice(self, request, invoice_number=None):
        order = self.get_queryset().filter(invoice_number=invoice_number).first()
        if order is None:
            return error_response("not_found", "Invoice not found.", status=status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "order": OrderSerializer(order).data})

    @action(detail=False, methods=["get"], url_path=r"customer/(?P<phone>[^/]+)")
    def by_customer(self, request, phone=None):
        orders = self.get_queryset().filter(
            Q(customer_phone=phone) | Q(customer__phone_normalized=normalize_phone(phone))
        )
        data = OrderSerializer(orders, many=True).data
        return Response({"success": True, "orders": data, "total": len(data)})
