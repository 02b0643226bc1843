from django.db.models import Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.chits.services import customer_chit_stats
from apps.common.permissions import RolePermission
from apps.common.viewsets import UUIDLookupMixin
from apps.customers.models import Customer, normalize_phone
from apps.customers.serializers import CustomerSerializer
from apps.customers.services import sync_customer_snapshots


class CustomerViewSet(UUIDLookupMixin, viewsets.ModelViewSet):
    queryset = Customer.objects.order_by("-updated_at")
    serializer_class = CustomerSerializer
    permission_classes = [RolePermission]
    lookup_label = "customer id"
    capability_map = {
        "list": ["customers.view"],
        "retrieve": ["customers.view"],
        "chit_stats": ["customers.view", "chits.view"],
        "create": ["customers.manage"],
        "update": ["customers.manage"],
        "partial_update": ["customers.manage"],
        "destroy": ["customers.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        phone = self.request.query_params.get("phone")
        query = self.request.query_params.get("q")
        if phone:
            queryset = queryset.filter(phone_normalized=normalize_phone(phone))
        if query:
            normalized = normalize_phone(query)
            queryset = queryset.filter(
                Q(name__icontains=query) | Q(phone__icontains=query) | Q(phone_normalized__icontains=normalized)
            )
        return queryset

    def perform_create(self, serializer):
        customer = serializer.save()
        record_audit(
            actor=self.request.user,
            action="customers.create",
            entity_type="customer",
            entity_id=customer.id,
            payload={"name": customer.name, "phone": customer.phone},
        )

    def perform_update(self, serializer):
        before = {"name": serializer.instance.name, "phone": serializer.instance.phone}
        customer = serializer.save()
        chits, payments = sync_customer_snapshots(customer)
        record_audit(
            actor=self.request.user,
            action="customers.update",
            entity_type="customer",
            entity_id=customer.id,
            payload={
                "before": before,
                "after": {"name": customer.name, "phone": customer.phone},
                "synced_chits": chits,
                "synced_payments": payments,
            },
        )

    def perform_destroy(self, instance):
        customer_id = instance.id
        payload = {"name": instance.name, "phone": instance.phone}
        super().perform_destroy(instance)
        record_audit(
            actor=self.request.user,
            action="customers.delete",
            entity_type="customer",
            entity_id=customer_id,
            payload=payload,
        )

    @action(detail=True, methods=["get"], url_path="chit-stats")
    def chit_stats(self, request, pk=None):
        customer = self.get_object()
        stats, chits = customer_chit_stats(customer)
        return Response(
            {
                "success": True,
                "stats": stats,
                "chits": [
                    {
                        "id": str(chit.id),
                        "chit_number": chit.chit_number,
                        "status": chit.status,
                        "chit_amount": str(chit.chit_amount),
                        "paid_installments": chit.paid_installments,
                        "total_installments": chit.total_installments,
                        "next_due_date": chit.next_due_date,
                        "total_gold_weight": str(chit.total_gold_weight),
                    }
                    for chit in chits
                ],
            }
        )
