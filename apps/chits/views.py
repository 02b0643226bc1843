import re

from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.chits.models import Chit, ChitPayment, ChitStatus, PaymentStatus
from apps.chits.serializers import (
    ChitCreateSerializer,
    ChitPaymentCreateSerializer,
    ChitPaymentDetailSerializer,
    ChitPaymentSerializer,
    ChitSerializer,
    ChitSettlePurchaseSerializer,
    ChitSettleSerializer,
    ChitStatusSerializer,
    ChitUpdateSerializer,
    DirectChitPaymentSerializer,
)
from apps.chits.services import (
    change_status,
    chit_summary,
    create_chit,
    delete_chit,
    payment_stats,
    record_payment,
    settle as settle_chit,
    settle_for_purchase,
)
from apps.common.exceptions import ensure_uuid, error_response
from apps.common.permissions import RolePermission
from apps.common.viewsets import UUIDLookupMixin
from apps.customers.models import Customer

SEARCH_LIMIT = 50


class ChitPaymentPagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = "limit"
    max_page_size = 200


def _phone_digits(raw):
    digits = re.sub(r"\D+", "", raw or "")
    if len(digits) < 10:
        return None
    return digits


def _record_payment_from(validated_data, chit_id, user):
    return record_payment(
        chit_id,
        validated_data["amount"],
        validated_data.get("payment_method"),
        validated_data.get("current_gold_rate"),
        installment_number=validated_data.get("installment_number"),
        receipt_number=validated_data.get("receipt_number") or None,
        payment_date=validated_data.get("payment_date"),
        notes=validated_data.get("notes", ""),
        collected_by=validated_data.get("collected_by") or "Admin",
        user=user,
    )


def _audit_payment(user, payment, chit):
    record_audit(
        actor=user,
        action="chits.payment",
        entity_type="chit",
        entity_id=chit.id,
        payload={
            "receipt_number": payment.receipt_number,
            "installment_number": payment.installment_number,
            "amount": str(payment.amount),
            "gold_rate": str(payment.gold_rate),
            "gold_weight": str(payment.gold_weight),
            "status": chit.status,
        },
    )


class ChitViewSet(UUIDLookupMixin, viewsets.ModelViewSet):
    queryset = Chit.objects.select_related("customer").prefetch_related("purchase_items").order_by(
        "next_due_date", "-created_at"
    )
    serializer_class = ChitSerializer
    permission_classes = [RolePermission]
    lookup_label = "chit id"
    capability_map = {
        "list": ["chits.view"],
        "retrieve": ["chits.view"],
        "stats_summary": ["chits.view"],
        "search": ["chits.view"],
        "by_customer": ["chits.view"],
        "completed_by_customer": ["chits.view"],
        "create": ["chits.manage"],
        "update": ["chits.manage"],
        "partial_update": ["chits.manage"],
        "update_status": ["chits.manage"],
        "payment": ["chits.collect"],
        "settle": ["chits.settle"],
        "settle_purchase": ["chits.settle"],
        "destroy": ["chits.delete"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset
        status_param = self.request.query_params.get("status")
        phone = self.request.query_params.get("phone")
        search = self.request.query_params.get("search")
        if status_param:
            queryset = queryset.filter(status=status_param)
        if phone:
            digits = re.sub(r"\D+", "", phone)
            queryset = queryset.filter(Q(customer__phone_normalized__contains=digits) | Q(customer_phone__icontains=phone))
        if search:
            queryset = queryset.filter(
                Q(chit_number__icontains=search) | Q(customer_name__icontains=search) | Q(customer_phone__icontains=search)
            )
        return queryset

    def get_serializer_class(self):
        if self.action == "create":
            return ChitCreateSerializer
        if self.action in {"update", "partial_update"}:
            return ChitUpdateSerializer
        return ChitSerializer

    def _chit_response(self, chit, message, status_code=status.HTTP_200_OK):
        chit = self.get_queryset().get(pk=chit.pk)
        return Response(
            {"success": True, "chit": ChitSerializer(chit, context=self.get_serializer_context()).data, "message": message},
            status=status_code,
        )

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        chit = create_chit(user=request.user, **serializer.validated_data)
        record_audit(
            actor=request.user,
            action="chits.create",
            entity_type="chit",
            entity_id=chit.id,
            payload={
                "chit_number": chit.chit_number,
                "customer_id": str(chit.customer_id),
                "chit_amount": str(chit.chit_amount),
                "total_installments": chit.total_installments,
                "installment_amount": str(chit.installment_amount),
            },
        )
        return self._chit_response(chit, "Chit created successfully.", status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        chit = self.get_object()
        serializer = ChitUpdateSerializer(chit, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        chit = serializer.save()
        record_audit(
            actor=request.user,
            action="chits.update",
            entity_type="chit",
            entity_id=chit.id,
            payload={key: str(value) for key, value in serializer.validated_data.items()},
        )
        return self._chit_response(chit, "Chit updated successfully.")

    def destroy(self, request, *args, **kwargs):
        chit = self.get_object()
        chit_id = chit.id
        summary = delete_chit(chit)
        record_audit(
            actor=request.user,
            action="chits.delete",
            entity_type="chit",
            entity_id=chit_id,
            payload=summary,
        )
        return Response({"success": True, "message": f"Chit {summary['chit_number']} deleted successfully."})

    @action(detail=True, methods=["post"])
    def payment(self, request, pk=None):
        ensure_uuid(pk, self.lookup_label)
        serializer = ChitPaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment, chit = _record_payment_from(serializer.validated_data, pk, request.user)
        _audit_payment(request.user, payment, chit)
        chit = self.get_queryset().get(pk=chit.pk)
        message = "Chit completed." if chit.status == ChitStatus.COMPLETED else "Payment recorded successfully."
        return Response(
            {
                "success": True,
                "chit": ChitSerializer(chit, context=self.get_serializer_context()).data,
                "payment": ChitPaymentSerializer(payment).data,
                "message": message,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def settle(self, request, pk=None):
        ensure_uuid(pk, self.lookup_label)
        serializer = ChitSettleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        chit = settle_chit(pk, **serializer.validated_data)
        record_audit(
            actor=request.user,
            action="chits.settle",
            entity_type="chit",
            entity_id=chit.id,
            payload={
                "settlement_type": chit.settlement_type,
                "settlement_amount": str(chit.settlement_amount),
                "settlement_gold_rate": str(chit.settlement_gold_rate) if chit.settlement_gold_rate else None,
            },
        )
        return self._chit_response(chit, "Chit settled successfully.")

    @action(detail=True, methods=["post"], url_path="settle-purchase")
    def settle_purchase(self, request, pk=None):
        ensure_uuid(pk, self.lookup_label)
        serializer = ChitSettlePurchaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        chit = settle_for_purchase(pk, **serializer.validated_data)
        record_audit(
            actor=request.user,
            action="chits.settle_purchase",
            entity_type="chit",
            entity_id=chit.id,
            payload={
                "settlement_type": chit.settlement_type,
                "settlement_amount": str(chit.settlement_amount),
                "invoice_number": chit.invoice_number,
            },
        )
        return self._chit_response(chit, "Chit settled against purchase successfully.")

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        ensure_uuid(pk, self.lookup_label)
        serializer = ChitStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        chit, previous = change_status(pk, serializer.validated_data["status"])
        record_audit(
            actor=request.user,
            action="chits.status",
            entity_type="chit",
            entity_id=chit.id,
            payload={"from": previous, "to": chit.status},
        )
        return self._chit_response(chit, f"Chit status updated to {chit.status}.")

    @action(detail=False, methods=["get"], url_path="stats/summary")
    def stats_summary(self, request):
        return Response({"success": True, "stats": chit_summary()})

    @action(detail=False, methods=["get"], url_path=r"search/(?P<query>[^/]+)")
    def search(self, request, query=None):
        chits = Chit.objects.filter(
            Q(chit_number__icontains=query) | Q(customer_name__icontains=query) | Q(customer_phone__icontains=query)
        ).order_by("next_due_date", "-created_at")[:SEARCH_LIMIT]
        return Response({"success": True, "chits": ChitSerializer(chits, many=True).data})

    def _customer_chits(self, phone):
        digits = _phone_digits(phone)
        if digits is None:
            return None
        return Chit.objects.filter(Q(customer__phone_normalized__contains=digits) | Q(customer_phone__icontains=digits))

    @action(detail=False, methods=["get"], url_path=r"customer/(?P<phone>[^/]+)")
    def by_customer(self, request, phone=None):
        chits = self._customer_chits(phone)
        if chits is None:
            return error_response("invalid", "A valid phone number with at least 10 digits is required.")
        chits = chits.order_by("status", "-created_at")
        return Response({"success": True, "chits": ChitSerializer(chits, many=True).data})

    @action(detail=False, methods=["get"], url_path=r"customer/(?P<phone>[^/]+)/completed")
    def completed_by_customer(self, request, phone=None):
        chits = self._customer_chits(phone)
        if chits is None:
            return error_response("invalid", "A valid phone number with at least 10 digits is required.")
        chits = chits.filter(status=ChitStatus.COMPLETED, total_gold_weight__gt=0).order_by("-chit_number")
        return Response({"success": True, "chits": ChitSerializer(chits, many=True).data})


class ChitPaymentViewSet(UUIDLookupMixin, viewsets.ReadOnlyModelViewSet):
    queryset = ChitPayment.objects.select_related("chit").order_by("-payment_date", "-created_at")
    serializer_class = ChitPaymentSerializer
    permission_classes = [RolePermission]
    pagination_class = ChitPaymentPagination
    lookup_label = "payment id"
    capability_map = {
        "list": ["chits.view"],
        "retrieve": ["chits.view"],
        "by_chit": ["chits.view"],
        "by_customer": ["chits.view"],
        "stats": ["chits.view"],
        "recent": ["chits.view"],
        "by_receipt": ["chits.view"],
        "search": ["chits.view"],
        "create": ["chits.collect"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset
        method = self.request.query_params.get("payment_method")
        if method:
            queryset = queryset.filter(payment_method=method)
        start_date = self.request.query_params.get("start_date")
        end_date = self.request.query_params.get("end_date")
        if start_date:
            queryset = queryset.filter(payment_date__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(payment_date__date__lte=end_date)
        return queryset

    def get_serializer_class(self):
        if self.action in {"retrieve", "by_receipt"}:
            return ChitPaymentDetailSerializer
        return ChitPaymentSerializer

    def _paginated(self, queryset):
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def create(self, request, *args, **kwargs):
        serializer = DirectChitPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment, chit = _record_payment_from(serializer.validated_data, serializer.validated_data["chit"], request.user)
        _audit_payment(request.user, payment, chit)
        return Response(
            {
                "success": True,
                "payment": ChitPaymentSerializer(payment).data,
                "chit": ChitSerializer(chit).data,
                "message": "Payment recorded successfully.",
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path=r"chit/(?P<chit_id>[^/]+)")
    def by_chit(self, request, chit_id=None):
        chit_id = ensure_uuid(chit_id, "chit id")
        if not Chit.objects.filter(pk=chit_id).exists():
            return error_response("not_found", "Chit not found.", status=status.HTTP_404_NOT_FOUND)
        return self._paginated(self.get_queryset().filter(chit_id=chit_id).order_by("-installment_number"))

    @action(detail=False, methods=["get"], url_path=r"customer/(?P<customer_id>[^/]+)")
    def by_customer(self, request, customer_id=None):
        customer_id = ensure_uuid(customer_id, "customer id")
        if not Customer.objects.filter(pk=customer_id).exists():
            return error_response("not_found", "Customer not found.", status=status.HTTP_404_NOT_FOUND)
        return self._paginated(self.get_queryset().filter(customer_id=customer_id))

    @action(detail=False, methods=["get"])
    def stats(self, request):
        stats = payment_stats(request.query_params.get("start_date"), request.query_params.get("end_date"))
        return Response({"success": True, "stats": stats})

    @action(detail=False, methods=["get"])
    def recent(self, request):
        try:
            limit = int(request.query_params.get("limit", 20))
        except (TypeError, ValueError):
            return error_response("invalid", "limit must be an integer.", fields={"limit": ["Must be an integer."]})
        limit = max(1, min(limit, 200))
        payments = self.get_queryset().filter(status=PaymentStatus.COMPLETED)[:limit]
        return Response({"success": True, "payments": ChitPaymentSerializer(payments, many=True).data})

    @action(detail=False, methods=["get"], url_path=r"receipt/(?P<receipt_number>[^/]+)")
    def by_receipt(self, request, receipt_number=None):
        payment = self.get_queryset().filter(receipt_number=receipt_number).first()
        if payment is None:
            return error_response("not_found", "Payment not found.", status=status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "payment": self.get_serializer(payment).data})

    @action(detail=False, methods=["get"], url_path=r"search/(?P<query>[^/]+)")
    def search(self, request, query=None):
        payments = self.get_queryset().filter(
            Q(receipt_number__icontains=query) | Q(chit_number__icontains=query) | Q(customer_name__icontains=query)
        )[:SEARCH_LIMIT]
        return Response({"success": True, "payments": ChitPaymentSerializer(payments, many=True).data})
