from decimal import Decimal

from rest_framework import serializers

from apps.chits.models import (
    Chit,
    ChitPayment,
    ChitPaymentMethod,
    ChitPurchaseItem,
    SettlementType,
)
from apps.customers.models import Customer


class ChitPurchaseItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = ChitPurchaseItem
        fields = ["name", "sku", "price", "quantity"]


class ChitSerializer(serializers.ModelSerializer):
    purchase_items = ChitPurchaseItemSerializer(many=True, read_only=True)
    completion_percentage = serializers.IntegerField(read_only=True)
    total_paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    remaining_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    accumulated_gold_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    settlement_gold_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)
    days_overdue = serializers.IntegerField(read_only=True)
    progress_status = serializers.CharField(read_only=True)

    class Meta:
        model = Chit
        fields = [
            "id",
            "chit_number",
            "customer",
            "customer_name",
            "customer_phone",
            "start_date",
            "end_date",
            "total_installments",
            "chit_amount",
            "installment_amount",
            "next_due_date",
            "paid_installments",
            "remaining_installments",
            "total_gold_weight",
            "gold_weight_per_installment",
            "current_gold_rate",
            "gold_purity",
            "gold_updated_at",
            "payment_history",
            "payment_method",
            "agent_name",
            "notes",
            "status",
            "settlement_type",
            "settlement_amount",
            "settlement_date",
            "settlement_gold_rate",
            "settlement_status",
            "invoice_number",
            "purchase_items",
            "completion_percentage",
            "total_paid_amount",
            "remaining_amount",
            "accumulated_gold_value",
            "settlement_gold_value",
            "is_overdue",
            "days_overdue",
            "progress_status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ChitCreateSerializer(serializers.Serializer):
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all())
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    chit_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    total_installments = serializers.IntegerField(min_value=1, default=11)
    agent_name = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["end_date"] < attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "End date cannot be before start date."})
        return attrs


class ChitUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Chit
        fields = ["notes", "agent_name", "end_date"]

    def validate_end_date(self, value):
        if self.instance is not None and value < self.instance.start_date:
            raise serializers.ValidationError("End date cannot be before start date.")
        return value


class ChitPaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=ChitPaymentMethod.choices, default=ChitPaymentMethod.CASH)
    current_gold_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    installment_number = serializers.IntegerField(required=False, allow_null=True)
    receipt_number = serializers.CharField(required=False, allow_blank=True, max_length=32)
    payment_date = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    collected_by = serializers.CharField(required=False, allow_blank=True, default="Admin")


class DirectChitPaymentSerializer(ChitPaymentCreateSerializer):
    chit = serializers.UUIDField()


class ChitSettleSerializer(serializers.Serializer):
    settlement_type = serializers.ChoiceField(choices=SettlementType.choices)
    settlement_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    settlement_date = serializers.DateTimeField(required=False, allow_null=True)
    settlement_gold_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class PurchaseItemInputSerializer(serializers.Serializer):
    name = serializers.CharField()
    sku = serializers.CharField(required=False, allow_blank=True, default="")
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    quantity = serializers.IntegerField(min_value=1, default=1)


class ChitSettlePurchaseSerializer(serializers.Serializer):
    purchase_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    invoice_number = serializers.CharField()
    items = PurchaseItemInputSerializer(many=True, required=False, default=list)
    settlement_type = serializers.ChoiceField(
        choices=SettlementType.choices, default=SettlementType.PURCHASE_SETTLEMENT
    )
    settlement_date = serializers.DateTimeField(required=False, allow_null=True)
    settlement_gold_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class ChitStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class ChitPaymentSerializer(serializers.ModelSerializer):
    gold_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = ChitPayment
        fields = [
            "id",
            "chit",
            "customer",
            "chit_number",
            "customer_name",
            "installment_number",
            "amount",
            "payment_date",
            "payment_method",
            "receipt_number",
            "gold_rate",
            "gold_weight",
            "gold_purity",
            "calculated_value",
            "gold_value",
            "status",
            "notes",
            "collected_by",
            "created_at",
        ]
        read_only_fields = fields


class ChitPaymentDetailSerializer(ChitPaymentSerializer):
    customer_phone = serializers.CharField(source="chit.customer_phone", read_only=True)
    chit_amount = serializers.DecimalField(source="chit.chit_amount", max_digits=12, decimal_places=2, read_only=True)
    installment_amount = serializers.DecimalField(
        source="chit.installment_amount", max_digits=12, decimal_places=2, read_only=True
    )
    total_installments = serializers.IntegerField(source="chit.total_installments", read_only=True)

    class Meta(ChitPaymentSerializer.Meta):
        fields = ChitPaymentSerializer.Meta.fields + [
            "customer_phone",
            "chit_amount",
            "installment_amount",
            "total_installments",
        ]
        read_only_fields = fields

