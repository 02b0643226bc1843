from decimal import Decimal

from rest_framework import serializers

from apps.orders.models import Order, OrderLine, OrderPayment, PaymentMethod


class OrderLineSerializer(serializers.ModelSerializer):
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderLine
        fields = [
            "id",
            "product",
            "sku",
            "name",
            "price",
            "qty",
            "line_total",
            "category",
            "metal",
            "cost_price",
            "metal_weight",
            "stone_weight",
            "net_weight",
        ]
        read_only_fields = fields


class OrderPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderPayment
        fields = [
            "id",
            "method",
            "amount",
            "gold_weight",
            "gold_rate_per_gram",
            "calculated_amount",
            "chit",
            "chit_number",
            "chit_customer_name",
            "chit_customer_phone",
            "accumulated_gold",
            "chit_amount",
            "paid_amount",
            "chit_gold_rate",
            "gold_value",
            "extra_amount",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    lines = OrderLineSerializer(many=True, read_only=True)
    payments = OrderPaymentSerializer(many=True, read_only=True)
    cashier_username = serializers.CharField(source="cashier.username", read_only=True, default=None)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    balance = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_id",
            "invoice_number",
            "cashier",
            "cashier_username",
            "customer",
            "customer_name",
            "customer_phone",
            "customer_email",
            "customer_gst_number",
            "customer_aadhar_number",
            "customer_pan_number",
            "payment_mode",
            "subtotal",
            "discount",
            "tax",
            "grand_total",
            "total_paid",
            "balance",
            "chit",
            "chit_number",
            "chit_settlement_amount",
            "chit_settlement_type",
            "lines",
            "payments",
            "created_at",
        ]
        read_only_fields = fields


class OrderCustomerInputSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    gst_number = serializers.CharField(required=False, allow_blank=True, default="")
    aadhar_number = serializers.CharField(required=False, allow_blank=True, default="")
    pan_number = serializers.CharField(required=False, allow_blank=True, default="")


class OrderItemInputSerializer(serializers.Serializer):
    sku = serializers.CharField(required=False, allow_blank=True, default="")
    name = serializers.CharField(required=False, allow_blank=True, default="")
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    qty = serializers.IntegerField(min_value=1, default=1)
    category = serializers.CharField(required=False, allow_blank=True, default="")
    metal = serializers.CharField(required=False, allow_blank=True, default="")
    cost_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    metal_weight = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)
    stone_weight = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)
    net_weight = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs.get("sku") and not attrs.get("name"):
            raise serializers.ValidationError({"name": "Each item needs a sku or a name."})
        return attrs


class OrderPaymentInputSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    gold_weight = serializers.DecimalField(max_digits=14, decimal_places=6, required=False, allow_null=True)
    gold_rate_per_gram = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    chit = serializers.UUIDField(required=False, allow_null=True)
    gold_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)

    def validate(self, attrs):
        method = attrs["method"]
        if method == PaymentMethod.GOLD_EXCHANGE:
            missing = {
                field: "Required for gold exchange."
                for field in ("gold_weight", "gold_rate_per_gram")
                if attrs.get(field) is None
            }
            if missing:
                raise serializers.ValidationError(missing)
        if method == PaymentMethod.CHIT_SETTLEMENT and not attrs.get("chit"):
            raise serializers.ValidationError({"chit": "Required for chit settlement."})
        return attrs


class OrderCreateSerializer(serializers.Serializer):
    customer = OrderCustomerInputSerializer(required=False)
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    payments = OrderPaymentInputSerializer(many=True, required=False, default=list)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), default=Decimal("0"))
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), default=Decimal("0"))
