from rest_framework import serializers

from apps.rates.models import Rate


class RateSerializer(serializers.ModelSerializer):
    updated_by_username = serializers.CharField(source="updated_by.username", read_only=True, default=None)

    class Meta:
        model = Rate
        fields = ["id", "metal", "purity", "price", "updated_by_username", "updated_at"]
        read_only_fields = fields


class RateUpdateSerializer(serializers.Serializer):
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    purity = serializers.CharField(required=False, allow_blank=True, allow_null=True)
