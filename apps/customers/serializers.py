from rest_framework import serializers

from apps.customers.models import Customer, normalize_phone


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            "id",
            "name",
            "phone",
            "phone_normalized",
            "email",
            "gst_number",
            "aadhar_number",
            "pan_number",
            "address",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "phone_normalized", "created_at", "updated_at"]

    def validate_phone(self, value):
        normalized = normalize_phone(value)
        if not normalized or not normalized.isdigit():
            raise serializers.ValidationError("Phone must contain digits.")
        duplicates = Customer.objects.filter(phone_normalized=normalized)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError("A customer with this phone already exists.")
        return value.strip()
