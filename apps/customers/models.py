import re
import uuid

from django.core.exceptions import ValidationError
from django.db import models


def normalize_phone(value):
    raw = str(value or "").strip()
    normalized = re.sub(r"\D+", "", raw)
    return normalized or raw


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50)
    phone_normalized = models.CharField(max_length=50, unique=True)
    email = models.EmailField(blank=True)
    gst_number = models.CharField(max_length=20, blank=True)
    aadhar_number = models.CharField(max_length=20, blank=True)
    pan_number = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    notes = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["phone_normalized"], name="customer_phone_norm_idx"),
            models.Index(fields=["name"], name="customer_name_idx"),
        ]

    def clean(self):
        if not self.phone:
            raise ValidationError({"phone": "Phone is required."})
        if not re.sub(r"\D+", "", self.phone):
            raise ValidationError({"phone": "Phone must contain at least one digit."})

    def save(self, *args, **kwargs):
        self.phone = str(self.phone or "").strip()
        self.name = str(self.name or "").strip()
        self.pan_number = str(self.pan_number or "").strip().upper()
        self.gst_number = str(self.gst_number or "").strip().upper()
        self.phone_normalized = normalize_phone(self.phone)
        self.full_clean(validate_unique=False)
        super().save(*args, **kwargs)

    @classmethod
    def get_or_create_by_phone(cls, phone, name="", **extra):
        normalized = normalize_phone(phone)
        customer = cls.objects.filter(phone_normalized=normalized).first()
        if customer:
            return customer
        return cls.objects.create(phone=str(phone).strip(), name=str(name).strip(), **extra)

    def __str__(self):
        return f"{self.name} ({self.phone})"
