import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.utils import timezone

MONEY = Decimal("0.01")
GRAMS = Decimal("0.000001")


class ChitStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    DEFAULTED = "defaulted", "Defaulted"
    CANCELLED = "cancelled", "Cancelled"
    SETTLED = "settled", "Settled"


class ChitPaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    BANK = "bank", "Bank"
    UPI = "upi", "UPI"
    GOLD = "gold", "Gold"


class SettlementType(models.TextChoices):
    CASH = "cash", "Cash"
    GOLD = "gold", "Gold"
    PARTIAL_GOLD = "partial_gold", "Partial gold"
    PURCHASE_SETTLEMENT = "purchase_settlement", "Purchase settlement"
    CHIT_SETTLEMENT = "chit_settlement", "Chit settlement"


GOLD_SETTLEMENT_TYPES = {SettlementType.GOLD, SettlementType.PARTIAL_GOLD}
PURCHASE_SETTLEMENT_TYPES = {SettlementType.PURCHASE_SETTLEMENT, SettlementType.CHIT_SETTLEMENT}


class SettlementStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    DISPUTED = "disputed", "Disputed"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class Chit(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chit_number = models.CharField(max_length=32, unique=True, editable=False)
    customer = models.ForeignKey("customers.Customer", on_delete=models.PROTECT, related_name="chits")
    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=50)

    start_date = models.DateField()
    end_date = models.DateField()
    total_installments = models.PositiveIntegerField(default=11)
    chit_amount = models.DecimalField(max_digits=12, decimal_places=2)
    installment_amount = models.DecimalField(max_digits=12, decimal_places=2)
    next_due_date = models.DateField(null=True, blank=True)
    paid_installments = models.PositiveIntegerField(default=0)
    remaining_installments = models.PositiveIntegerField(default=11)

    total_gold_weight = models.DecimalField(max_digits=14, decimal_places=6, default=0)
    gold_weight_per_installment = models.DecimalField(max_digits=14, decimal_places=6, default=0)
    current_gold_rate = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    gold_purity = models.CharField(max_length=4, default="22K")
    gold_updated_at = models.DateTimeField(null=True, blank=True)

    payment_history = models.JSONField(default=list, blank=True)
    payment_method = models.CharField(
        max_length=10, choices=ChitPaymentMethod.choices, default=ChitPaymentMethod.CASH
    )
    agent_name = models.CharField(max_length=120, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=12, choices=ChitStatus.choices, default=ChitStatus.ACTIVE)

    settlement_type = models.CharField(max_length=24, choices=SettlementType.choices, blank=True)
    settlement_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    settlement_date = models.DateTimeField(null=True, blank=True)
    settlement_gold_rate = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    settlement_status = models.CharField(
        max_length=12, choices=SettlementStatus.choices, default=SettlementStatus.PENDING
    )
    invoice_number = models.CharField(max_length=64, blank=True)

    created_by = models.ForeignKey(
        "accounts.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="created_chits"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["next_due_date", "-created_at"]
        indexes = [
            models.Index(fields=["status", "next_due_date"], name="chit_status_due_idx"),
            models.Index(fields=["customer", "status"], name="chit_customer_status_idx"),
            models.Index(fields=["customer_phone"], name="chit_customer_phone_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(chit_amount__gt=0), name="chit_amount_gt_zero"),
            models.CheckConstraint(condition=models.Q(total_installments__gte=1), name="chit_installments_gte_one"),
            models.CheckConstraint(condition=models.Q(end_date__gte=models.F("start_date")), name="chit_end_after_start"),
        ]

    def save(self, *args, **kwargs):
        self.remaining_installments = max(self.total_installments - self.paid_installments, 0)
        if self.status == ChitStatus.ACTIVE and self.paid_installments >= self.total_installments:
            self.status = ChitStatus.COMPLETED
            self.end_date = max(timezone.localdate(), self.start_date)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"remaining_installments", "status", "end_date", "updated_at"}
        super().save(*args, **kwargs)

    @property
    def completion_percentage(self):
        if not self.total_installments:
            return 0
        ratio = Decimal(self.paid_installments) * 100 / Decimal(self.total_installments)
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def total_paid_amount(self):
        return (self.installment_amount * self.paid_installments).quantize(MONEY)

    @property
    def remaining_amount(self):
        return (self.installment_amount * self.remaining_installments).quantize(MONEY)

    @property
    def accumulated_gold_value(self):
        return (self.total_gold_weight * self.current_gold_rate).quantize(MONEY)

    @property
    def settlement_gold_value(self):
        if self.settlement_type not in GOLD_SETTLEMENT_TYPES or not self.settlement_gold_rate:
            return Decimal("0.00")
        return (self.total_gold_weight * self.settlement_gold_rate).quantize(MONEY)

    @property
    def is_overdue(self):
        return (
            self.status == ChitStatus.ACTIVE
            and self.next_due_date is not None
            and self.next_due_date < timezone.localdate()
        )

    @property
    def days_overdue(self):
        if not self.is_overdue:
            return 0
        return (timezone.localdate() - self.next_due_date).days

    @property
    def progress_status(self):
        if self.status in {ChitStatus.SETTLED, ChitStatus.COMPLETED, ChitStatus.DEFAULTED, ChitStatus.CANCELLED}:
            return self.status
        percentage = self.completion_percentage
        if percentage >= 100:
            return "completed"
        if percentage >= 75:
            return "almost-completed"
        if percentage >= 50:
            return "half-way"
        if percentage >= 25:
            return "in-progress"
        return "new"

    def __str__(self):
        return f"{self.chit_number} - {self.customer_name}"


class ChitPayment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chit = models.ForeignKey(Chit, on_delete=models.CASCADE, related_name="payments")
    customer = models.ForeignKey("customers.Customer", on_delete=models.PROTECT, related_name="chit_payments")
    chit_number = models.CharField(max_length=32)
    customer_name = models.CharField(max_length=255)
    installment_number = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_date = models.DateTimeField(default=timezone.now)
    payment_method = models.CharField(
        max_length=10, choices=ChitPaymentMethod.choices, default=ChitPaymentMethod.CASH
    )
    receipt_number = models.CharField(max_length=32, unique=True)
    gold_rate = models.DecimalField(max_digits=12, decimal_places=2)
    gold_weight = models.DecimalField(max_digits=14, decimal_places=6)
    gold_purity = models.CharField(max_length=4, default="22K")
    calculated_value = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.COMPLETED)
    notes = models.TextField(blank=True)
    collected_by = models.CharField(max_length=120, default="Admin")
    created_by = models.ForeignKey(
        "accounts.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="chit_payments"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-payment_date"]
        indexes = [
            models.Index(fields=["chit", "installment_number"], name="chitpay_chit_installment_idx"),
            models.Index(fields=["customer", "payment_date"], name="chitpay_customer_date_idx"),
            models.Index(fields=["payment_date"], name="chitpay_date_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["chit", "installment_number"], name="unique_chit_installment"),
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="chitpay_amount_gt_zero"),
            models.CheckConstraint(condition=models.Q(gold_rate__gt=0), name="chitpay_gold_rate_gt_zero"),
        ]

    @property
    def gold_value(self):
        return (self.gold_weight * self.gold_rate).quantize(MONEY)

    def __str__(self):
        return f"{self.receipt_number} ({self.chit_number} #{self.installment_number})"


class ChitPurchaseItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chit = models.ForeignKey(Chit, on_delete=models.CASCADE, related_name="purchase_items")
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=64, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["name"]
