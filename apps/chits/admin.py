from django.contrib import admin

from apps.chits.models import Chit, ChitPayment, ChitPurchaseItem


class ChitPurchaseItemInline(admin.TabularInline):
    model = ChitPurchaseItem
    extra = 0


@admin.register(Chit)
class ChitAdmin(admin.ModelAdmin):
    list_display = (
        "chit_number",
        "customer_name",
        "status",
        "paid_installments",
        "total_installments",
        "next_due_date",
        "total_gold_weight",
    )
    list_filter = ("status", "settlement_type")
    search_fields = ("chit_number", "customer_name", "customer_phone")
    readonly_fields = ("chit_number", "payment_history", "remaining_installments")
    inlines = [ChitPurchaseItemInline]


@admin.register(ChitPayment)
class ChitPaymentAdmin(admin.ModelAdmin):
    list_display = ("receipt_number", "chit_number", "installment_number", "amount", "gold_weight", "payment_date")
    list_filter = ("payment_method", "status")
    search_fields = ("receipt_number", "chit_number", "customer_name")
