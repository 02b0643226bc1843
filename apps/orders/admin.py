from django.contrib import admin

from apps.orders.models import Order, OrderLine, OrderPayment


class OrderLineInline(admin.TabularInline):
    model = OrderLine
    extra = 0


class OrderPaymentInline(admin.TabularInline):
    model = OrderPayment
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_id", "invoice_number", "customer_name", "payment_mode", "grand_total", "created_at")
    search_fields = ("order_id", "invoice_number", "customer_name", "customer_phone")
    readonly_fields = ("order_id", "invoice_number")
    inlines = [OrderLineInline, OrderPaymentInline]
