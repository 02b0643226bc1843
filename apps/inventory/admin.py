from django.contrib import admin

from apps.inventory.models import InventoryMovement


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ("product", "reason", "pieces", "net_weight", "reference", "created_at")
    list_filter = ("reason",)
    search_fields = ("product__sku", "product__name", "reference", "order__order_id", "note")
    raw_id_fields = ("product", "order")
