from django.contrib import admin

from apps.catalog.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "metal", "purity", "weight", "price", "available", "updated_at")
    list_filter = ("available", "metal", "purity", "category")
    search_fields = ("sku", "name", "category")
