from django.contrib import admin

from .models import Rate


@admin.register(Rate)
class RateAdmin(admin.ModelAdmin):
    list_display = ("metal", "purity", "price", "updated_by", "updated_at")
    list_filter = ("metal",)
