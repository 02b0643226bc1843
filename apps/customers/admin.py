from django.contrib import admin

from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email", "updated_at")
    search_fields = ("name", "phone", "phone_normalized", "pan_number")
