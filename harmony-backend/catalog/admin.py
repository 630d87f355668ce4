from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "category", "quantity", "quantity_alert", "selling_price_cash", "selling_price_udhaar")
    list_filter = ("category", "company")
    search_fields = ("name", "technical_name", "company")
    # stock changes go through the API so they are written to the ledger
    readonly_fields = ("quantity", "created_at", "updated_at")
