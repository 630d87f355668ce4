from django.contrib import admin

from .models import StockLedger


@admin.register(StockLedger)
class StockLedgerAdmin(admin.ModelAdmin):
    list_display = ("created_at", "product_name", "qty_delta", "balance_after", "ref_type", "ref_id", "created_by")
    list_filter = ("ref_type",)
    search_fields = ("product_name", "ref_id", "note")
    date_hierarchy = "created_at"

    def has_change_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False
