from django.contrib import admin

from .models import AuditLog, Bill, BillItem


class BillItemInline(admin.TabularInline):
    model = BillItem
    extra = 0
    fields = ("product_id", "product_name", "quantity", "rate", "total")
    readonly_fields = fields
    can_delete = False


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ("bill_number", "customer_name", "payment_mode", "bill_type", "total", "status", "created_at")
    list_filter = ("status", "payment_mode", "bill_type")
    search_fields = ("bill_number", "customer_name", "customer_mobile")
    date_hierarchy = "created_at"
    inlines = [BillItemInline]
    # stock only moves through billing.services; status and items are not editable here
    readonly_fields = ("bill_number", "status", "subtotal", "gst", "total", "created_by", "created_at", "updated_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "severity", "bill", "user")
    list_filter = ("action", "severity")
    search_fields = ("metadata",)
