from django.contrib import admin

from .models import CompanyPurchase, CompanyPurchaseLine


class CompanyPurchaseLineInline(admin.TabularInline):
    model = CompanyPurchaseLine
    extra = 0


@admin.register(CompanyPurchase)
class CompanyPurchaseAdmin(admin.ModelAdmin):
    list_display = ("company_name", "total_amount", "payment_date", "created_by", "created_at")
    search_fields = ("company_name", "notes")
    date_hierarchy = "payment_date"
    inlines = [CompanyPurchaseLineInline]
