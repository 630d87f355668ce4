# harmony-backend/inventory/serializers.py
from rest_framework import serializers

from .models import StockLedger


class StockLedgerSerializer(serializers.ModelSerializer):
    ref_label = serializers.CharField(source="get_ref_type_display", read_only=True)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = StockLedger
        fields = [
            "id", "product", "product_name",
            "qty_delta", "balance_after",
            "ref_type", "ref_label", "ref_id", "note",
            "created_by_name", "created_at",
        ]

    def get_created_by_name(self, obj):
        u = getattr(obj, "created_by", None)
        return u.get_username() if u else None
