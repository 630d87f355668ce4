# harmony-backend/billing/serializers.py

from rest_framework import serializers

from .models import AuditLog, Bill, BillItem


class BillItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = BillItem
        fields = ["id", "product_id", "product_name", "quantity", "rate", "total"]


class BillSerializer(serializers.ModelSerializer):
    customer = serializers.SerializerMethodField()
    items = BillItemSerializer(many=True, read_only=True)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Bill
        fields = [
            "id", "bill_number", "bill_type",
            "customer",
            "payment_mode", "due_date",
            "subtotal", "gst", "total",
            "status",
            "items",
            "created_by_name", "created_at", "updated_at",
        ]

    def get_customer(self, obj):
        return {
            "name": obj.customer_name,
            "mobile": obj.customer_mobile,
            "address": obj.customer_address,
        }

    def get_created_by_name(self, obj):
        u = getattr(obj, "created_by", None)
        if not u:
            return None
        full = (u.get_full_name() or "").strip()
        return full or u.get_username()


class CustomerSnapshotSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    mobile = serializers.CharField(max_length=20)
    address = serializers.CharField(max_length=300, required=False, allow_blank=True, default="")


class BillItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    product_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    # rate falls back to the catalog price for the payment mode
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)


class BillCreateSerializer(serializers.Serializer):
    """
    Input for POST /bills/. Shapes and types only; stock, duplicates and the
    totals check happen in billing.services.create_bill.
    """
    bill_number = serializers.CharField(max_length=64)
    bill_type = serializers.ChoiceField(choices=Bill.BillType.choices, default=Bill.BillType.KACCHA)
    customer = CustomerSnapshotSerializer()
    # empty list is rejected by the service (EmptyBill)
    items = BillItemInputSerializer(many=True, allow_empty=True)
    payment_mode = serializers.ChoiceField(choices=Bill.PaymentMode.choices)
    due_date = serializers.DateField(required=False, allow_null=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    gst = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)


class BillStatusSerializer(serializers.Serializer):
    # validated against Bill.Status by the service so the error carries the allowed values
    status = serializers.CharField(max_length=20)


class AuditLogSerializer(serializers.ModelSerializer):
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = ["id", "action", "severity", "bill", "user_name", "metadata", "created_at"]

    def get_user_name(self, obj):
        u = getattr(obj, "user", None)
        return u.get_username() if u else None
