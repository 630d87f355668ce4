# purchasing/serializers.py
from django.db import transaction
from rest_framework import serializers

from common.money import money

from .models import CompanyPurchase, CompanyPurchaseLine


class CompanyPurchaseLineSerializer(serializers.ModelSerializer):
    total = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)

    class Meta:
        model = CompanyPurchaseLine
        fields = ["id", "product_id", "product_name", "quantity", "rate", "total"]
        read_only_fields = ["id"]

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0.")
        return value

    def validate(self, attrs):
        if attrs.get("total") is None:
            attrs["total"] = money(attrs["rate"] * attrs["quantity"])
        return attrs


class CompanyPurchaseSerializer(serializers.ModelSerializer):
    lines = CompanyPurchaseLineSerializer(many=True, required=False)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = CompanyPurchase
        fields = [
            "id", "company_name", "lines", "total_amount",
            "payment_date", "notes",
            "created_by_name", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def get_created_by_name(self, obj):
        u = getattr(obj, "created_by", None)
        return u.get_username() if u else None

    def validate_company_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Company name is required.")
        return value

    def _user(self):
        request = self.context.get("request")
        user = getattr(request, "user", None)
        return user if getattr(user, "is_authenticated", False) else None

    def _write_lines(self, purchase, lines):
        CompanyPurchaseLine.objects.bulk_create(
            [CompanyPurchaseLine(purchase=purchase, **ln) for ln in lines]
        )

    @transaction.atomic
    def create(self, validated):
        lines = validated.pop("lines", [])
        purchase = CompanyPurchase.objects.create(created_by=self._user(), **validated)
        self._write_lines(purchase, lines)
        return purchase

    @transaction.atomic
    def update(self, instance, validated):
        lines = validated.pop("lines", None)
        for attr, value in validated.items():
            setattr(instance, attr, value)
        instance.save()
        if lines is not None:
            # replace all lines
            instance.lines.all().delete()
            self._write_lines(instance, lines)
        return instance
