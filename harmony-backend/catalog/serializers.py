# harmony-backend/catalog/serializers.py
from django.db import transaction
from rest_framework import serializers

from inventory import services as stock

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """
    Catalog CRUD. ``quantity`` is accepted on write but never saved directly:
    creation logs it as opening stock and edits go through
    inventory.services.set_quantity so every change lands in the ledger.
    """
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id", "name", "technical_name", "company", "category",
            "quantity", "quantity_alert", "is_low_stock",
            "buying_price", "selling_price_cash", "selling_price_udhaar",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name cannot be blank.")
        return value

    def _user(self):
        request = self.context.get("request")
        return getattr(request, "user", None)

    @transaction.atomic
    def create(self, validated):
        product = Product.objects.create(**validated)
        stock.record_opening_stock(product, user=self._user())
        return product

    @transaction.atomic
    def update(self, instance, validated):
        quantity = validated.pop("quantity", None)
        for attr, value in validated.items():
            setattr(instance, attr, value)
        # quantity is owned by the stock service; keep it out of this save
        instance.save(update_fields=[*validated.keys(), "updated_at"])
        if quantity is not None:
            stock.set_quantity(instance, quantity, user=self._user(), note="Catalog edit")
            instance.refresh_from_db()
        return instance


class CategorySerializer(serializers.Serializer):
    value = serializers.CharField()
    label = serializers.CharField()
    product_count = serializers.IntegerField()
