# customers/serializers.py
from rest_framework import serializers

from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "name", "mobile", "address", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_mobile(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Mobile is required.")
        return value
