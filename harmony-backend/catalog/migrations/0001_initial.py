from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=200)),
                ("technical_name", models.CharField(blank=True, default="", max_length=200)),
                ("company", models.CharField(max_length=200)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("Fungicide", "Fungicide"),
                            ("Insecticide", "Insecticide"),
                            ("Herbicide", "Herbicide"),
                            ("PGR", "PGR"),
                            ("Water Soluble", "Water Soluble"),
                            ("Chelated Micronutrient", "Chelated Micronutrient"),
                        ],
                        max_length=40,
                    ),
                ),
                ("quantity", models.PositiveIntegerField(default=0)),
                (
                    "quantity_alert",
                    models.PositiveIntegerField(default=10, help_text="Reorder threshold (low stock at or below)"),
                ),
                (
                    "buying_price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "selling_price_cash",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "selling_price_udhaar",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["category"], name="product_category_idx"),
                    models.Index(fields=["name"], name="product_name_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(quantity__gte=0), name="product_quantity_non_negative"),
                ],
            },
        ),
    ]
