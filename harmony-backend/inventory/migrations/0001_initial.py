import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StockLedger",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name", models.CharField(blank=True, max_length=200)),
                ("qty_delta", models.IntegerField()),
                ("balance_after", models.IntegerField(blank=True, null=True)),
                (
                    "ref_type",
                    models.CharField(
                        choices=[
                            ("SALE", "Bill created"),
                            ("CANCEL", "Bill cancelled"),
                            ("DELETE", "Bill deleted"),
                            ("REACTIVATE", "Bill reactivated"),
                            ("ADJUST", "Catalog adjustment"),
                            ("INITIAL", "Opening stock"),
                        ],
                        max_length=20,
                    ),
                ),
                ("ref_id", models.CharField(blank=True, max_length=64)),
                ("note", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="ledger_entries",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["product", "created_at"], name="ledger_product_created_idx"),
                    models.Index(fields=["ref_type", "ref_id"], name="ledger_ref_idx"),
                ],
            },
        ),
    ]
