# catalog/management/commands/seed_catalog.py
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from billing import services as billing
from billing.models import Bill
from catalog.models import Product
from inventory import services as stock


DEMO_PRODUCTS = [
    # name, company, category, quantity, alert, buying, cash, udhaar
    ("Carbendazim 50% WP", "Dhanuka Agritech", "Fungicide", 45, 20, "320", "380", "400"),
    ("Imidacloprid 17.8% SL", "Bayer CropScience", "Insecticide", 12, 15, "850", "950", "1000"),
    ("Glyphosate 41% SL", "Excel Crop Care", "Herbicide", 8, 10, "520", "620", "650"),
    ("Gibberellic Acid 0.001% L", "Syngenta India", "PGR", 30, 10, "180", "220", "240"),
    ("NPK 19:19:19", "IFFCO", "Water Soluble", 100, 25, "450", "520", "550"),
    ("Zinc EDTA 12%", "Aries Agro", "Chelated Micronutrient", 5, 15, "680", "780", "820"),
]

DEMO_BILLS = [
    {
        "bill_number": "KB-DEMO-001",
        "customer": {"name": "Ramesh Kumar", "mobile": "9876543210", "address": "Village Khanpur, Block Sadar"},
        "payment_mode": "Udhaar",
        "items": [("Carbendazim 50% WP", 5), ("Gibberellic Acid 0.001% L", 10)],
    },
    {
        "bill_number": "KB-DEMO-002",
        "customer": {"name": "Suresh Patel", "mobile": "9988776655", "address": "Gram Panchayat Mohanpur"},
        "payment_mode": "Udhaar",
        "items": [("Imidacloprid 17.8% SL", 3)],
    },
    {
        "bill_number": "KB-DEMO-003",
        "customer": {"name": "Mahesh Yadav", "mobile": "9123456780", "address": ""},
        "payment_mode": "Cash",
        "items": [("NPK 19:19:19", 4)],
    },
]


class Command(BaseCommand):
    help = "Load a demo agricultural-supplies catalog (and optionally a few bills)."

    def add_arguments(self, parser):
        parser.add_argument("--flush", action="store_true", help="Delete existing products and bills first.")
        parser.add_argument("--with-bills", action="store_true", help="Also create demo bills (debits stock).")

    @transaction.atomic
    def handle(self, *args, **opts):
        if opts["flush"]:
            Bill.objects.all().delete()
            Product.objects.all().delete()
            self.stdout.write(self.style.WARNING("Deleted existing bills and products."))

        by_name = {}
        created = 0
        for name, company, category, qty, alert, buying, cash, udhaar in DEMO_PRODUCTS:
            product, was_created = Product.objects.get_or_create(
                name=name,
                company=company,
                defaults={
                    "category": category,
                    "quantity": qty,
                    "quantity_alert": alert,
                    "buying_price": Decimal(buying),
                    "selling_price_cash": Decimal(cash),
                    "selling_price_udhaar": Decimal(udhaar),
                },
            )
            if was_created:
                stock.record_opening_stock(product)
                created += 1
            by_name[name] = product
        self.stdout.write(self.style.SUCCESS(f"Products: {created} created, {len(by_name) - created} already present."))

        if not opts["with_bills"]:
            return

        made = 0
        for demo in DEMO_BILLS:
            if Bill.objects.filter(bill_number=demo["bill_number"]).exists():
                continue
            billing.create_bill(
                bill_number=demo["bill_number"],
                customer=demo["customer"],
                payment_mode=demo["payment_mode"],
                items=[{"product_id": by_name[n].pk, "quantity": q} for n, q in demo["items"]],
            )
            made += 1
        self.stdout.write(self.style.SUCCESS(f"Bills: {made} created."))
