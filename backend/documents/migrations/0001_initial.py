import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


DOCUMENT_TYPES = [
    ("PURCHASE_REQUEST", "Purchase Request"),
    ("PURCHASE_ORDER", "Purchase Order"),
    ("GOODS_RECEIVED", "Goods Received Note"),
    ("PURCHASE_INVOICE", "Purchase Invoice"),
    ("QUOTATION", "Quotation"),
    ("SALES_ORDER", "Sales Order"),
    ("DELIVERY_ORDER", "Delivery Order"),
    ("SALES_INVOICE", "Sales Invoice"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("parties", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DocumentHeader",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("domain", models.CharField(choices=[("PURCHASE", "Purchase"), ("SALES", "Sales")], max_length=10)),
                ("document_type", models.CharField(choices=DOCUMENT_TYPES, max_length=20)),
                ("document_no", models.CharField(max_length=50)),
                ("document_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("counterparty_code", models.CharField(max_length=50)),
                ("counterparty_name", models.CharField(max_length=255)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.TextField(blank=True, default="")),
                ("external_reference", models.CharField(blank=True, default="", help_text="Supplier invoice / delivery order number", max_length=100)),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("net_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("net_total_local", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("currency", models.CharField(max_length=3)),
                ("exchange_rate", models.DecimalField(decimal_places=6, default=Decimal("1.000000"), max_digits=18)),
                ("status", models.CharField(choices=[("OPEN", "Open"), ("PARTIAL", "Partially Transferred"), ("TRANSFERRED", "Transferred"), ("POSTED", "Posted"), ("VOID", "Void")], default="OPEN", max_length=12)),
                ("transfer_status", models.CharField(choices=[("NONE", "Not Transferred"), ("PARTIAL", "Partially Transferred"), ("TRANSFERRED", "Fully Transferred")], default="NONE", max_length=12)),
                ("source_type", models.CharField(blank=True, choices=DOCUMENT_TYPES, default="", max_length=20)),
                ("is_posted", models.BooleanField(default=False)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("is_void", models.BooleanField(default=False)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="documents", to="accounts.company")),
                ("counterparty", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="documents", to="parties.counterparty")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_documents", to=settings.AUTH_USER_MODEL)),
                ("source_document", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="derived_documents", to="documents.documentheader")),
            ],
            options={
                "ordering": ["-document_date", "-id"],
                "indexes": [
                    models.Index(fields=["company", "document_type", "status"], name="documents_company_type_idx"),
                    models.Index(fields=["company", "counterparty"], name="documents_company_cp_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "document_type", "document_no"), name="uniq_document_company_type_no"),
                    models.CheckConstraint(condition=models.Q(("net_total__gte", 0)), name="document_net_total_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DocumentDetail",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("line_no", models.PositiveIntegerField()),
                ("product_code", models.CharField(blank=True, default="", max_length=50)),
                ("account_code", models.CharField(blank=True, default="", max_length=50)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("quantity", models.DecimalField(decimal_places=4, max_digits=18)),
                ("unit_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("discount", models.CharField(blank=True, default="", help_text='Discount text: "10%", "5%+2%" or a fixed amount such as "100"', max_length=50)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("tax_code", models.CharField(blank=True, default="", max_length=20)),
                ("tax_rate", models.DecimalField(decimal_places=4, default=Decimal("0.0000"), max_digits=9)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), help_text="quantity * unit_price - discount_amount", max_digits=18)),
                ("transferred_qty", models.DecimalField(decimal_places=4, default=Decimal("0.0000"), max_digits=18)),
                ("outstanding_qty", models.DecimalField(decimal_places=4, default=Decimal("0.0000"), max_digits=18)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="document_lines", to="accounts.company")),
                ("document", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="documents.documentheader")),
                ("source_line", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="derived_lines", to="documents.documentdetail")),
            ],
            options={
                "ordering": ["document_id", "line_no"],
                "constraints": [
                    models.UniqueConstraint(fields=("document", "line_no"), name="uniq_document_line_no"),
                    models.CheckConstraint(condition=models.Q(("quantity__gte", 0)), name="document_line_quantity_non_negative"),
                    models.CheckConstraint(condition=models.Q(("transferred_qty__gte", 0)), name="document_line_transferred_non_negative"),
                    models.CheckConstraint(condition=models.Q(("outstanding_qty__gte", 0)), name="document_line_outstanding_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="NumberSeries",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=50)),
                ("prefix", models.CharField(blank=True, default="", max_length=30)),
                ("suffix", models.CharField(blank=True, default="", max_length=30)),
                ("number_length", models.PositiveSmallIntegerField(default=5)),
                ("next_value", models.BigIntegerField(default=1)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="number_series", to="accounts.company")),
            ],
            options={
                "verbose_name_plural": "Number series",
                "constraints": [
                    models.UniqueConstraint(fields=("company", "key"), name="uniq_number_series_company_key"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_code", models.CharField(blank=True, default="", max_length=50)),
                ("direction", models.CharField(choices=[("IN", "In"), ("OUT", "Out")], max_length=3)),
                ("quantity", models.DecimalField(decimal_places=4, max_digits=18)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="stock_movements", to="accounts.company")),
                ("document", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="stock_movements", to="documents.documentheader")),
                ("line", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="stock_movements", to="documents.documentdetail")),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["company", "product_code"], name="documents_stock_product_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("line", "direction"), name="uniq_stock_movement_line_dir"),
                ],
            },
        ),
    ]
