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
        ("documents", "0001_initial"),
        ("parties", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="LedgerInvoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("kind", models.CharField(choices=[("AP", "Accounts Payable"), ("AR", "Accounts Receivable")], max_length=2)),
                ("invoice_no", models.CharField(max_length=50)),
                ("invoice_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("counterparty_code", models.CharField(max_length=50)),
                ("counterparty_name", models.CharField(max_length=255)),
                ("external_reference", models.CharField(blank=True, default="", max_length=100)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.TextField(blank=True, default="")),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("net_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("outstanding_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("currency", models.CharField(max_length=3)),
                ("exchange_rate", models.DecimalField(decimal_places=6, default=Decimal("1.000000"), max_digits=18)),
                ("status", models.CharField(choices=[("OPEN", "Open"), ("PARTIAL", "Partially Paid"), ("PAID", "Paid"), ("VOID", "Void")], default="OPEN", max_length=10)),
                ("is_void", models.BooleanField(default=False)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
                ("source_type", models.CharField(blank=True, choices=DOCUMENT_TYPES, default="", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="ledger_invoices", to="accounts.company")),
                ("counterparty", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="ledger_invoices", to="parties.counterparty")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_ledger_invoices", to=settings.AUTH_USER_MODEL)),
                ("source_document", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="ledger_invoice", to="documents.documentheader")),
            ],
            options={
                "ordering": ["invoice_date", "due_date", "id"],
                "indexes": [
                    models.Index(fields=["company", "kind", "counterparty", "status"], name="ledger_inv_company_cp_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "kind", "invoice_no"), name="uniq_ledger_invoice_company_no"),
                    models.CheckConstraint(condition=models.Q(("paid_amount__gte", 0)), name="ledger_invoice_paid_non_negative"),
                    models.CheckConstraint(condition=models.Q(("outstanding_amount__gte", 0)), name="ledger_invoice_outstanding_non_neg"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("kind", models.CharField(choices=[("AP_PAYMENT", "Payment to Vendor"), ("AR_RECEIPT", "Receipt from Customer")], max_length=12)),
                ("payment_no", models.CharField(max_length=50)),
                ("payment_date", models.DateField()),
                ("counterparty_code", models.CharField(max_length=50)),
                ("counterparty_name", models.CharField(max_length=255)),
                ("method", models.CharField(choices=[("CASH", "Cash"), ("BANK_TRANSFER", "Bank Transfer"), ("CHEQUE", "Cheque"), ("CARD", "Card"), ("OTHER", "Other")], max_length=15)),
                ("cheque_no", models.CharField(blank=True, default="", max_length=50)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.TextField(blank=True, default="")),
                ("payment_amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("currency", models.CharField(max_length=3)),
                ("exchange_rate", models.DecimalField(decimal_places=6, default=Decimal("1.000000"), max_digits=18)),
                ("is_void", models.BooleanField(default=False)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payments", to="accounts.company")),
                ("counterparty", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="parties.counterparty")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_payments", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-payment_date", "-id"],
                "indexes": [
                    models.Index(fields=["company", "kind", "counterparty"], name="ledger_pay_company_cp_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "kind", "payment_no"), name="uniq_payment_company_kind_no"),
                    models.CheckConstraint(condition=models.Q(("payment_amount__gt", 0)), name="payment_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Knockoff",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("invoice_no", models.CharField(max_length=50)),
                ("invoice_date", models.DateField()),
                ("document_amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("outstanding_before", models.DecimalField(decimal_places=2, max_digits=18)),
                ("knockoff_amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("outstanding_after", models.DecimalField(decimal_places=2, max_digits=18)),
                ("is_reversed", models.BooleanField(default=False)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="knockoffs", to="accounts.company")),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="knockoffs", to="ledger.ledgerinvoice")),
                ("payment", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="knockoffs", to="ledger.payment")),
            ],
            options={
                "ordering": ["payment_id", "id"],
                "indexes": [
                    models.Index(fields=["invoice", "is_reversed"], name="ledger_ko_invoice_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("knockoff_amount__gt", 0)), name="knockoff_amount_positive"),
                    models.CheckConstraint(condition=models.Q(("knockoff_amount__lte", models.F("outstanding_before"))), name="knockoff_within_outstanding"),
                ],
            },
        ),
    ]
