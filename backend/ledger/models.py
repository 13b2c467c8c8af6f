# ledger/models.py
"""
AR/AP ledger write models.

LedgerInvoice    what a customer owes us (AR) or we owe a vendor (AP)
Payment          money received from a customer or paid to a vendor
Knockoff         the part of one payment applied to one invoice

Invariants:
    LedgerInvoice.outstanding_amount = max(0, net_total - paid_amount)
    0 < Knockoff.knockoff_amount <= Knockoff.outstanding_before
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q, Sum

from accounts.models import Company
from core.models import CommandOwnedModel
from documents.models import DocumentHeader, DocumentType
from parties.models import Counterparty


ZERO = Decimal("0.00")


class LedgerInvoice(CommandOwnedModel):

    class Kind(models.TextChoices):
        AP = "AP", "Accounts Payable"
        AR = "AR", "Accounts Receivable"

    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        PARTIAL = "PARTIAL", "Partially Paid"
        PAID = "PAID", "Paid"
        VOID = "VOID", "Void"

    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="ledger_invoices",
    )
    kind = models.CharField(max_length=2, choices=Kind.choices)
    invoice_no = models.CharField(max_length=50)
    invoice_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)

    counterparty = models.ForeignKey(
        Counterparty,
        on_delete=models.PROTECT,
        related_name="ledger_invoices",
    )
    counterparty_code = models.CharField(max_length=50)
    counterparty_name = models.CharField(max_length=255)

    external_reference = models.CharField(max_length=100, blank=True, default="")
    reference = models.CharField(max_length=100, blank=True, default="")
    description = models.TextField(blank=True, default="")

    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    discount_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    net_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    paid_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    outstanding_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    currency = models.CharField(max_length=3)
    exchange_rate = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("1.000000"))

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    is_void = models.BooleanField(default=False)
    voided_at = models.DateTimeField(null=True, blank=True)
    void_reason = models.CharField(max_length=255, blank=True, default="")

    source_type = models.CharField(max_length=20, choices=DocumentType.choices, blank=True, default="")
    source_document = models.OneToOneField(
        DocumentHeader,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="ledger_invoice",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_ledger_invoices",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["invoice_date", "due_date", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "kind", "invoice_no"],
                name="uniq_ledger_invoice_company_no",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__gte=0),
                name="ledger_invoice_paid_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(outstanding_amount__gte=0),
                name="ledger_invoice_outstanding_non_neg",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "kind", "counterparty", "status"], name="ledger_inv_company_cp_idx"),
        ]

    def __str__(self):
        return f"{self.kind} {self.invoice_no}"

    def recompute_outstanding(self) -> None:
        """Derive outstanding_amount and status from net_total and paid_amount."""
        self.outstanding_amount = max(ZERO, self.net_total - self.paid_amount)
        if self.is_void:
            self.status = self.Status.VOID
        elif self.outstanding_amount <= 0:
            self.status = self.Status.PAID
        elif self.paid_amount > 0:
            self.status = self.Status.PARTIAL
        else:
            self.status = self.Status.OPEN


class Payment(CommandOwnedModel):
    """A payment to a vendor (AP_PAYMENT) or a receipt from a customer (AR_RECEIPT)."""

    class Kind(models.TextChoices):
        AP_PAYMENT = "AP_PAYMENT", "Payment to Vendor"
        AR_RECEIPT = "AR_RECEIPT", "Receipt from Customer"

    class Method(models.TextChoices):
        CASH = "CASH", "Cash"
        BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
        CHEQUE = "CHEQUE", "Cheque"
        CARD = "CARD", "Card"
        OTHER = "OTHER", "Other"

    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    kind = models.CharField(max_length=12, choices=Kind.choices)
    payment_no = models.CharField(max_length=50)
    payment_date = models.DateField()

    counterparty = models.ForeignKey(
        Counterparty,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    counterparty_code = models.CharField(max_length=50)
    counterparty_name = models.CharField(max_length=255)

    method = models.CharField(max_length=15, choices=Method.choices)
    cheque_no = models.CharField(max_length=50, blank=True, default="")
    reference = models.CharField(max_length=100, blank=True, default="")
    description = models.TextField(blank=True, default="")

    payment_amount = models.DecimalField(max_digits=18, decimal_places=2)
    currency = models.CharField(max_length=3)
    exchange_rate = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("1.000000"))

    is_void = models.BooleanField(default=False)
    voided_at = models.DateTimeField(null=True, blank=True)
    void_reason = models.CharField(max_length=255, blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_payments",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-payment_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "kind", "payment_no"],
                name="uniq_payment_company_kind_no",
            ),
            models.CheckConstraint(
                condition=Q(payment_amount__gt=0),
                name="payment_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "kind", "counterparty"], name="ledger_pay_company_cp_idx"),
        ]

    def __str__(self):
        return f"{self.kind} {self.payment_no}"

    @property
    def invoice_kind(self) -> str:
        return LedgerInvoice.Kind.AP if self.kind == self.Kind.AP_PAYMENT else LedgerInvoice.Kind.AR

    @property
    def applied_amount(self) -> Decimal:
        total = self.knockoffs.filter(is_reversed=False).aggregate(total=Sum("knockoff_amount"))["total"]
        return total or ZERO

    @property
    def unapplied_amount(self) -> Decimal:
        return self.payment_amount - self.applied_amount


class Knockoff(CommandOwnedModel):
    """Part of a payment applied against one ledger invoice."""

    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="knockoffs",
    )
    payment = models.ForeignKey(
        Payment,
        on_delete=models.CASCADE,
        related_name="knockoffs",
    )
    invoice = models.ForeignKey(
        LedgerInvoice,
        on_delete=models.PROTECT,
        related_name="knockoffs",
    )

    # Invoice snapshot at knockoff time
    invoice_no = models.CharField(max_length=50)
    invoice_date = models.DateField()
    document_amount = models.DecimalField(max_digits=18, decimal_places=2)

    outstanding_before = models.DecimalField(max_digits=18, decimal_places=2)
    knockoff_amount = models.DecimalField(max_digits=18, decimal_places=2)
    outstanding_after = models.DecimalField(max_digits=18, decimal_places=2)

    is_reversed = models.BooleanField(default=False)
    reversed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["payment_id", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(knockoff_amount__gt=0),
                name="knockoff_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(knockoff_amount__lte=F("outstanding_before")),
                name="knockoff_within_outstanding",
            ),
        ]
        indexes = [
            models.Index(fields=["invoice", "is_reversed"], name="ledger_ko_invoice_idx"),
        ]

    def __str__(self):
        return f"{self.payment_id} -> {self.invoice_no}: {self.knockoff_amount}"

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.outstanding_after = self.outstanding_before - self.knockoff_amount
        super().save(*args, **kwargs)
