# documents/models.py
"""
Document chain write models.

A DocumentHeader is one commercial document (order, goods received note,
invoice, ...). Its DocumentDetail lines carry the quantity bookkeeping
that drives partial transfers:

    outstanding_qty = quantity - transferred_qty   (always >= 0)

Workflow rules (who may transfer, post or void what) live in
documents.policies. save() only enforces invariants.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from accounts.models import Company
from core.models import CommandOwnedModel
from parties.models import Counterparty


class Domain(models.TextChoices):
    PURCHASE = "PURCHASE", "Purchase"
    SALES = "SALES", "Sales"


class DocumentType(models.TextChoices):
    PURCHASE_REQUEST = "PURCHASE_REQUEST", "Purchase Request"
    PURCHASE_ORDER = "PURCHASE_ORDER", "Purchase Order"
    GOODS_RECEIVED = "GOODS_RECEIVED", "Goods Received Note"
    PURCHASE_INVOICE = "PURCHASE_INVOICE", "Purchase Invoice"
    QUOTATION = "QUOTATION", "Quotation"
    SALES_ORDER = "SALES_ORDER", "Sales Order"
    DELIVERY_ORDER = "DELIVERY_ORDER", "Delivery Order"
    SALES_INVOICE = "SALES_INVOICE", "Sales Invoice"


class DocumentHeader(CommandOwnedModel):

    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        PARTIAL = "PARTIAL", "Partially Transferred"
        TRANSFERRED = "TRANSFERRED", "Transferred"
        POSTED = "POSTED", "Posted"
        VOID = "VOID", "Void"

    class TransferStatus(models.TextChoices):
        NONE = "NONE", "Not Transferred"
        PARTIAL = "PARTIAL", "Partially Transferred"
        TRANSFERRED = "TRANSFERRED", "Fully Transferred"

    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="documents",
    )

    domain = models.CharField(max_length=10, choices=Domain.choices)
    document_type = models.CharField(max_length=20, choices=DocumentType.choices)
    document_no = models.CharField(max_length=50)
    document_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)

    # Counterparty reference + point-in-time snapshot
    counterparty = models.ForeignKey(
        Counterparty,
        on_delete=models.PROTECT,
        related_name="documents",
    )
    counterparty_code = models.CharField(max_length=50)
    counterparty_name = models.CharField(max_length=255)

    reference = models.CharField(max_length=100, blank=True, default="")
    description = models.TextField(blank=True, default="")
    external_reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Supplier invoice / delivery order number",
    )

    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    net_total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    net_total_local = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    currency = models.CharField(max_length=3)
    exchange_rate = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("1.000000"))

    status = models.CharField(max_length=12, choices=Status.choices, default=Status.OPEN)
    transfer_status = models.CharField(
        max_length=12,
        choices=TransferStatus.choices,
        default=TransferStatus.NONE,
    )

    source_type = models.CharField(max_length=20, choices=DocumentType.choices, blank=True, default="")
    source_document = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="derived_documents",
    )

    is_posted = models.BooleanField(default=False)
    posted_at = models.DateTimeField(null=True, blank=True)

    is_void = models.BooleanField(default=False)
    voided_at = models.DateTimeField(null=True, blank=True)
    void_reason = models.CharField(max_length=255, blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_documents",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-document_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "document_type", "document_no"],
                name="uniq_document_company_type_no",
            ),
            models.CheckConstraint(
                condition=Q(net_total__gte=0),
                name="document_net_total_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "document_type", "status"], name="documents_company_type_idx"),
            models.Index(fields=["company", "counterparty"], name="documents_company_cp_idx"),
        ]

    def __str__(self):
        return f"{self.document_type} {self.document_no}"

    def save(self, *args, **kwargs):
        if self.is_void != (self.status == self.Status.VOID):
            raise ValueError("is_void and status VOID must agree.")
        super().save(*args, **kwargs)


class DocumentDetail(CommandOwnedModel):
    """One line of a document."""

    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="document_lines",
    )
    document = models.ForeignKey(
        DocumentHeader,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    line_no = models.PositiveIntegerField()

    product_code = models.CharField(max_length=50, blank=True, default="")
    account_code = models.CharField(max_length=50, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit_price = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    discount = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text='Discount text: "10%", "5%+2%" or a fixed amount such as "100"',
    )
    discount_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax_code = models.CharField(max_length=20, blank=True, default="")
    tax_rate = models.DecimalField(max_digits=9, decimal_places=4, default=Decimal("0.0000"))
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    subtotal = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="quantity * unit_price - discount_amount",
    )

    transferred_qty = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0.0000"))
    outstanding_qty = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0.0000"))

    source_line = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="derived_lines",
    )

    class Meta:
        ordering = ["document_id", "line_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["document", "line_no"],
                name="uniq_document_line_no",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name="document_line_quantity_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(transferred_qty__gte=0),
                name="document_line_transferred_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(outstanding_qty__gte=0),
                name="document_line_outstanding_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.document_id}#{self.line_no} {self.product_code}"

    def save(self, *args, **kwargs):
        self.outstanding_qty = self.quantity - self.transferred_qty
        if self.outstanding_qty < 0:
            raise ValueError(
                f"Line {self.line_no}: transferred quantity {self.transferred_qty} "
                f"exceeds quantity {self.quantity}."
            )
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "transferred_qty" in update_fields:
            kwargs["update_fields"] = set(update_fields) | {"outstanding_qty"}
        super().save(*args, **kwargs)

    @property
    def gross_amount(self) -> Decimal:
        return self.quantity * self.unit_price


class NumberSeries(CommandOwnedModel):
    """
    Per-company numbering sequence for one key (usually a document type).

    prefix and suffix may contain {YYYY}, {YY} and {MM}, expanded with the
    date the number is issued.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="number_series",
    )
    key = models.CharField(max_length=50)
    prefix = models.CharField(max_length=30, blank=True, default="")
    suffix = models.CharField(max_length=30, blank=True, default="")
    number_length = models.PositiveSmallIntegerField(default=5)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Number series"
        constraints = [
            models.UniqueConstraint(
                fields=["company", "key"],
                name="uniq_number_series_company_key",
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.key}={self.next_value}"


class StockMovement(CommandOwnedModel):
    """
    Stock movement recorded for one document line.

    At most one row per (line, direction): applying the same movement
    twice is a no-op.
    """

    class Direction(models.TextChoices):
        IN = "IN", "In"
        OUT = "OUT", "Out"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="stock_movements",
    )
    document = models.ForeignKey(
        DocumentHeader,
        on_delete=models.CASCADE,
        related_name="stock_movements",
    )
    line = models.ForeignKey(
        DocumentDetail,
        on_delete=models.CASCADE,
        related_name="stock_movements",
    )
    product_code = models.CharField(max_length=50, blank=True, default="")
    direction = models.CharField(max_length=3, choices=Direction.choices)
    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["line", "direction"],
                name="uniq_stock_movement_line_dir",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "product_code"], name="documents_stock_product_idx"),
        ]

    def __str__(self):
        return f"{self.direction} {self.quantity} {self.product_code}"
