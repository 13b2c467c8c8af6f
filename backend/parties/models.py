# parties/models.py

import uuid

from django.db import models

from accounts.models import Company
from core.models import CommandOwnedModel


class Counterparty(CommandOwnedModel):
    """A vendor or a customer of one company."""

    class Kind(models.TextChoices):
        VENDOR = "VENDOR", "Vendor"
        CUSTOMER = "CUSTOMER", "Customer"

    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="counterparties",
    )
    kind = models.CharField(max_length=10, choices=Kind.choices)
    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    currency = models.CharField(max_length=3)
    credit_term_days = models.PositiveIntegerField(default=0)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["kind", "code"]
        verbose_name_plural = "Counterparties"
        constraints = [
            models.UniqueConstraint(
                fields=["company", "kind", "code"],
                name="uniq_counterparty_company_kind_code",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "kind", "is_active"], name="parties_cp_company_kind_idx"),
        ]

    def __str__(self):
        return f"{self.code} {self.name}"
