# ledger/allocation.py
"""
Knockoff allocation: applying payments to outstanding ledger invoices.

Applying a knockoff of k against an invoice:
    knockoff.outstanding_before = invoice.outstanding_amount   (locked)
    knockoff.outstanding_after  = outstanding_before - k
    invoice.paid_amount        += k
    invoice.outstanding_amount  = max(0, net_total - paid_amount)

Reversing it undoes the invoice update and marks the knockoff reversed.
Invoices are always locked in ascending id order.

Everything here raises core errors; the calling command owns the
transaction.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from django.utils import timezone

from core.errors import NotFoundError, ReconciliationError, ValidationError
from core.money import ZERO, money
from core.write_barrier import command_writes_allowed
from ledger.models import Knockoff, LedgerInvoice


logger = logging.getLogger(__name__)


@dataclass
class KnockoffRequest:
    invoice_id: int
    knockoff_amount: Decimal
    outstanding_before: Optional[Decimal] = None


def normalise_knockoffs(entries, payment_amount: Decimal) -> List[KnockoffRequest]:
    """
    Validate knockoff input and drop zero entries.

    Raises ValidationError for a missing list, negative amounts and
    duplicate invoices, ReconciliationError when the knockoffs add up to
    more than the payment.
    """
    if entries is None:
        raise ValidationError("Knockoffs are required (use an empty list for an unapplied payment).")

    requests = []
    seen = set()
    for entry in entries:
        invoice_id = entry.get("invoice_id")
        if invoice_id is None:
            raise ValidationError("Each knockoff needs an invoice_id.")
        amount = money(entry.get("knockoff_amount"))
        if amount < 0:
            raise ValidationError(f"Knockoff amount for invoice {invoice_id} cannot be negative.")
        if amount == 0:
            continue
        if invoice_id in seen:
            raise ValidationError(f"Invoice {invoice_id} appears more than once.", code="DUPLICATE_KNOCKOFF")
        seen.add(invoice_id)

        expected = entry.get("outstanding_before")
        requests.append(KnockoffRequest(
            invoice_id=invoice_id,
            knockoff_amount=amount,
            outstanding_before=money(expected) if expected not in (None, "") else None,
        ))

    total = sum((r.knockoff_amount for r in requests), ZERO)
    if total > payment_amount:
        raise ReconciliationError(
            f"Knockoffs total {total} exceeds payment amount {payment_amount}.",
            code="KNOCKOFF_EXCEEDS_PAYMENT",
        )
    return requests


def lock_invoices(company, invoice_ids: Iterable[int]) -> dict:
    """Lock the company's invoices in id order and return them by id."""
    ids = sorted(set(invoice_ids))
    invoices = {
        inv.id: inv
        for inv in LedgerInvoice.objects.select_for_update().filter(company=company, id__in=ids).order_by("id")
    }
    missing = [i for i in ids if i not in invoices]
    if missing:
        raise NotFoundError(f"Ledger invoice {missing[0]} not found.")
    return invoices


def apply_knockoffs(payment, requests: List[KnockoffRequest]) -> List[Knockoff]:
    """
    Apply knockoff requests of a saved payment against its counterparty's
    invoices. Returns the created Knockoff rows.
    """
    invoices = lock_invoices(payment.company, [r.invoice_id for r in requests])
    created = []

    for request in sorted(requests, key=lambda r: r.invoice_id):
        invoice = invoices[request.invoice_id]

        if invoice.kind != payment.invoice_kind:
            raise ValidationError(
                f"Invoice {invoice.invoice_no} is an {invoice.kind} invoice; "
                f"a {payment.kind} can only settle {payment.invoice_kind} invoices.",
                code="KNOCKOFF_KIND_MISMATCH",
            )
        if invoice.counterparty_id != payment.counterparty_id:
            raise ValidationError(
                f"Invoice {invoice.invoice_no} belongs to another counterparty.",
                code="KNOCKOFF_COUNTERPARTY_MISMATCH",
            )
        if invoice.is_void:
            raise ValidationError(f"Invoice {invoice.invoice_no} is void.", code="INVOICE_VOID")

        before = invoice.outstanding_amount
        if request.outstanding_before is not None and request.outstanding_before != before:
            raise ReconciliationError(
                f"Invoice {invoice.invoice_no} outstanding changed: expected "
                f"{request.outstanding_before}, found {before}.",
                code="STALE_OUTSTANDING",
            )
        if request.knockoff_amount > before:
            raise ReconciliationError(
                f"Knockoff {request.knockoff_amount} exceeds outstanding {before} "
                f"of invoice {invoice.invoice_no}.",
                code="KNOCKOFF_EXCEEDS_OUTSTANDING",
            )

        with command_writes_allowed():
            knockoff = Knockoff.objects.create(
                company=payment.company,
                payment=payment,
                invoice=invoice,
                invoice_no=invoice.invoice_no,
                invoice_date=invoice.invoice_date,
                document_amount=invoice.net_total,
                outstanding_before=before,
                knockoff_amount=request.knockoff_amount,
                outstanding_after=before - request.knockoff_amount,
            )
            invoice.paid_amount += request.knockoff_amount
            invoice.recompute_outstanding()
            invoice.save(update_fields=["paid_amount", "outstanding_amount", "status", "updated_at"])

        created.append(knockoff)

    return created


def _reverse(knockoffs: List[Knockoff], invoices: dict) -> List[dict]:
    now = timezone.now()
    reversed_rows = []
    with command_writes_allowed():
        for knockoff in knockoffs:
            invoice = invoices[knockoff.invoice_id]
            invoice.paid_amount = max(ZERO, invoice.paid_amount - knockoff.knockoff_amount)
            invoice.recompute_outstanding()
            invoice.save(update_fields=["paid_amount", "outstanding_amount", "status", "updated_at"])

            knockoff.is_reversed = True
            knockoff.reversed_at = now
            knockoff.save(update_fields=["is_reversed", "reversed_at"])

            reversed_rows.append({
                "invoice_public_id": str(invoice.public_id),
                "knockoff_amount": str(knockoff.knockoff_amount),
                "outstanding_after": str(invoice.outstanding_amount),
            })
    return reversed_rows


def reverse_payment_knockoffs(payment) -> List[dict]:
    """Reverse every active knockoff of a payment."""
    knockoffs = list(
        Knockoff.objects.select_for_update()
        .filter(payment=payment, is_reversed=False)
        .order_by("invoice_id", "id")
    )
    if not knockoffs:
        return []
    invoices = lock_invoices(payment.company, [k.invoice_id for k in knockoffs])
    return _reverse(knockoffs, invoices)


def reverse_invoice_knockoffs(invoice) -> int:
    """
    Reverse every active knockoff against one (locked) invoice. The
    payments stay valid; their applied amount drops.
    """
    knockoffs = list(
        Knockoff.objects.select_for_update()
        .filter(invoice=invoice, is_reversed=False)
        .order_by("id")
    )
    if knockoffs:
        _reverse(knockoffs, {invoice.id: invoice})
        logger.info(
            "Reversed %s knockoffs on %s",
            len(knockoffs),
            invoice.invoice_no,
            extra={"company_id": invoice.company_id, "invoice_id": invoice.id},
        )
    return len(knockoffs)


# =============================================================================
# Auto allocation
# =============================================================================

def oldest_first(invoice) -> tuple:
    return (invoice.invoice_date, invoice.due_date or invoice.invoice_date, invoice.id)


def auto_allocate(total, invoices) -> List[dict]:
    """
    Spread total over invoices greedily in the given order: each invoice
    takes min(remaining, outstanding) until nothing remains.

    Returns knockoff entries {invoice_id, knockoff_amount, outstanding_before}.
    """
    remaining = money(total)
    allocations = []
    for invoice in invoices:
        if remaining <= 0:
            break
        outstanding = invoice.outstanding_amount
        if outstanding <= 0:
            continue
        amount = min(remaining, outstanding)
        allocations.append({
            "invoice_id": invoice.id,
            "knockoff_amount": amount,
            "outstanding_before": outstanding,
        })
        remaining -= amount
    return allocations


def outstanding_invoices(company, kind, counterparty_id):
    """Non-void invoices of a counterparty with something left to pay, oldest first."""
    return LedgerInvoice.objects.filter(
        company=company,
        kind=kind,
        counterparty_id=counterparty_id,
        is_void=False,
        outstanding_amount__gt=0,
    ).order_by("invoice_date", "due_date", "id")
