# ledger/posting.py
"""
Posting bridge between invoice documents and the AR/AP ledger.

post()          PURCHASE_INVOICE -> AP LedgerInvoice, SALES_INVOICE -> AR LedgerInvoice
sync()          push the totals of an edited posted document to its ledger invoice
unpost()        void the ledger invoice of a document being voided

The link is one-way in behaviour: voiding a document voids its ledger
invoice, voiding a ledger invoice never touches the document.

Everything here raises core errors; the calling command owns the
transaction.
"""

import logging
from datetime import timedelta

from django.utils import timezone

from core import backends
from core.errors import StateConflictError, ValidationError
from core.write_barrier import command_writes_allowed
from documents import chain
from documents.models import Domain, DocumentHeader
from events.types import (
    EventTypes,
    DocumentPostedData,
    LedgerInvoiceCreatedData,
    LedgerInvoiceSyncedData,
    LedgerInvoiceVoidedData,
)
from ledger.models import LedgerInvoice


logger = logging.getLogger(__name__)

LEDGER_KINDS = {
    Domain.PURCHASE: LedgerInvoice.Kind.AP,
    Domain.SALES: LedgerInvoice.Kind.AR,
}

# Document fields merged into the ledger invoice on sync, only when the
# document carries a value.
MERGED_FIELDS = (
    ("document_date", "invoice_date"),
    ("due_date", "due_date"),
    ("reference", "reference"),
    ("description", "description"),
    ("external_reference", "external_reference"),
)

TOTAL_FIELDS = ("subtotal", "discount_amount", "tax_amount", "net_total", "currency", "exchange_rate")


def ledger_kind_for(document) -> str:
    return LEDGER_KINDS[document.domain]


def linked_ledger_invoice(document, lock=False):
    """
    The ledger invoice generated from a document: the linked one, or
    failing that one whose source type and number match the document.
    """
    qs = LedgerInvoice.objects.filter(company_id=document.company_id)
    if lock:
        qs = qs.select_for_update()

    invoice = qs.filter(source_document=document).first()
    if invoice is None and document.is_posted:
        invoice = qs.filter(
            kind=ledger_kind_for(document),
            source_type=document.document_type,
            invoice_no=document.document_no,
        ).first()
    return invoice


def post(actor, document) -> LedgerInvoice:
    """
    Create the ledger invoice of an invoice document and mark the
    document POSTED. The document must be locked by the caller.
    """
    if not chain.is_invoice_type(document.document_type):
        raise ValidationError(
            f"Only invoices can be posted, not {document.document_type}.",
            code="NOT_AN_INVOICE",
        )
    if document.is_void:
        raise StateConflictError("Cannot post a void document.", code="ALREADY_VOIDED")
    if document.is_posted or linked_ledger_invoice(document) is not None:
        raise StateConflictError("Invoice already posted", code="ALREADY_POSTED")

    kind = ledger_kind_for(document)
    counterparty = backends.counterparties().get(
        document.company,
        document.counterparty_id,
        kind=chain.counterparty_kind(document.domain),
    )
    due_date = document.due_date or (document.document_date + timedelta(days=counterparty.credit_term_days))
    now = timezone.now()

    with command_writes_allowed():
        invoice = LedgerInvoice(
            company_id=document.company_id,
            kind=kind,
            invoice_no=document.document_no,
            invoice_date=document.document_date,
            due_date=due_date,
            counterparty_id=document.counterparty_id,
            counterparty_code=document.counterparty_code,
            counterparty_name=document.counterparty_name,
            external_reference=document.external_reference,
            reference=document.reference,
            description=document.description,
            subtotal=document.subtotal,
            discount_amount=document.discount_amount,
            tax_amount=document.tax_amount,
            net_total=document.net_total,
            currency=document.currency,
            exchange_rate=document.exchange_rate,
            source_type=document.document_type,
            source_document=document,
            created_by=actor.user if getattr(actor.user, "pk", None) else None,
        )
        invoice.recompute_outstanding()
        invoice.save()

        document.is_posted = True
        document.status = DocumentHeader.Status.POSTED
        document.posted_at = now
        document.save(update_fields=["is_posted", "status", "posted_at", "updated_at"])

    audit = backends.audit()
    audit.record(
        actor,
        EventTypes.LEDGER_INVOICE_CREATED,
        "LedgerInvoice",
        invoice.public_id,
        LedgerInvoiceCreatedData(
            invoice_public_id=str(invoice.public_id),
            kind=invoice.kind,
            invoice_no=invoice.invoice_no,
            counterparty_code=invoice.counterparty_code,
            net_total=str(invoice.net_total),
            currency=invoice.currency,
            due_date=invoice.due_date.isoformat() if invoice.due_date else None,
            source_document_public_id=str(document.public_id),
        ).to_dict(),
        idempotency_key=f"ledger_invoice.created:{invoice.public_id}",
    )
    audit.record(
        actor,
        EventTypes.DOCUMENT_POSTED,
        "Document",
        document.public_id,
        DocumentPostedData(
            document_public_id=str(document.public_id),
            document_no=document.document_no,
            ledger_invoice_public_id=str(invoice.public_id),
            invoice_no=invoice.invoice_no,
            net_total=str(invoice.net_total),
        ).to_dict(),
        idempotency_key=f"document.posted:{document.public_id}",
    )

    logger.info(
        "Posted %s to %s ledger",
        document.document_no,
        kind,
        extra={
            "company_id": document.company_id,
            "document_id": document.id,
            "invoice_id": invoice.id,
            "net_total": str(invoice.net_total),
        },
    )
    return invoice


def sync(actor, document):
    """
    Push a posted document's totals to its ledger invoice.

    outstanding_amount = max(0, net_total - paid_amount), status follows.
    Dates, reference, description and external reference are replaced
    only when the document has a non-empty value. Returns the invoice, or
    None when there is nothing to sync.
    """
    invoice = linked_ledger_invoice(document, lock=True)
    if invoice is None:
        return None
    if invoice.is_void:
        logger.warning(
            "Skipped sync of %s: ledger invoice %s is void",
            document.document_no,
            invoice.invoice_no,
            extra={"company_id": document.company_id, "document_id": document.id, "invoice_id": invoice.id},
        )
        return None

    for field in TOTAL_FIELDS:
        setattr(invoice, field, getattr(document, field))
    for doc_field, inv_field in MERGED_FIELDS:
        value = getattr(document, doc_field)
        if value not in (None, ""):
            setattr(invoice, inv_field, value)
    invoice.recompute_outstanding()

    with command_writes_allowed():
        invoice.save()

    backends.audit().record(
        actor,
        EventTypes.LEDGER_INVOICE_SYNCED,
        "LedgerInvoice",
        invoice.public_id,
        LedgerInvoiceSyncedData(
            invoice_public_id=str(invoice.public_id),
            net_total=str(invoice.net_total),
            paid_amount=str(invoice.paid_amount),
            outstanding_amount=str(invoice.outstanding_amount),
            status=invoice.status,
        ).to_dict(),
    )
    return invoice


def void_invoice(actor, invoice, reason="", cascaded_from=None, reversed_knockoffs=0) -> LedgerInvoice:
    """Mark a locked ledger invoice VOID. Knockoffs must be reversed first."""
    if invoice.knockoffs.filter(is_reversed=False).exists():
        raise StateConflictError(
            f"Invoice {invoice.invoice_no} still has active knockoffs.",
            code="ACTIVE_KNOCKOFFS",
        )

    with command_writes_allowed():
        invoice.is_void = True
        invoice.voided_at = timezone.now()
        invoice.void_reason = (reason or "")[:255]
        invoice.recompute_outstanding()
        invoice.save()

    backends.audit().record(
        actor,
        EventTypes.LEDGER_INVOICE_VOIDED,
        "LedgerInvoice",
        invoice.public_id,
        LedgerInvoiceVoidedData(
            invoice_public_id=str(invoice.public_id),
            invoice_no=invoice.invoice_no,
            reversed_knockoffs=reversed_knockoffs,
            cascaded_from_document=str(cascaded_from.public_id) if cascaded_from is not None else None,
        ).to_dict(),
        idempotency_key=f"ledger_invoice.voided:{invoice.public_id}",
    )
    logger.info(
        "Voided ledger invoice %s",
        invoice.invoice_no,
        extra={"company_id": invoice.company_id, "invoice_id": invoice.id},
    )
    return invoice


def unpost(actor, document, invoice, reason="", reversed_knockoffs=0):
    """
    Void the ledger invoice of a document being voided. The invoice's
    knockoffs must already be reversed. Returns None when there is no
    invoice or it is already void.
    """
    if invoice is None or invoice.is_void:
        return None
    return void_invoice(
        actor,
        invoice,
        reason=reason,
        cascaded_from=document,
        reversed_knockoffs=reversed_knockoffs,
    )
