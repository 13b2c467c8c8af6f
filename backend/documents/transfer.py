# documents/transfer.py
"""
Transfer engine: turn a document (or part of it) into a document of a
later stage.

For each transferred source line:
    source.transferred_qty += transfer_qty
    source.outstanding_qty  = quantity - transferred_qty
    target.quantity = target.outstanding_qty = transfer_qty

The source's transfer_status becomes TRANSFERRED once every line is fully
transferred, PARTIAL otherwise. Its status only moves to TRANSFERRED
together with transfer_status.

Everything here raises core errors; the calling command owns the
transaction and the locks.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from django.utils import timezone

from core import backends
from core.errors import ReconciliationError, ValidationError
from core.money import ZERO, qty
from core.write_barrier import command_writes_allowed
from documents import chain, pricing
from documents.models import DocumentDetail, DocumentHeader


logger = logging.getLogger(__name__)


def resolve_transfer_lines(source_lines, line_transfers=None) -> List[Tuple[DocumentDetail, Decimal]]:
    """
    Pair source lines with the quantity to transfer.

    Without line_transfers every line with outstanding quantity is taken
    in full. With them, each {line_id, transfer_qty} must name a line of
    the source; zero quantities are skipped.
    """
    if not line_transfers:
        return [(line, line.outstanding_qty) for line in source_lines if line.outstanding_qty > 0]

    by_id = {line.id: line for line in source_lines}
    pairs = []
    seen = set()
    for entry in line_transfers:
        line_id = entry.get("line_id")
        line = by_id.get(line_id)
        if line is None:
            raise ValidationError(f"Line {line_id} does not belong to this document.", code="INVALID_LINE")
        if line_id in seen:
            raise ValidationError(f"Line {line_id} appears more than once.", code="INVALID_LINE")
        seen.add(line_id)

        transfer_qty = qty(entry.get("transfer_qty"))
        if transfer_qty < 0:
            raise ValidationError(f"Transfer quantity for line {line.line_no} cannot be negative.")
        if transfer_qty == 0:
            continue
        if transfer_qty > line.outstanding_qty:
            raise ReconciliationError(
                f"Transfer quantity {transfer_qty} exceeds outstanding {line.outstanding_qty} "
                f"on line {line.line_no}.",
                code="TRANSFER_EXCEEDS_OUTSTANDING",
            )
        pairs.append((line, transfer_qty))

    return sorted(pairs, key=lambda pair: pair[0].line_no)


def transferred_line(target, line_no: int, source_line: DocumentDetail, transfer_qty: Decimal) -> DocumentDetail:
    """
    Copy a source line for transfer_qty units.

    Percentage discounts and rate-based tax are recomputed on the new
    quantity; fixed discount and tax amounts are prorated.
    """
    if pricing.is_percentage_discount(source_line.discount):
        discount_amount = None
    else:
        discount_amount = pricing.prorate(source_line.discount_amount, transfer_qty, source_line.quantity)

    if source_line.tax_rate:
        tax_amount = None
    else:
        tax_amount = pricing.prorate(source_line.tax_amount, transfer_qty, source_line.quantity)

    amounts = pricing.price_line(
        transfer_qty,
        source_line.unit_price,
        discount=source_line.discount,
        discount_amount=discount_amount,
        tax_rate=source_line.tax_rate,
        tax_amount=tax_amount,
    )
    return DocumentDetail(
        company_id=target.company_id,
        document=target,
        line_no=line_no,
        product_code=source_line.product_code,
        account_code=source_line.account_code,
        description=source_line.description,
        quantity=transfer_qty,
        unit_price=source_line.unit_price,
        discount=source_line.discount,
        discount_amount=amounts.discount_amount,
        tax_code=source_line.tax_code,
        tax_rate=source_line.tax_rate,
        tax_amount=amounts.tax_amount,
        subtotal=amounts.subtotal,
        source_line=source_line,
    )


def apply_totals(document: DocumentHeader, lines) -> None:
    totals = pricing.document_totals(lines, document.exchange_rate)
    document.subtotal = totals.subtotal
    document.discount_amount = totals.discount_amount
    document.tax_amount = totals.tax_amount
    document.net_total = totals.net_total
    document.net_total_local = totals.net_total_local


def refresh_transfer_status(document: DocumentHeader) -> None:
    """
    Recompute transfer_status and status from the document's lines.
    VOID and POSTED documents keep their status.
    """
    lines = list(document.lines.all())
    if lines and all(line.outstanding_qty <= 0 for line in lines):
        transfer_status = DocumentHeader.TransferStatus.TRANSFERRED
    elif any(line.transferred_qty > 0 for line in lines):
        transfer_status = DocumentHeader.TransferStatus.PARTIAL
    else:
        transfer_status = DocumentHeader.TransferStatus.NONE

    document.transfer_status = transfer_status
    if document.status not in (DocumentHeader.Status.VOID, DocumentHeader.Status.POSTED):
        if transfer_status == DocumentHeader.TransferStatus.TRANSFERRED:
            document.status = DocumentHeader.Status.TRANSFERRED
        else:
            document.status = DocumentHeader.Status.OPEN

    with command_writes_allowed():
        document.save(update_fields=["transfer_status", "status", "updated_at"])


def adjust_source_line(source_line: DocumentDetail, delta: Decimal) -> None:
    """
    Move delta units between a locked source line's outstanding and
    transferred quantities. A positive delta takes more from the source.
    """
    if delta > source_line.outstanding_qty:
        raise ReconciliationError(
            f"Quantity {delta} exceeds outstanding {source_line.outstanding_qty} "
            f"on source line {source_line.line_no}.",
            code="TRANSFER_EXCEEDS_OUTSTANDING",
        )
    new_transferred = source_line.transferred_qty + delta
    if new_transferred < 0:
        new_transferred = ZERO
    source_line.transferred_qty = new_transferred
    with command_writes_allowed():
        source_line.save(update_fields=["transferred_qty"])


def lock_source_lines(source_line_ids) -> Tuple[dict, dict]:
    """
    Lock the documents owning the given source lines, then the lines,
    each in ascending id order. Returns (lines by id, documents by id).
    """
    source_line_ids = sorted(set(source_line_ids))
    if not source_line_ids:
        return {}, {}
    document_ids = sorted(set(
        DocumentDetail.objects.filter(id__in=source_line_ids).values_list("document_id", flat=True)
    ))
    documents = {
        d.id: d
        for d in DocumentHeader.objects.select_for_update().filter(id__in=document_ids).order_by("id")
    }
    lines = {
        line.id: line
        for line in DocumentDetail.objects.select_for_update().filter(id__in=source_line_ids).order_by("id")
    }
    return lines, documents


def transfer(actor, source: DocumentHeader, target_type: str, line_transfers: Optional[list] = None) -> DocumentHeader:
    """
    Create the target document from a locked source document and update
    the source's quantities and statuses. Returns the target.
    """
    chain.validate_transfer_target(source.document_type, target_type)

    source_lines = list(
        DocumentDetail.objects.select_for_update().filter(document=source).order_by("id")
    )
    pairs = resolve_transfer_lines(source_lines, line_transfers)
    if not pairs:
        raise ValidationError("No lines to transfer", code="NO_LINES")

    document_no = backends.numbering().next_number(source.company, target_type)

    with command_writes_allowed():
        target = DocumentHeader(
            company_id=source.company_id,
            domain=source.domain,
            document_type=target_type,
            document_no=document_no,
            document_date=timezone.localdate(),
            counterparty_id=source.counterparty_id,
            counterparty_code=source.counterparty_code,
            counterparty_name=source.counterparty_name,
            reference=source.reference,
            description=source.description,
            external_reference=source.external_reference,
            currency=source.currency,
            exchange_rate=source.exchange_rate,
            source_type=source.document_type,
            source_document=source,
            created_by=actor.user if getattr(actor.user, "pk", None) else None,
        )
        target.save()

        new_lines = [
            transferred_line(target, line_no, source_line, transfer_qty)
            for line_no, (source_line, transfer_qty) in enumerate(pairs, start=1)
        ]
        for line in new_lines:
            line.save()

        apply_totals(target, new_lines)
        target.save()

    for source_line, transfer_qty in pairs:
        adjust_source_line(source_line, transfer_qty)
    refresh_transfer_status(source)

    direction = chain.stock_direction(target_type)
    if direction:
        backends.inventory().apply_stock_movement(target, direction)

    logger.info(
        "Transferred %s to %s %s",
        source.document_no,
        target_type,
        target.document_no,
        extra={
            "company_id": source.company_id,
            "source_document_id": source.id,
            "target_document_id": target.id,
            "transfer_status": source.transfer_status,
        },
    )
    return target
