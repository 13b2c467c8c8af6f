# documents/commands.py
"""
Command layer for the document chain.

All state changes to documents go through these commands.

Pattern:
1. Validate permissions (require)
2. Lock the rows the decision reads (select_for_update, ascending pk)
3. Apply policies
4. Write inside command_writes_allowed()
5. Record the audit event
6. Return CommandResult

Every command runs in one transaction (@command); a CommandError raised
anywhere inside rolls back all of its writes.
"""

import logging
from datetime import date

from django.utils import timezone
from django.utils.dateparse import parse_date

from accounts.authz import ActorContext, require
from core import backends
from core.errors import NotFoundError, StateConflictError, ValidationError
from core.money import MAX_EXCHANGE_RATE, rate
from core.policies import enforce
from core.results import CommandResult, command
from core.write_barrier import command_writes_allowed
from documents import chain
from documents.lines import apply_line_input, build_line, validate_lines_input
from documents.models import DocumentDetail, DocumentHeader
from documents.policies import can_edit_document, can_post_document, can_transfer_document, check_not_void
from documents.reversal import ReversalContext, collect_void_facts, execute_plan, plan_document_void
from documents.transfer import adjust_source_line, apply_totals, lock_source_lines, refresh_transfer_status, transfer
from events.types import (
    EventTypes,
    DocumentCreatedData,
    DocumentTransferredData,
    DocumentUpdatedData,
    DocumentVoidedData,
)
from ledger import posting


logger = logging.getLogger(__name__)

HEADER_FIELDS = {
    "document_date",
    "due_date",
    "reference",
    "description",
    "external_reference",
    "currency",
    "exchange_rate",
}


def _to_date(value, field: str):
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    parsed = parse_date(str(value))
    if parsed is None:
        raise ValidationError(f"Invalid date for {field}: {value}.")
    return parsed


def _exchange_rate(value):
    parsed = rate(value if value not in (None, "") else "1")
    if parsed <= 0:
        raise ValidationError("Exchange rate must be positive.")
    if parsed >= MAX_EXCHANGE_RATE:
        raise ValidationError("Exchange rate is out of range.")
    return parsed


def _get_locked_document(actor, document_id) -> DocumentHeader:
    try:
        return DocumentHeader.objects.select_for_update().get(company=actor.company, pk=document_id)
    except (DocumentHeader.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Document not found.")


def _change_value(value):
    if value is None or isinstance(value, (str, int, bool)):
        return value
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


# =============================================================================
# Create / Update
# =============================================================================

@command
def create_document(
    actor: ActorContext,
    document_type: str,
    counterparty_id: int,
    lines: list = None,
    document_date=None,
    due_date=None,
    document_no: str = None,
    reference: str = "",
    description: str = "",
    external_reference: str = "",
    currency: str = None,
    exchange_rate=None,
) -> CommandResult:
    """
    Create a document of any stage.

    Args:
        actor: The actor context
        document_type: One of DocumentType
        counterparty_id: Vendor for purchase documents, customer for sales documents
        lines: Canonical line dicts (see documents.lines)
        document_no: Explicit number; taken from the numbering backend when omitted

    Returns:
        CommandResult with the created DocumentHeader or error
    """
    require(actor, "documents.create")

    domain = chain.domain_of(document_type)
    counterparty = backends.counterparties().get(
        actor.company, counterparty_id, kind=chain.counterparty_kind(domain)
    )
    validate_lines_input(lines)

    document_date = _to_date(document_date, "document_date") or timezone.localdate()
    fx_rate = _exchange_rate(exchange_rate)

    if document_no:
        if DocumentHeader.objects.filter(
            company=actor.company, document_type=document_type, document_no=document_no
        ).exists():
            raise ValidationError(f"{document_type} {document_no} already exists.", code="DUPLICATE_NUMBER")
    else:
        document_no = backends.numbering().next_number(actor.company, document_type)

    with command_writes_allowed():
        document = DocumentHeader.objects.create(
            company=actor.company,
            domain=domain,
            document_type=document_type,
            document_no=document_no,
            document_date=document_date,
            due_date=_to_date(due_date, "due_date"),
            counterparty_id=counterparty.id,
            counterparty_code=counterparty.code,
            counterparty_name=counterparty.name,
            reference=reference or "",
            description=description or "",
            external_reference=external_reference or "",
            currency=(currency or counterparty.currency or actor.company.default_currency).upper(),
            exchange_rate=fx_rate,
            created_by=actor.user if getattr(actor.user, "pk", None) else None,
        )

        new_lines = [build_line(document, idx, data) for idx, data in enumerate(lines, start=1)]
        for line in new_lines:
            line.save()

        apply_totals(document, new_lines)
        document.save()

    direction = chain.stock_direction(document_type)
    if direction:
        backends.inventory().apply_stock_movement(document, direction)

    event = backends.audit().record(
        actor,
        EventTypes.DOCUMENT_CREATED,
        "Document",
        document.public_id,
        DocumentCreatedData(
            document_public_id=str(document.public_id),
            document_type=document.document_type,
            document_no=document.document_no,
            document_date=document.document_date.isoformat(),
            counterparty_code=document.counterparty_code,
            net_total=str(document.net_total),
            currency=document.currency,
            line_count=len(new_lines),
        ).to_dict(),
        idempotency_key=f"document.created:{document.public_id}",
    )

    logger.info(
        "Created %s %s",
        document.document_type,
        document.document_no,
        extra={"company_id": actor.company.id, "document_id": document.id, "net_total": str(document.net_total)},
    )
    return CommandResult.ok(document, event=event)


def _replace_lines(document: DocumentHeader, lines: list) -> list:
    """
    Replace the document's lines with canonical input.

    Lines with the id of an existing line are updated in place and keep
    their line number and source link; other lines are appended. A
    quantity change on a linked line moves the difference to or from the
    source line. Existing lines left out are deleted and give their
    quantity back to the source. A void source is left untouched and
    cannot give more quantity. Returns the touched source documents, locked.
    """
    existing = {
        line.id: line
        for line in DocumentDetail.objects.select_for_update().filter(document=document).order_by("id")
    }

    kept_ids = set()
    for data in lines:
        line_id = data.get("id")
        if line_id is None:
            continue
        if line_id not in existing:
            raise ValidationError(f"Line {line_id} does not belong to this document.", code="INVALID_LINE")
        if line_id in kept_ids:
            raise ValidationError(f"Line {line_id} appears more than once.", code="INVALID_LINE")
        kept_ids.add(line_id)

    sources, source_documents = lock_source_lines(
        line.source_line_id for line in existing.values() if line.source_line_id is not None
    )
    touched_documents = set()

    def move_source_quantity(source_line_id, delta):
        source_line = sources[source_line_id]
        source = source_documents[source_line.document_id]
        # A void source is frozen: it cannot give more, and gets nothing back.
        if source.is_void:
            if delta > 0:
                raise StateConflictError(
                    f"Source document {source.document_no} is void.", code="SOURCE_VOIDED"
                )
            return
        adjust_source_line(source_line, delta)
        touched_documents.add(source.id)

    with command_writes_allowed():
        # Deletions first, so released quantity is available to the kept lines.
        for line_id, line in existing.items():
            if line_id in kept_ids:
                continue
            if line.source_line_id is not None:
                move_source_quantity(line.source_line_id, -line.quantity)
            line.delete()

        next_line_no = max((line.line_no for line in existing.values()), default=0) + 1
        for data in lines:
            line_id = data.get("id")
            if line_id is None:
                line = build_line(document, next_line_no, data)
                next_line_no += 1
                line.save()
                continue

            line = existing[line_id]
            old_quantity = line.quantity
            apply_line_input(line, data)
            if line.source_line_id is not None and line.quantity != old_quantity:
                move_source_quantity(line.source_line_id, line.quantity - old_quantity)
            line.save()

    return [source_documents[doc_id] for doc_id in sorted(touched_documents)]


@command
def update_document(actor: ActorContext, document_id: int, lines: list = None, **fields) -> CommandResult:
    """
    Update header fields and, when lines are given, replace the lines.

    A posted document pushes its new totals to its ledger invoice.
    """
    require(actor, "documents.edit")

    document = _get_locked_document(actor, document_id)
    enforce(check_not_void(document), code="ALREADY_VOIDED")
    enforce(can_edit_document(document), code="DOCUMENT_TRANSFERRED")

    unknown = set(fields) - HEADER_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}.")

    changes = {}
    for field, value in fields.items():
        if field in ("document_date", "due_date"):
            value = _to_date(value, field)
            if field == "document_date" and value is None:
                raise ValidationError("Document date cannot be empty.")
        elif field == "exchange_rate":
            value = _exchange_rate(value)
        elif field == "currency":
            value = (value or document.currency).upper()
        else:
            value = value or ""
        old = getattr(document, field)
        if old != value:
            changes[field] = {"old": _change_value(old), "new": _change_value(value)}
            setattr(document, field, value)

    touched_sources = []
    if lines is not None:
        validate_lines_input(lines)
        touched_sources = _replace_lines(document, lines)

    old_net = document.net_total
    apply_totals(document, list(document.lines.all()))
    if document.net_total != old_net:
        changes["net_total"] = {"old": str(old_net), "new": str(document.net_total)}

    with command_writes_allowed():
        document.save()

    for source in touched_sources:
        refresh_transfer_status(source)

    direction = chain.stock_direction(document.document_type)
    if direction and lines is not None:
        backends.inventory().apply_stock_movement(document, direction)

    if document.is_posted:
        posting.sync(actor, document)

    event = backends.audit().record(
        actor,
        EventTypes.DOCUMENT_UPDATED,
        "Document",
        document.public_id,
        DocumentUpdatedData(
            document_public_id=str(document.public_id),
            document_no=document.document_no,
            net_total=str(document.net_total),
            changes=changes,
            lines_replaced=lines is not None,
        ).to_dict(),
    )
    return CommandResult.ok(document, event=event)


# =============================================================================
# Transfer
# =============================================================================

@command
def transfer_document(
    actor: ActorContext,
    document_id: int,
    target_type: str,
    line_transfers: list = None,
) -> CommandResult:
    """
    Transfer a document, or some of its line quantities, to a later stage.

    Args:
        actor: The actor context
        document_id: Source document
        target_type: Later stage of the same domain
        line_transfers: [{"line_id": 1, "transfer_qty": "6"}, ...]; all
            outstanding quantity when omitted

    Returns:
        CommandResult with the new DocumentHeader. An invoice target is
        posted to the ledger before the result is returned.
    """
    require(actor, "documents.transfer")

    source = _get_locked_document(actor, document_id)
    enforce(check_not_void(source), code="ALREADY_VOIDED")
    enforce(can_transfer_document(source), code="ALREADY_TRANSFERRED")

    target = transfer(actor, source, target_type, line_transfers)

    if chain.is_invoice_type(target.document_type):
        posting.post(actor, target)

    transferred = [
        {"line_no": line.source_line.line_no, "transfer_qty": str(line.quantity)}
        for line in target.lines.select_related("source_line").order_by("line_no")
    ]

    audit = backends.audit()
    audit.record(
        actor,
        EventTypes.DOCUMENT_CREATED,
        "Document",
        target.public_id,
        DocumentCreatedData(
            document_public_id=str(target.public_id),
            document_type=target.document_type,
            document_no=target.document_no,
            document_date=target.document_date.isoformat(),
            counterparty_code=target.counterparty_code,
            net_total=str(target.net_total),
            currency=target.currency,
            line_count=len(transferred),
            source_document_public_id=str(source.public_id),
        ).to_dict(),
        idempotency_key=f"document.created:{target.public_id}",
    )
    event = audit.record(
        actor,
        EventTypes.DOCUMENT_TRANSFERRED,
        "Document",
        source.public_id,
        DocumentTransferredData(
            source_document_public_id=str(source.public_id),
            target_document_public_id=str(target.public_id),
            target_type=target.document_type,
            target_document_no=target.document_no,
            transfer_status=source.transfer_status,
            lines=transferred,
        ).to_dict(),
        idempotency_key=f"document.transferred:{target.public_id}",
    )
    return CommandResult.ok(target, event=event)


@command
def get_transferable_lines(actor: ActorContext, document_id: int) -> CommandResult:
    """Lines that still have outstanding quantity, by line number."""
    require(actor, "documents.view")

    try:
        document = DocumentHeader.objects.get(company=actor.company, pk=document_id)
    except (DocumentHeader.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Document not found.")

    lines = list(document.lines.filter(outstanding_qty__gt=0).order_by("line_no"))
    return CommandResult.ok({
        "document": document,
        "lines": lines,
        "targets": chain.transfer_targets(document.document_type),
    })


# =============================================================================
# Posting
# =============================================================================

@command
def post_document(actor: ActorContext, document_id: int) -> CommandResult:
    """Post an invoice document to the AR/AP ledger."""
    require(actor, "documents.post")

    document = _get_locked_document(actor, document_id)
    enforce(check_not_void(document), code="ALREADY_VOIDED")
    enforce(can_post_document(document), code="ALREADY_POSTED")

    invoice = posting.post(actor, document)
    return CommandResult.ok({"document": document, "ledger_invoice": invoice})


# =============================================================================
# Void
# =============================================================================

@command
def void_document(actor: ActorContext, document_id: int, reason: str = "") -> CommandResult:
    """
    Void a document and undo its effects.

    A document with effects (transfers out, a ledger invoice, stock
    movements) is kept as VOID; one without is deleted with its lines.

    Returns:
        CommandResult with {"document_public_id", "deleted", "steps"}
    """
    require(actor, "documents.void")

    document = _get_locked_document(actor, document_id)
    enforce(check_not_void(document), code="ALREADY_VOIDED")

    ledger_invoice = posting.linked_ledger_invoice(document, lock=True)
    steps = plan_document_void(collect_void_facts(document, ledger_invoice))

    public_id = document.public_id
    ctx = execute_plan(
        ReversalContext(actor=actor, document=document, reason=reason or "", ledger_invoice=ledger_invoice),
        steps,
    )

    event = backends.audit().record(
        actor,
        EventTypes.DOCUMENT_DELETED if ctx.deleted else EventTypes.DOCUMENT_VOIDED,
        "Document",
        public_id,
        DocumentVoidedData(
            document_public_id=str(public_id),
            document_no=document.document_no,
            document_type=document.document_type,
            steps=list(ctx.executed),
            reason=reason or "",
        ).to_dict(),
        idempotency_key=f"document.voided:{public_id}",
    )
    return CommandResult.ok(
        {"document_public_id": str(public_id), "deleted": ctx.deleted, "steps": list(ctx.executed)},
        event=event,
    )
