# documents/reversal.py
"""
Void/reversal of documents as an explicit plan.

plan_document_void() is a pure function of VoidFacts and returns the
ordered steps that undo a document's effects:

    1. ReverseStockMovement      GOODS_RECEIVED -> OUT, DELIVERY_ORDER -> IN
    2. ReleaseSourceQuantities   give transferred quantity back to the source
    3. ReverseKnockoffs          payments applied to the linked ledger invoice
    4. VoidLedgerInvoice         the linked ledger invoice
    5. SoftVoid | HardDelete     keep the row when the document had effects

execute_plan() runs the steps in order. The calling command owns the
transaction, so a failing step leaves nothing behind.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.utils import timezone

from core import backends
from core.write_barrier import command_writes_allowed
from documents import chain
from documents.models import DocumentHeader
from documents.policies import has_void_effects
from documents.transfer import adjust_source_line, lock_source_lines, refresh_transfer_status
from ledger import allocation, posting


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoidFacts:
    """What the planner needs to know about a document being voided."""
    document_type: str
    has_source: bool
    has_effects: bool
    ledger_invoice_id: Optional[int] = None
    ledger_invoice_void: bool = False
    active_knockoffs: int = 0


@dataclass
class ReversalContext:
    actor: object
    document: DocumentHeader
    reason: str = ""
    ledger_invoice: object = None
    reversed_knockoffs: int = 0
    deleted: bool = False
    executed: List[str] = field(default_factory=list)


class ReversalStep:
    name = ""

    def execute(self, ctx: ReversalContext) -> None:
        raise NotImplementedError

    def __eq__(self, other):
        return type(self) is type(other) and vars(self) == vars(other)

    def __repr__(self):
        args = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{self.__class__.__name__}({args})"


class ReverseStockMovement(ReversalStep):
    name = "reverse_stock_movement"

    def __init__(self, direction: str):
        self.direction = direction

    def execute(self, ctx):
        backends.inventory().apply_stock_movement(ctx.document, self.direction)


class ReleaseSourceQuantities(ReversalStep):
    name = "release_source_quantities"

    def execute(self, ctx):
        lines = list(
            ctx.document.lines.filter(source_line__isnull=False).order_by("source_line_id")
        )
        if not lines:
            return
        sources, source_documents = lock_source_lines(line.source_line_id for line in lines)
        touched = set()
        for line in lines:
            source_line = sources[line.source_line_id]
            # Void sources stay as they were voided.
            if source_documents[source_line.document_id].is_void:
                continue
            adjust_source_line(source_line, -line.quantity)
            touched.add(source_line.document_id)

        for doc_id in sorted(touched):
            refresh_transfer_status(source_documents[doc_id])


class ReverseKnockoffs(ReversalStep):
    name = "reverse_knockoffs"

    def __init__(self, invoice_id: int):
        self.invoice_id = invoice_id

    def execute(self, ctx):
        ctx.reversed_knockoffs = allocation.reverse_invoice_knockoffs(ctx.ledger_invoice)


class VoidLedgerInvoice(ReversalStep):
    name = "void_ledger_invoice"

    def __init__(self, invoice_id: int):
        self.invoice_id = invoice_id

    def execute(self, ctx):
        posting.unpost(
            ctx.actor,
            ctx.document,
            ctx.ledger_invoice,
            reason=ctx.reason,
            reversed_knockoffs=ctx.reversed_knockoffs,
        )


class SoftVoid(ReversalStep):
    name = "soft_void"

    def execute(self, ctx):
        document = ctx.document
        document.is_void = True
        document.status = DocumentHeader.Status.VOID
        document.voided_at = timezone.now()
        document.void_reason = (ctx.reason or "")[:255]
        with command_writes_allowed():
            document.save(update_fields=["is_void", "status", "voided_at", "void_reason", "updated_at"])


class HardDelete(ReversalStep):
    name = "hard_delete"

    def execute(self, ctx):
        with command_writes_allowed():
            ctx.document.delete()
        ctx.deleted = True


def plan_document_void(facts: VoidFacts) -> List[ReversalStep]:
    steps = []

    direction = chain.stock_direction(facts.document_type)
    if direction:
        steps.append(ReverseStockMovement(chain.opposite_direction(direction)))

    if facts.has_source:
        steps.append(ReleaseSourceQuantities())

    if facts.ledger_invoice_id and not facts.ledger_invoice_void:
        if facts.active_knockoffs:
            steps.append(ReverseKnockoffs(facts.ledger_invoice_id))
        steps.append(VoidLedgerInvoice(facts.ledger_invoice_id))

    if facts.has_effects or facts.ledger_invoice_id:
        steps.append(SoftVoid())
    else:
        steps.append(HardDelete())
    return steps


def collect_void_facts(document: DocumentHeader, ledger_invoice=None) -> VoidFacts:
    active = 0
    if ledger_invoice is not None and not ledger_invoice.is_void:
        active = ledger_invoice.knockoffs.filter(is_reversed=False).count()
    return VoidFacts(
        document_type=document.document_type,
        has_source=document.lines.filter(source_line__isnull=False).exists(),
        has_effects=has_void_effects(document, ledger_invoice),
        ledger_invoice_id=ledger_invoice.id if ledger_invoice is not None else None,
        ledger_invoice_void=bool(ledger_invoice is not None and ledger_invoice.is_void),
        active_knockoffs=active,
    )


def execute_plan(ctx: ReversalContext, steps: List[ReversalStep]) -> ReversalContext:
    for step in steps:
        step.execute(ctx)
        ctx.executed.append(step.name)
    logger.info(
        "Reversed %s %s: %s",
        ctx.document.document_type,
        ctx.document.document_no,
        ", ".join(ctx.executed),
        extra={"company_id": ctx.document.company_id, "steps": ctx.executed},
    )
    return ctx
