# ledger/commands.py
"""
Command layer for the AR/AP ledger.

Pattern:
1. Validate permissions (require)
2. Lock the rows the decision reads (select_for_update, ascending pk)
3. Apply policies
4. Write inside command_writes_allowed()
5. Record the audit event
6. Return CommandResult

Payments are immutable once created: correct them with void + recreate.
"""

import logging
from datetime import date, timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date

from accounts.authz import ActorContext, require
from core import backends
from core.errors import NotFoundError, StateConflictError, ValidationError
from core.money import MAX_EXCHANGE_RATE, money, rate
from core.policies import enforce
from core.results import CommandResult, command
from core.write_barrier import command_writes_allowed
from events.types import (
    EventTypes,
    LedgerInvoiceCreatedData,
    LedgerInvoiceDeletedData,
    PaymentCreatedData,
    PaymentReversedData,
)
from ledger import allocation, posting
from ledger.models import LedgerInvoice, Payment
from ledger.policies import (
    can_delete_ledger_invoice,
    check_invoice_not_void,
    check_payment_not_void,
    must_soft_delete,
)
from parties.models import Counterparty


logger = logging.getLogger(__name__)

INVOICE_COUNTERPARTY_KINDS = {
    LedgerInvoice.Kind.AP: Counterparty.Kind.VENDOR,
    LedgerInvoice.Kind.AR: Counterparty.Kind.CUSTOMER,
}

PAYMENT_INVOICE_KINDS = {
    Payment.Kind.AP_PAYMENT: LedgerInvoice.Kind.AP,
    Payment.Kind.AR_RECEIPT: LedgerInvoice.Kind.AR,
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


def _invoice_kind(kind: str) -> str:
    """Accept an invoice kind (AP/AR) or a payment kind."""
    if kind in PAYMENT_INVOICE_KINDS:
        return PAYMENT_INVOICE_KINDS[kind]
    if kind in INVOICE_COUNTERPARTY_KINDS:
        return kind
    raise ValidationError(f"Unknown ledger kind: {kind}.")


def _get_locked_invoice(actor, invoice_id) -> LedgerInvoice:
    try:
        return LedgerInvoice.objects.select_for_update().get(company=actor.company, pk=invoice_id)
    except (LedgerInvoice.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Ledger invoice not found.")


def _get_locked_payment(actor, payment_id) -> Payment:
    try:
        return Payment.objects.select_for_update().get(company=actor.company, pk=payment_id)
    except (Payment.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Payment not found.")


# =============================================================================
# Ledger invoices
# =============================================================================

@command
def create_ledger_invoice(
    actor: ActorContext,
    kind: str,
    counterparty_id: int,
    net_total,
    invoice_date=None,
    due_date=None,
    invoice_no: str = None,
    subtotal=None,
    discount_amount=None,
    tax_amount=None,
    reference: str = "",
    description: str = "",
    external_reference: str = "",
    currency: str = None,
    exchange_rate=None,
) -> CommandResult:
    """
    Create a manual AP/AR invoice, one not generated from a document.

    subtotal defaults to net_total - tax_amount + discount_amount.
    """
    require(actor, "ledger.manage")

    if kind not in INVOICE_COUNTERPARTY_KINDS:
        raise ValidationError(f"Unknown ledger invoice kind: {kind}.")
    counterparty = backends.counterparties().get(
        actor.company, counterparty_id, kind=INVOICE_COUNTERPARTY_KINDS[kind]
    )

    net = money(net_total)
    if net <= 0:
        raise ValidationError("Invoice amount must be greater than zero.")
    discount = money(discount_amount)
    tax = money(tax_amount)
    gross = money(subtotal) if subtotal not in (None, "") else net - tax + discount

    invoice_date = _to_date(invoice_date, "invoice_date") or timezone.localdate()
    due = _to_date(due_date, "due_date") or invoice_date + timedelta(days=counterparty.credit_term_days)

    if invoice_no:
        if LedgerInvoice.objects.filter(company=actor.company, kind=kind, invoice_no=invoice_no).exists():
            raise ValidationError(f"{kind} invoice {invoice_no} already exists.", code="DUPLICATE_NUMBER")
    else:
        invoice_no = backends.numbering().next_number(actor.company, f"{kind}_INVOICE")

    with command_writes_allowed():
        invoice = LedgerInvoice(
            company=actor.company,
            kind=kind,
            invoice_no=invoice_no,
            invoice_date=invoice_date,
            due_date=due,
            counterparty_id=counterparty.id,
            counterparty_code=counterparty.code,
            counterparty_name=counterparty.name,
            external_reference=external_reference or "",
            reference=reference or "",
            description=description or "",
            subtotal=gross,
            discount_amount=discount,
            tax_amount=tax,
            net_total=net,
            currency=(currency or counterparty.currency or actor.company.default_currency).upper(),
            exchange_rate=_exchange_rate(exchange_rate),
            created_by=actor.user if getattr(actor.user, "pk", None) else None,
        )
        invoice.recompute_outstanding()
        invoice.save()

    event = backends.audit().record(
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
        ).to_dict(),
        idempotency_key=f"ledger_invoice.created:{invoice.public_id}",
    )
    return CommandResult.ok(invoice, event=event)


@command
def void_ledger_invoice(actor: ActorContext, invoice_id: int, reason: str = "") -> CommandResult:
    """
    Void a ledger invoice, reversing the knockoffs against it first.
    The source document, if any, is left untouched.
    """
    require(actor, "ledger.void")

    invoice = _get_locked_invoice(actor, invoice_id)
    enforce(check_invoice_not_void(invoice), code="ALREADY_VOIDED")

    count = allocation.reverse_invoice_knockoffs(invoice)
    posting.void_invoice(actor, invoice, reason=reason, reversed_knockoffs=count)
    return CommandResult.ok(invoice)


@command
def delete_ledger_invoice(actor: ActorContext, invoice_id: int) -> CommandResult:
    """
    Delete a manual ledger invoice.

    Invoices generated from a document are rejected; invoices with payment
    history are voided instead of deleted.

    Returns:
        CommandResult with {"deleted": bool, "invoice": invoice-or-None}
    """
    require(actor, "ledger.void")

    invoice = _get_locked_invoice(actor, invoice_id)
    enforce(can_delete_ledger_invoice(invoice), code="LINKED_TO_DOCUMENT")

    if must_soft_delete(invoice):
        enforce(check_invoice_not_void(invoice), code="ALREADY_VOIDED")
        count = allocation.reverse_invoice_knockoffs(invoice)
        posting.void_invoice(actor, invoice, reason="Deleted", reversed_knockoffs=count)
        return CommandResult.ok({"deleted": False, "invoice": invoice})

    public_id = invoice.public_id
    invoice_no = invoice.invoice_no
    with command_writes_allowed():
        invoice.delete()

    event = backends.audit().record(
        actor,
        EventTypes.LEDGER_INVOICE_DELETED,
        "LedgerInvoice",
        public_id,
        LedgerInvoiceDeletedData(
            invoice_public_id=str(public_id),
            invoice_no=invoice_no,
        ).to_dict(),
        idempotency_key=f"ledger_invoice.deleted:{public_id}",
    )
    return CommandResult.ok({"deleted": True, "invoice": None}, event=event)


@command
def get_outstanding_invoices(actor: ActorContext, kind: str, counterparty_id: int) -> CommandResult:
    """Unpaid, non-void invoices of a counterparty, oldest first."""
    require(actor, "ledger.view")

    invoice_kind = _invoice_kind(kind)
    return CommandResult.ok(list(allocation.outstanding_invoices(actor.company, invoice_kind, counterparty_id)))


# =============================================================================
# Payments
# =============================================================================

@command
def create_payment(
    actor: ActorContext,
    kind: str,
    counterparty_id: int,
    payment_amount,
    method: str,
    knockoffs: list = None,
    payment_date=None,
    payment_no: str = None,
    cheque_no: str = "",
    reference: str = "",
    description: str = "",
    currency: str = None,
    exchange_rate=None,
) -> CommandResult:
    """
    Record a payment and apply it to outstanding invoices.

    Args:
        actor: The actor context
        kind: AP_PAYMENT (to a vendor) or AR_RECEIPT (from a customer)
        counterparty_id: The vendor or customer
        payment_amount: Total amount, > 0
        method: Payment.Method
        knockoffs: [{"invoice_id", "knockoff_amount", "outstanding_before"?}, ...];
            an empty list records an unapplied payment

    Returns:
        CommandResult with the created Payment or error
    """
    require(actor, "payments.create")

    if kind not in PAYMENT_INVOICE_KINDS:
        raise ValidationError(f"Unknown payment kind: {kind}.")
    if not counterparty_id:
        raise ValidationError("Counterparty is required.")
    if method not in Payment.Method.values:
        raise ValidationError(f"Payment method is required (one of {', '.join(Payment.Method.values)}).")

    amount = money(payment_amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")

    invoice_kind = PAYMENT_INVOICE_KINDS[kind]
    counterparty = backends.counterparties().get(
        actor.company, counterparty_id, kind=INVOICE_COUNTERPARTY_KINDS[invoice_kind]
    )
    requests = allocation.normalise_knockoffs(knockoffs, amount)

    if payment_no:
        if Payment.objects.filter(company=actor.company, kind=kind, payment_no=payment_no).exists():
            raise ValidationError(f"{kind} {payment_no} already exists.", code="DUPLICATE_NUMBER")
    else:
        payment_no = backends.numbering().next_number(actor.company, kind)

    with command_writes_allowed():
        payment = Payment.objects.create(
            company=actor.company,
            kind=kind,
            payment_no=payment_no,
            payment_date=_to_date(payment_date, "payment_date") or timezone.localdate(),
            counterparty_id=counterparty.id,
            counterparty_code=counterparty.code,
            counterparty_name=counterparty.name,
            method=method,
            cheque_no=cheque_no or "",
            reference=reference or "",
            description=description or "",
            payment_amount=amount,
            currency=(currency or counterparty.currency or actor.company.default_currency).upper(),
            exchange_rate=_exchange_rate(exchange_rate),
            created_by=actor.user if getattr(actor.user, "pk", None) else None,
        )

    created = allocation.apply_knockoffs(payment, requests)
    applied = sum((k.knockoff_amount for k in created), money(0))

    event = backends.audit().record(
        actor,
        EventTypes.PAYMENT_CREATED,
        "Payment",
        payment.public_id,
        PaymentCreatedData(
            payment_public_id=str(payment.public_id),
            kind=payment.kind,
            payment_no=payment.payment_no,
            counterparty_code=payment.counterparty_code,
            payment_amount=str(payment.payment_amount),
            applied_amount=str(applied),
            currency=payment.currency,
            knockoffs=[
                {
                    "invoice_public_id": str(k.invoice.public_id),
                    "knockoff_amount": str(k.knockoff_amount),
                    "outstanding_before": str(k.outstanding_before),
                    "outstanding_after": str(k.outstanding_after),
                }
                for k in created
            ],
        ).to_dict(),
        idempotency_key=f"payment.created:{payment.public_id}",
    )

    logger.info(
        "Recorded %s %s",
        payment.kind,
        payment.payment_no,
        extra={
            "company_id": actor.company.id,
            "payment_id": payment.id,
            "payment_amount": str(payment.payment_amount),
            "applied_amount": str(applied),
            "knockoffs": len(created),
        },
    )
    return CommandResult.ok(payment, event=event)


@command
def update_payment(actor: ActorContext, payment_id: int, **changes) -> CommandResult:
    """Payments cannot be edited. Void and recreate instead."""
    require(actor, "payments.void")

    _get_locked_payment(actor, payment_id)
    raise StateConflictError(
        "Payments cannot be edited. Void the payment and record a new one.",
        code="PAYMENT_IMMUTABLE",
    )


@command
def void_payment(actor: ActorContext, payment_id: int, reason: str = "") -> CommandResult:
    """
    Void a payment: reverse its knockoffs and keep it, marked VOID, for history.
    """
    require(actor, "payments.void")

    payment = _get_locked_payment(actor, payment_id)
    enforce(check_payment_not_void(payment), code="ALREADY_VOIDED")

    reversed_rows = allocation.reverse_payment_knockoffs(payment)

    with command_writes_allowed():
        payment.is_void = True
        payment.voided_at = timezone.now()
        payment.void_reason = (reason or "")[:255]
        payment.save(update_fields=["is_void", "voided_at", "void_reason"])

    event = backends.audit().record(
        actor,
        EventTypes.PAYMENT_VOIDED,
        "Payment",
        payment.public_id,
        PaymentReversedData(
            payment_public_id=str(payment.public_id),
            payment_no=payment.payment_no,
            reversed=reversed_rows,
        ).to_dict(),
        idempotency_key=f"payment.voided:{payment.public_id}",
    )
    logger.info(
        "Voided %s %s",
        payment.kind,
        payment.payment_no,
        extra={"company_id": actor.company.id, "payment_id": payment.id, "reversed": len(reversed_rows)},
    )
    return CommandResult.ok(payment, event=event)


@command
def delete_payment(actor: ActorContext, payment_id: int) -> CommandResult:
    """Reverse a payment's knockoffs, then delete the payment and its knockoffs."""
    require(actor, "payments.delete")

    payment = _get_locked_payment(actor, payment_id)
    reversed_rows = allocation.reverse_payment_knockoffs(payment)

    public_id = payment.public_id
    payment_no = payment.payment_no
    with command_writes_allowed():
        for knockoff in payment.knockoffs.all().order_by("id"):
            knockoff.delete()
        payment.delete()

    event = backends.audit().record(
        actor,
        EventTypes.PAYMENT_DELETED,
        "Payment",
        public_id,
        PaymentReversedData(
            payment_public_id=str(public_id),
            payment_no=payment_no,
            reversed=reversed_rows,
        ).to_dict(),
        idempotency_key=f"payment.deleted:{public_id}",
    )
    return CommandResult.ok({"deleted": True, "payment_public_id": str(public_id)}, event=event)


@command
def suggest_knockoffs(actor: ActorContext, kind: str, counterparty_id: int, amount) -> CommandResult:
    """
    Propose knockoffs for a payment amount, oldest invoice first.

    Returns:
        CommandResult with {"knockoffs": [...], "unapplied_amount": Decimal}
    """
    require(actor, "payments.view")

    total = money(amount)
    if total <= 0:
        raise ValidationError("Amount must be greater than zero.")

    invoices = sorted(
        allocation.outstanding_invoices(actor.company, _invoice_kind(kind), counterparty_id),
        key=allocation.oldest_first,
    )
    suggestions = allocation.auto_allocate(total, invoices)
    by_id = {inv.id: inv for inv in invoices}
    for entry in suggestions:
        invoice = by_id[entry["invoice_id"]]
        entry["invoice_no"] = invoice.invoice_no
        entry["invoice_date"] = invoice.invoice_date
        entry["due_date"] = invoice.due_date

    applied = sum((entry["knockoff_amount"] for entry in suggestions), money(0))
    return CommandResult.ok({"knockoffs": suggestions, "unapplied_amount": total - applied})
