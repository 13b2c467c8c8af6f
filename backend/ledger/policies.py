# ledger/policies.py
"""
Workflow rules for ledger invoices and payments.

Usage:
    enforce(check_payment_not_void(payment), code="ALREADY_VOIDED")
"""


def check_invoice_not_void(invoice) -> tuple[bool, str]:
    if invoice.is_void:
        return False, "Ledger invoice already voided"
    return True, ""


def can_delete_ledger_invoice(invoice) -> tuple[bool, str]:
    """
    Rules:
    - Invoices generated from a document are voided through the document
    """
    if invoice.source_document_id is not None:
        return False, "Invoice was generated from a document. Void the document instead."
    return True, ""


def must_soft_delete(invoice) -> bool:
    """An invoice with any payment history is voided rather than deleted."""
    return invoice.paid_amount > 0 or invoice.knockoffs.exists()


def check_payment_not_void(payment) -> tuple[bool, str]:
    if payment.is_void:
        return False, "Payment already voided"
    return True, ""
