# documents/policies.py
"""
Workflow rules for documents.

Usage:
    from core.policies import enforce
    from documents.policies import check_not_void, can_transfer_document

    enforce(check_not_void(document), code="ALREADY_VOIDED")
    enforce(can_transfer_document(source), code="ALREADY_TRANSFERRED")
"""

from documents import chain
from documents.models import DocumentHeader


def check_not_void(document) -> tuple[bool, str]:
    if document.is_void or document.status == DocumentHeader.Status.VOID:
        return False, "Document already voided"
    return True, ""


def can_transfer_document(document) -> tuple[bool, str]:
    """
    Rules:
    - Must not be fully transferred already
    """
    if document.transfer_status == DocumentHeader.TransferStatus.TRANSFERRED:
        return False, "Document already fully transferred"
    return True, ""


def can_post_document(document) -> tuple[bool, str]:
    """
    Rules:
    - Must not be posted already
    """
    if document.is_posted:
        return False, "Invoice already posted"
    return True, ""


def can_edit_document(document) -> tuple[bool, str]:
    """
    Rules:
    - No quantity may have been transferred out of it
    """
    if document.transfer_status != DocumentHeader.TransferStatus.NONE:
        return False, "Cannot edit a document that has been transferred. Void the target documents first."
    return True, ""


def has_void_effects(document, ledger_invoice=None) -> bool:
    """
    True when voiding must keep the document row: it has transferred
    quantities out, derived documents, postings or stock movements.
    """
    if document.is_posted or ledger_invoice is not None:
        return True
    if chain.stock_direction(document.document_type):
        return True
    if document.transfer_status != DocumentHeader.TransferStatus.NONE:
        return True
    return document.derived_documents.exists()
