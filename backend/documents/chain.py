# documents/chain.py
"""
The document chain: which document types exist in each domain, in which
order, and what each stage does on the way.

    PURCHASE: PURCHASE_REQUEST -> PURCHASE_ORDER -> GOODS_RECEIVED -> PURCHASE_INVOICE
    SALES:    QUOTATION        -> SALES_ORDER    -> DELIVERY_ORDER -> SALES_INVOICE

A document may be transferred to any later stage of its own domain.
Stages may be skipped (an order can go straight to an invoice).
"""

from core.errors import ValidationError
from documents.models import Domain, DocumentType
from parties.models import Counterparty


STAGES = {
    Domain.PURCHASE: (
        DocumentType.PURCHASE_REQUEST,
        DocumentType.PURCHASE_ORDER,
        DocumentType.GOODS_RECEIVED,
        DocumentType.PURCHASE_INVOICE,
    ),
    Domain.SALES: (
        DocumentType.QUOTATION,
        DocumentType.SALES_ORDER,
        DocumentType.DELIVERY_ORDER,
        DocumentType.SALES_INVOICE,
    ),
}

INVOICE_TYPES = {DocumentType.PURCHASE_INVOICE, DocumentType.SALES_INVOICE}

STOCK_DIRECTIONS = {
    DocumentType.GOODS_RECEIVED: "IN",
    DocumentType.DELIVERY_ORDER: "OUT",
}

COUNTERPARTY_KINDS = {
    Domain.PURCHASE: Counterparty.Kind.VENDOR,
    Domain.SALES: Counterparty.Kind.CUSTOMER,
}

DEFAULT_PREFIXES = {
    DocumentType.PURCHASE_REQUEST: "PR-",
    DocumentType.PURCHASE_ORDER: "PO-",
    DocumentType.GOODS_RECEIVED: "GRN-",
    DocumentType.PURCHASE_INVOICE: "PI-",
    DocumentType.QUOTATION: "QT-",
    DocumentType.SALES_ORDER: "SO-",
    DocumentType.DELIVERY_ORDER: "DO-",
    DocumentType.SALES_INVOICE: "INV-",
}


def domain_of(document_type: str) -> str:
    for domain, stages in STAGES.items():
        if document_type in stages:
            return domain
    raise ValidationError(f"Unknown document type: {document_type}.", code="INVALID_DOCUMENT_TYPE")


def stage_of(document_type: str) -> int:
    return STAGES[domain_of(document_type)].index(document_type)


def is_invoice_type(document_type: str) -> bool:
    return document_type in INVOICE_TYPES


def stock_direction(document_type: str):
    """IN, OUT, or None for types that do not move stock."""
    return STOCK_DIRECTIONS.get(document_type)


def opposite_direction(direction: str) -> str:
    return "OUT" if direction == "IN" else "IN"


def counterparty_kind(domain: str) -> str:
    return COUNTERPARTY_KINDS[domain]


def validate_transfer_target(source_type: str, target_type: str) -> None:
    """
    Raise ValidationError unless target_type is a later stage of the
    same domain as source_type.
    """
    target_domain = domain_of(target_type)
    if domain_of(source_type) != target_domain:
        raise ValidationError(
            f"Cannot transfer {source_type} to {target_type}: different domain.",
            code="INVALID_TARGET_TYPE",
        )
    if stage_of(target_type) <= stage_of(source_type):
        raise ValidationError(
            f"Cannot transfer {source_type} to {target_type}: target must be a later stage.",
            code="INVALID_TARGET_TYPE",
        )


def transfer_targets(source_type: str) -> list:
    """Document types a document of source_type may be transferred to."""
    stages = STAGES[domain_of(source_type)]
    return list(stages[stages.index(source_type) + 1:])
