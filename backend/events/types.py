# events/types.py
"""
Event type definitions.

This module defines the schema for every event payload. The dataclasses
are the contract: commands build payloads from them, and payloads are
validated against them when emitted.

Naming Convention: {aggregate}.{action}
Examples:
- document.transferred
- ledger_invoice.voided
- payment.created

Events are a stable API
=======================
- Adding optional fields with defaults is safe
- Removing, renaming or retyping fields is a breaking change
"""

from dataclasses import dataclass, asdict, fields as dataclass_fields, MISSING
from typing import Optional, List, Dict, Any, get_type_hints, get_origin, get_args, Union
from decimal import Decimal
from datetime import date, datetime


# =============================================================================
# Event Validation
# =============================================================================

class InvalidEventPayload(Exception):
    """
    Raised when an event payload fails validation.
    """
    def __init__(self, event_type: str, errors: List[str]):
        self.event_type = event_type
        self.errors = errors
        error_list = "\n  - ".join(errors)
        super().__init__(
            f"Invalid payload for event '{event_type}':\n  - {error_list}"
        )


def _is_optional_type(type_hint) -> bool:
    """Check if a type hint is Optional[X] (i.e., Union[X, None])."""
    origin = get_origin(type_hint)
    if origin is Union:
        return type(None) in get_args(type_hint)
    return False


def _get_inner_type(type_hint):
    """Get the inner type from Optional[X]."""
    origin = get_origin(type_hint)
    if origin is Union:
        non_none_args = [a for a in get_args(type_hint) if a is not type(None)]
        if len(non_none_args) == 1:
            return non_none_args[0]
    return type_hint


DECIMAL_FIELDS = {
    "net_total",
    "paid_amount",
    "outstanding_amount",
    "payment_amount",
    "applied_amount",
    "knockoff_amount",
    "outstanding_before",
    "outstanding_after",
    "transfer_qty",
}

CURRENCY_FIELDS = {"currency"}

DATE_FIELDS = {"document_date", "invoice_date", "payment_date", "due_date"}


def validate_event_payload(event_type: str, data: Dict[str, Any]) -> None:
    """
    Validate that a data dict matches the schema registered for event_type.

    Checks required fields, rejects unexpected fields, does basic type
    checks, and checks decimal, currency and date formatted values.

    Raises:
        InvalidEventPayload: if validation fails
        ValueError: if event_type has no registered schema
    """
    data_class = EVENT_DATA_CLASSES.get(event_type)
    if data_class is None:
        raise ValueError(
            f"No schema registered for event type '{event_type}'. "
            f"Add a dataclass to EVENT_DATA_CLASSES."
        )

    errors = []
    dc_fields = {f.name: f for f in dataclass_fields(data_class)}
    type_hints = get_type_hints(data_class)

    for field_name, field_info in dc_fields.items():
        required = (
            field_info.default is MISSING and
            field_info.default_factory is MISSING
        )
        if required and field_name not in data:
            errors.append(f"Missing required field: '{field_name}'")

    unexpected = set(data.keys()) - set(dc_fields.keys())
    if unexpected:
        errors.append(
            f"Unexpected fields: {sorted(unexpected)}. "
            f"Expected: {sorted(dc_fields.keys())}"
        )

    for field_name, value in data.items():
        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        if value is None:
            if not _is_optional_type(type_hint):
                errors.append(f"Field '{field_name}' cannot be None (type: {type_hint})")
            continue

        check_type = _get_inner_type(type_hint)
        origin = get_origin(check_type)

        if origin is list or check_type is list:
            if not isinstance(value, list):
                errors.append(f"Field '{field_name}' must be a list, got {type(value).__name__}")
            else:
                inner = get_args(check_type)
                if inner and get_origin(inner[0]) is dict:
                    for idx, item in enumerate(value):
                        if not isinstance(item, dict):
                            errors.append(
                                f"Field '{field_name}[{idx}]' must be a dict, got {type(item).__name__}"
                            )
                elif inner and inner[0] is str:
                    for idx, item in enumerate(value):
                        if not isinstance(item, str):
                            errors.append(
                                f"Field '{field_name}[{idx}]' must be a string, got {type(item).__name__}"
                            )
        elif origin is dict or check_type is dict:
            if not isinstance(value, dict):
                errors.append(f"Field '{field_name}' must be a dict, got {type(value).__name__}")
        elif check_type is str:
            if not isinstance(value, str):
                errors.append(f"Field '{field_name}' must be a string, got {type(value).__name__}")
        elif check_type is int:
            if not isinstance(value, int) or isinstance(value, bool):
                errors.append(f"Field '{field_name}' must be an int, got {type(value).__name__}")
        elif check_type is bool:
            if not isinstance(value, bool):
                errors.append(f"Field '{field_name}' must be a bool, got {type(value).__name__}")

    def _validate_scalar(name: str, value: Any) -> None:
        if value is None or isinstance(value, (dict, list)):
            return
        if name in DECIMAL_FIELDS:
            try:
                Decimal(str(value))
            except ArithmeticError:
                errors.append(f"Field '{name}' must be a decimal string, got {value!r}")
        if name in CURRENCY_FIELDS:
            if (
                not isinstance(value, str)
                or len(value) != 3
                or not value.isalpha()
                or value != value.upper()
            ):
                errors.append(f"Field '{name}' must be a 3-letter uppercase currency code, got {value!r}")
        if name in DATE_FIELDS:
            try:
                date.fromisoformat(str(value))
            except ValueError:
                errors.append(f"Field '{name}' must be an ISO date string, got {value!r}")

    def _walk(name: str, value: Any) -> None:
        _validate_scalar(name, value)
        if isinstance(value, dict):
            for k, v in value.items():
                _walk(k, v)
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, (dict, list)):
                    _walk(name, item)

    for field_name, value in data.items():
        _walk(field_name, value)

    if errors:
        raise InvalidEventPayload(event_type, errors)


# =============================================================================
# Base Event Classes
# =============================================================================

@dataclass
class BaseEventData:
    """Base class for all event data."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON storage."""
        result = {}
        for key, value in asdict(self).items():
            if isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, (date, datetime)):
                result[key] = value.isoformat()
            else:
                result[key] = value
        return result


# =============================================================================
# Counterparty Events
# =============================================================================

@dataclass
class CounterpartyCreatedData(BaseEventData):
    counterparty_public_id: str
    kind: str
    code: str
    name: str
    currency: str


@dataclass
class CounterpartyUpdatedData(BaseEventData):
    counterparty_public_id: str
    changes: Dict[str, Any]


# =============================================================================
# Document Chain Events
# =============================================================================

@dataclass
class DocumentCreatedData(BaseEventData):
    """Data for document.created event."""
    document_public_id: str
    document_type: str
    document_no: str
    document_date: str
    counterparty_code: str
    net_total: str
    currency: str
    line_count: int
    source_document_public_id: Optional[str] = None


@dataclass
class DocumentUpdatedData(BaseEventData):
    """Data for document.updated event."""
    document_public_id: str
    document_no: str
    net_total: str
    changes: Dict[str, Any]
    lines_replaced: bool = False


@dataclass
class DocumentTransferredData(BaseEventData):
    """
    Data for document.transferred event.

    lines: [{"line_no": 1, "transfer_qty": "6.0000"}, ...] for the source lines.
    """
    source_document_public_id: str
    target_document_public_id: str
    target_type: str
    target_document_no: str
    transfer_status: str
    lines: List[Dict[str, Any]]


@dataclass
class DocumentPostedData(BaseEventData):
    """Data for document.posted event."""
    document_public_id: str
    document_no: str
    ledger_invoice_public_id: str
    invoice_no: str
    net_total: str


@dataclass
class DocumentVoidedData(BaseEventData):
    """
    Data for document.voided and document.deleted events.

    steps: names of the reversal steps executed, in order.
    """
    document_public_id: str
    document_no: str
    document_type: str
    steps: List[str]
    reason: str = ""


# =============================================================================
# Ledger Events
# =============================================================================

@dataclass
class LedgerInvoiceCreatedData(BaseEventData):
    invoice_public_id: str
    kind: str
    invoice_no: str
    counterparty_code: str
    net_total: str
    currency: str
    due_date: Optional[str] = None
    source_document_public_id: Optional[str] = None


@dataclass
class LedgerInvoiceSyncedData(BaseEventData):
    invoice_public_id: str
    net_total: str
    paid_amount: str
    outstanding_amount: str
    status: str


@dataclass
class LedgerInvoiceVoidedData(BaseEventData):
    invoice_public_id: str
    invoice_no: str
    reversed_knockoffs: int
    cascaded_from_document: Optional[str] = None


@dataclass
class LedgerInvoiceDeletedData(BaseEventData):
    invoice_public_id: str
    invoice_no: str


@dataclass
class PaymentCreatedData(BaseEventData):
    """
    knockoffs: [{"invoice_public_id", "knockoff_amount",
                 "outstanding_before", "outstanding_after"}, ...]
    """
    payment_public_id: str
    kind: str
    payment_no: str
    counterparty_code: str
    payment_amount: str
    applied_amount: str
    currency: str
    knockoffs: List[Dict[str, Any]]


@dataclass
class PaymentReversedData(BaseEventData):
    """Data for payment.voided and payment.deleted events."""
    payment_public_id: str
    payment_no: str
    reversed: List[Dict[str, Any]]


# =============================================================================
# Event Types
# =============================================================================

class EventTypes:
    COUNTERPARTY_CREATED = "counterparty.created"
    COUNTERPARTY_UPDATED = "counterparty.updated"

    DOCUMENT_CREATED = "document.created"
    DOCUMENT_UPDATED = "document.updated"
    DOCUMENT_TRANSFERRED = "document.transferred"
    DOCUMENT_POSTED = "document.posted"
    DOCUMENT_VOIDED = "document.voided"
    DOCUMENT_DELETED = "document.deleted"

    LEDGER_INVOICE_CREATED = "ledger_invoice.created"
    LEDGER_INVOICE_SYNCED = "ledger_invoice.synced"
    LEDGER_INVOICE_VOIDED = "ledger_invoice.voided"
    LEDGER_INVOICE_DELETED = "ledger_invoice.deleted"

    PAYMENT_CREATED = "payment.created"
    PAYMENT_VOIDED = "payment.voided"
    PAYMENT_DELETED = "payment.deleted"


EVENT_DATA_CLASSES = {
    EventTypes.COUNTERPARTY_CREATED: CounterpartyCreatedData,
    EventTypes.COUNTERPARTY_UPDATED: CounterpartyUpdatedData,

    EventTypes.DOCUMENT_CREATED: DocumentCreatedData,
    EventTypes.DOCUMENT_UPDATED: DocumentUpdatedData,
    EventTypes.DOCUMENT_TRANSFERRED: DocumentTransferredData,
    EventTypes.DOCUMENT_POSTED: DocumentPostedData,
    EventTypes.DOCUMENT_VOIDED: DocumentVoidedData,
    EventTypes.DOCUMENT_DELETED: DocumentVoidedData,

    EventTypes.LEDGER_INVOICE_CREATED: LedgerInvoiceCreatedData,
    EventTypes.LEDGER_INVOICE_SYNCED: LedgerInvoiceSyncedData,
    EventTypes.LEDGER_INVOICE_VOIDED: LedgerInvoiceVoidedData,
    EventTypes.LEDGER_INVOICE_DELETED: LedgerInvoiceDeletedData,

    EventTypes.PAYMENT_CREATED: PaymentCreatedData,
    EventTypes.PAYMENT_VOIDED: PaymentReversedData,
    EventTypes.PAYMENT_DELETED: PaymentReversedData,
}
