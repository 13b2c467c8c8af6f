# events/__init__.py
"""
Events app - business event store used as the audit trail.

This app provides:
- BusinessEvent: immutable event records, sequenced per company and aggregate
- emit_event: validated, idempotent emission
- EventAuditSink: the audit backend commands record through
- Event type definitions with their payload schemas (events/types.py)

Usage:
    from core import backends
    from events.types import EventTypes, DocumentPostedData

    backends.audit().record(
        actor,
        EventTypes.DOCUMENT_POSTED,
        "Document",
        document.public_id,
        DocumentPostedData(...).to_dict(),
        idempotency_key=f"document.posted:{document.public_id}",
    )
"""
