# events/audit.py
"""
Audit sink backed by the business event store.

Commands report what they did through record(). A failure to record is
logged and swallowed inside a savepoint: the command's own writes are
never rolled back because the audit trail could not be written.
"""

import logging
import uuid

from django.db import DatabaseError, transaction

from events.emitter import emit_event
from events.types import InvalidEventPayload


logger = logging.getLogger(__name__)


class EventAuditSink:

    def record(self, actor, action, entity_type, entity_id, data, idempotency_key=None):
        """
        Record one audit event. Returns the BusinessEvent, or None if it
        could not be written.
        """
        key = idempotency_key or f"{action}:{entity_id}:{uuid.uuid4().hex[:12]}"
        try:
            with transaction.atomic():
                return emit_event(
                    actor=actor,
                    event_type=action,
                    aggregate_type=entity_type,
                    aggregate_id=entity_id,
                    data=data,
                    idempotency_key=key,
                )
        except (DatabaseError, InvalidEventPayload, ValueError):
            logger.exception(
                "Audit record failed for %s %s",
                action,
                entity_id,
                extra={
                    "company_id": getattr(actor.company, "id", None),
                    "action": action,
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                },
            )
            return None
