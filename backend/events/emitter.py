# events/emitter.py
"""
Event emission.

All events go through emit_event() so that every record gets:
1. Payload validation against the schemas in events/types.py
2. Idempotency handling (same key -> same event)
3. Per-aggregate and per-company sequencing
4. The causing user
"""

from __future__ import annotations

from typing import Optional, Any, Dict, Union
from datetime import datetime

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from events.models import BusinessEvent
from events.types import validate_event_payload, BaseEventData


def emit_event(
    *,
    actor,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Union[Dict[str, Any], BaseEventData],
    idempotency_key: str,
    occurred_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> BusinessEvent:
    """
    Emit a business event on behalf of an actor.

    Example:
        emit_event(
            actor=actor,
            event_type=EventTypes.DOCUMENT_POSTED,
            aggregate_type="Document",
            aggregate_id=document.public_id,
            data=DocumentPostedData(...),
            idempotency_key=f"document.posted:{document.public_id}",
        )

    Raises:
        InvalidEventPayload: if data doesn't match the event type schema
        ValueError: if idempotency_key is missing
    """
    if not idempotency_key or not str(idempotency_key).strip():
        raise ValueError("idempotency_key is required")

    if isinstance(data, BaseEventData):
        data = data.to_dict()

    if not getattr(settings, "DISABLE_EVENT_VALIDATION", False):
        validate_event_payload(event_type, data)

    if occurred_at is None:
        occurred_at = timezone.now()

    company = actor.company
    user = actor.user if getattr(actor.user, "pk", None) else None

    existing = BusinessEvent.objects.filter(company=company, idempotency_key=idempotency_key).first()
    if existing:
        return existing

    # Retry on aggregate sequence collisions; an idempotency collision
    # returns the row that won.
    for attempt in range(3):
        try:
            with transaction.atomic():
                return BusinessEvent.objects.create(
                    company=company,
                    event_type=event_type,
                    aggregate_type=aggregate_type,
                    aggregate_id=str(aggregate_id),
                    data=data,
                    metadata=metadata or {},
                    caused_by_user=user,
                    occurred_at=occurred_at,
                    idempotency_key=idempotency_key,
                )
        except IntegrityError:
            existing = BusinessEvent.objects.filter(company=company, idempotency_key=idempotency_key).first()
            if existing:
                return existing

            if attempt == 2:
                raise

    raise RuntimeError("Failed to emit event after retries")
