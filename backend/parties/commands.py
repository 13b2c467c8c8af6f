# parties/commands.py
"""
Commands for vendors and customers.

Pattern:
1. Validate permissions (require)
2. Validate input
3. Write the model inside command_writes_allowed()
4. Record the audit event
5. Return CommandResult
"""

import logging

from accounts.authz import ActorContext, require
from core import backends
from core.errors import NotFoundError, StateConflictError, ValidationError
from core.results import CommandResult, command
from core.write_barrier import command_writes_allowed
from events.types import EventTypes, CounterpartyCreatedData, CounterpartyUpdatedData
from parties.models import Counterparty


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"name", "currency", "credit_term_days", "email", "phone", "address", "is_active"}


@command
def create_counterparty(
    actor: ActorContext,
    kind: str,
    code: str,
    name: str,
    currency: str = None,
    credit_term_days: int = 0,
    email: str = "",
    phone: str = "",
    address: str = "",
) -> CommandResult:
    require(actor, "counterparties.manage")

    if kind not in Counterparty.Kind.values:
        raise ValidationError(f"Unknown counterparty kind: {kind}.")
    code = (code or "").strip()
    if not code or not (name or "").strip():
        raise ValidationError("Counterparty code and name are required.")
    if credit_term_days is not None and credit_term_days < 0:
        raise ValidationError("Credit term days cannot be negative.")

    if Counterparty.objects.filter(company=actor.company, kind=kind, code=code).exists():
        raise StateConflictError(f"{kind.title()} code {code} already exists.", code="DUPLICATE_CODE")

    with command_writes_allowed():
        cp = Counterparty.objects.create(
            company=actor.company,
            kind=kind,
            code=code,
            name=name.strip(),
            currency=(currency or actor.company.default_currency).upper(),
            credit_term_days=credit_term_days or 0,
            email=email or "",
            phone=phone or "",
            address=address or "",
        )

    event = backends.audit().record(
        actor,
        EventTypes.COUNTERPARTY_CREATED,
        "Counterparty",
        cp.public_id,
        CounterpartyCreatedData(
            counterparty_public_id=str(cp.public_id),
            kind=cp.kind,
            code=cp.code,
            name=cp.name,
            currency=cp.currency,
        ).to_dict(),
        idempotency_key=f"counterparty.created:{cp.public_id}",
    )
    return CommandResult.ok(cp, event=event)


@command
def update_counterparty(actor: ActorContext, counterparty_id: int, **updates) -> CommandResult:
    """
    Update vendor/customer master data.

    Code and kind are fixed once created. Documents keep the code/name
    snapshot they were created with.
    """
    require(actor, "counterparties.manage")

    try:
        cp = Counterparty.objects.select_for_update().get(company=actor.company, pk=counterparty_id)
    except Counterparty.DoesNotExist:
        raise NotFoundError("Counterparty not found.")

    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}.")

    changes = {}
    for field, value in updates.items():
        if field == "currency" and value:
            value = value.upper()
        if field == "credit_term_days" and value is not None and value < 0:
            raise ValidationError("Credit term days cannot be negative.")
        old = getattr(cp, field)
        if old != value:
            changes[field] = {"old": old, "new": value}
            setattr(cp, field, value)

    if not changes:
        return CommandResult.ok(cp)

    with command_writes_allowed():
        cp.save()

    event = backends.audit().record(
        actor,
        EventTypes.COUNTERPARTY_UPDATED,
        "Counterparty",
        cp.public_id,
        CounterpartyUpdatedData(
            counterparty_public_id=str(cp.public_id),
            changes=changes,
        ).to_dict(),
    )
    return CommandResult.ok(cp, event=event)
