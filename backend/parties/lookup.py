# parties/lookup.py
"""
Counterparty lookup backend.

Returns an immutable CounterpartyRef; documents and ledger rows copy its
code and name as a point-in-time snapshot.
"""

from dataclasses import dataclass

from core.errors import NotFoundError, ValidationError
from parties.models import Counterparty


@dataclass(frozen=True)
class CounterpartyRef:
    id: int
    kind: str
    code: str
    name: str
    currency: str
    credit_term_days: int


class DatabaseCounterpartyLookup:

    def get(self, company, counterparty_id, kind=None) -> CounterpartyRef:
        """
        Resolve a counterparty of the company by primary key.

        Raises NotFoundError for unknown ids and ids of other companies,
        ValidationError when the counterparty is of the wrong kind or inactive.
        """
        try:
            cp = Counterparty.objects.get(company=company, pk=counterparty_id)
        except (Counterparty.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Counterparty {counterparty_id} not found.")

        if kind and cp.kind != kind:
            raise ValidationError(
                f"Counterparty {cp.code} is a {cp.kind.lower()}, expected a {kind.lower()}.",
                code="COUNTERPARTY_KIND_MISMATCH",
            )
        if not cp.is_active:
            raise ValidationError(f"Counterparty {cp.code} is inactive.", code="COUNTERPARTY_INACTIVE")

        return CounterpartyRef(
            id=cp.id,
            kind=cp.kind,
            code=cp.code,
            name=cp.name,
            currency=cp.currency,
            credit_term_days=cp.credit_term_days,
        )
