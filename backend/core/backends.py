# core/backends.py
"""
Collaborator backends.

The document chain talks to four collaborators through small interfaces:
numbering, inventory, counterparty lookup and audit. Each is configured
as a dotted path in settings.TRADELEDGER_BACKENDS and loaded on demand,
so tests can swap one with override_settings.
"""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string


DEFAULT_BACKENDS = {
    "numbering": "documents.numbering.SeriesNumbering",
    "inventory": "documents.inventory.StockMovementInventory",
    "counterparties": "parties.lookup.DatabaseCounterpartyLookup",
    "audit": "events.audit.EventAuditSink",
}


def get_backend(name: str):
    configured = getattr(settings, "TRADELEDGER_BACKENDS", {}) or {}
    path = configured.get(name) or DEFAULT_BACKENDS.get(name)
    if not path:
        raise ImproperlyConfigured(f"No backend configured for '{name}'.")
    return import_string(path)()


def numbering():
    return get_backend("numbering")


def inventory():
    return get_backend("inventory")


def counterparties():
    return get_backend("counterparties")


def audit():
    return get_backend("audit")
