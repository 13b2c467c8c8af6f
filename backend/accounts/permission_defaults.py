# accounts/permission_defaults.py

_VIEW = {
    "company.view",
    "counterparties.view",
    "documents.view",
    "ledger.view",
    "payments.view",
}

ROLE_DEFAULTS = {
    "OWNER": _VIEW | {
        "company.manage_users",
        "company.manage_permissions",

        # Counterparties
        "counterparties.manage",

        # Document chain
        "documents.create",
        "documents.edit",
        "documents.transfer",
        "documents.post",
        "documents.void",

        # AR/AP ledger
        "ledger.manage",
        "ledger.void",

        # Payments and receipts
        "payments.create",
        "payments.void",
        "payments.delete",
    },
    "ADMIN": _VIEW | {
        "company.manage_users",
        "company.manage_permissions",

        "counterparties.manage",

        "documents.create",
        "documents.edit",
        "documents.transfer",
        "documents.post",
        "documents.void",

        "ledger.manage",
        "ledger.void",

        "payments.create",
        "payments.void",
        "payments.delete",
    },
    "USER": _VIEW | {
        "documents.create",
        "documents.edit",
        "documents.transfer",

        "payments.create",
    },
    "VIEWER": set(_VIEW),
}


def all_permission_codes() -> set[str]:
    codes: set[str] = set()
    for s in ROLE_DEFAULTS.values():
        codes |= set(s)
    return codes
