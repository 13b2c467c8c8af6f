# parties/__init__.py
"""
Parties app - vendors and customers.

Purchase documents, AP invoices and payments reference VENDOR
counterparties; sales documents, AR invoices and receipts reference
CUSTOMER counterparties. The document chain reads them only through the
counterparty lookup backend (parties.lookup).
"""
