# tests/test_posting.py
"""
Tests for the posting bridge between invoice documents and the ledger.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from django.core.exceptions import PermissionDenied

from documents.commands import post_document, update_document
from documents.models import DocumentHeader
from ledger.commands import create_payment, void_ledger_invoice
from ledger.models import LedgerInvoice


@pytest.fixture
def purchase_invoice(make_document, make_line, vendor):
    return make_document(
        "PURCHASE_INVOICE", vendor, [make_line(10, "100.00")],
        document_date=date(2024, 5, 1),
        reference="REF-1",
        description="May delivery",
    )


@pytest.fixture
def posted_invoice(actor, purchase_invoice):
    result = post_document(actor, purchase_invoice.id)
    assert result.success, result.error
    purchase_invoice.refresh_from_db()
    return purchase_invoice


def _ledger_invoice(document):
    return LedgerInvoice.objects.get(source_document=document)


@pytest.mark.django_db
class TestPost:

    def test_post_creates_payable(self, actor, purchase_invoice):
        result = post_document(actor, purchase_invoice.id)

        assert result.success, result.error
        invoice = result.data["ledger_invoice"]
        assert invoice.kind == LedgerInvoice.Kind.AP
        assert invoice.invoice_no == purchase_invoice.document_no
        assert invoice.net_total == Decimal("1000.00")
        assert invoice.outstanding_amount == Decimal("1000.00")
        assert invoice.paid_amount == Decimal("0.00")
        assert invoice.status == LedgerInvoice.Status.OPEN
        assert invoice.source_type == "PURCHASE_INVOICE"
        assert invoice.counterparty_code == "V001"
        assert invoice.due_date == date(2024, 5, 1) + timedelta(days=30)

        purchase_invoice.refresh_from_db()
        assert purchase_invoice.is_posted
        assert purchase_invoice.posted_at is not None
        assert purchase_invoice.status == DocumentHeader.Status.POSTED

    def test_sales_invoice_creates_receivable(self, actor, make_document, make_line, customer):
        sales_invoice = make_document("SALES_INVOICE", customer, [make_line(2, "40.00")])

        invoice = post_document(actor, sales_invoice.id).data["ledger_invoice"]

        assert invoice.kind == LedgerInvoice.Kind.AR
        assert invoice.invoice_no.startswith("INV-")

    def test_explicit_due_date_is_kept(self, actor, make_document, make_line, vendor):
        document = make_document(
            "PURCHASE_INVOICE", vendor, [make_line(1, "10.00")],
            document_date=date(2024, 5, 1), due_date=date(2024, 5, 10),
        )

        invoice = post_document(actor, document.id).data["ledger_invoice"]

        assert invoice.due_date == date(2024, 5, 10)

    def test_post_twice(self, actor, posted_invoice):
        result = post_document(actor, posted_invoice.id)

        assert not result.success
        assert result.error == "Invoice already posted"
        assert result.error_code == "ALREADY_POSTED"
        assert LedgerInvoice.objects.filter(source_document=posted_invoice).count() == 1

    def test_only_invoices_are_posted(self, actor, purchase_order):
        result = post_document(actor, purchase_order.id)

        assert result.error_code == "NOT_AN_INVOICE"
        assert not LedgerInvoice.objects.exists()

    def test_inactive_counterparty_blocks_posting(self, actor, purchase_invoice, vendor):
        vendor.is_active = False
        vendor.save()

        result = post_document(actor, purchase_invoice.id)

        assert result.error_code == "COUNTERPARTY_INACTIVE"
        purchase_invoice.refresh_from_db()
        assert not purchase_invoice.is_posted

    def test_clerk_cannot_post(self, clerk_actor, purchase_invoice):
        with pytest.raises(PermissionDenied):
            post_document(clerk_actor, purchase_invoice.id)


@pytest.mark.django_db
class TestSync:

    def test_edit_after_partial_payment(self, actor, posted_invoice, vendor):
        invoice = _ledger_invoice(posted_invoice)
        create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("200.00"), "CHEQUE",
            knockoffs=[{"invoice_id": invoice.id, "knockoff_amount": "200.00"}],
        )
        line = posted_invoice.lines.get()

        result = update_document(actor, posted_invoice.id, lines=[{"id": line.id, "quantity": "12"}])

        assert result.success, result.error
        assert result.data.net_total == Decimal("1200.00")
        invoice.refresh_from_db()
        assert invoice.net_total == Decimal("1200.00")
        assert invoice.paid_amount == Decimal("200.00")
        assert invoice.outstanding_amount == Decimal("1000.00")
        assert invoice.status == LedgerInvoice.Status.PARTIAL

    def test_edit_below_paid_amount_clamps_outstanding(self, actor, posted_invoice, vendor):
        invoice = _ledger_invoice(posted_invoice)
        create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("500.00"), "CASH",
            knockoffs=[{"invoice_id": invoice.id, "knockoff_amount": "500.00"}],
        )
        line = posted_invoice.lines.get()

        update_document(actor, posted_invoice.id, lines=[{"id": line.id, "quantity": "4"}])

        invoice.refresh_from_db()
        assert invoice.net_total == Decimal("400.00")
        assert invoice.outstanding_amount == Decimal("0.00")
        assert invoice.status == LedgerInvoice.Status.PAID

    def test_non_empty_header_fields_replace(self, actor, posted_invoice):
        update_document(
            actor, posted_invoice.id,
            reference="REF-2",
            document_date=date(2024, 5, 3),
        )

        invoice = _ledger_invoice(posted_invoice)
        assert invoice.reference == "REF-2"
        assert invoice.invoice_date == date(2024, 5, 3)

    def test_empty_header_fields_keep_ledger_value(self, actor, posted_invoice):
        result = update_document(actor, posted_invoice.id, reference="", description="")

        assert result.success, result.error
        assert result.data.reference == ""
        invoice = _ledger_invoice(posted_invoice)
        assert invoice.reference == "REF-1"
        assert invoice.description == "May delivery"

    def test_void_ledger_invoice_is_not_synced(self, actor, posted_invoice):
        invoice = _ledger_invoice(posted_invoice)
        assert void_ledger_invoice(actor, invoice.id).success
        line = posted_invoice.lines.get()

        result = update_document(actor, posted_invoice.id, lines=[{"id": line.id, "quantity": "20"}])

        assert result.success, result.error
        invoice.refresh_from_db()
        assert invoice.net_total == Decimal("1000.00")
        assert invoice.status == LedgerInvoice.Status.VOID

    def test_voiding_ledger_invoice_leaves_document(self, actor, posted_invoice):
        invoice = _ledger_invoice(posted_invoice)

        void_ledger_invoice(actor, invoice.id)

        posted_invoice.refresh_from_db()
        assert not posted_invoice.is_void
        assert posted_invoice.status == DocumentHeader.Status.POSTED
