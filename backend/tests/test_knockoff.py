# tests/test_knockoff.py
"""
Tests for the knockoff allocator and payment commands.

Tests cover:
- Partial and full settlement of an invoice
- Over-allocation, stale outstanding and mismatch rejections
- All-or-nothing application of a payment's knockoffs
- Reversal through void and delete
- Oldest-first suggestions
"""

import pytest
from datetime import date
from decimal import Decimal

from django.core.exceptions import PermissionDenied

from ledger.commands import (
    create_ledger_invoice,
    create_payment,
    delete_ledger_invoice,
    delete_payment,
    get_outstanding_invoices,
    suggest_knockoffs,
    update_payment,
    void_ledger_invoice,
    void_payment,
)
from ledger.models import Knockoff, LedgerInvoice, Payment


@pytest.fixture
def make_invoice(actor):
    def _make(counterparty, net_total, kind="AP", **kwargs):
        result = create_ledger_invoice(
            kwargs.pop("actor", actor), kind, counterparty.id, Decimal(net_total), **kwargs
        )
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture
def ap_invoice(make_invoice, vendor):
    return make_invoice(vendor, "1000.00", invoice_date=date(2024, 1, 10))


def _knockoff(invoice, amount, **extra):
    entry = {"invoice_id": invoice.id, "knockoff_amount": Decimal(amount)}
    entry.update(extra)
    return entry


# =============================================================================
# Settlement
# =============================================================================

@pytest.mark.django_db
class TestSettlement:

    def test_partial_then_full_payment(self, make_payment, vendor, ap_invoice):
        assert ap_invoice.outstanding_amount == Decimal("1000.00")
        assert ap_invoice.status == LedgerInvoice.Status.OPEN

        make_payment("AP_PAYMENT", vendor, "600.00", [_knockoff(ap_invoice, "600.00")])
        ap_invoice.refresh_from_db()
        assert ap_invoice.paid_amount == Decimal("600.00")
        assert ap_invoice.outstanding_amount == Decimal("400.00")
        assert ap_invoice.status == LedgerInvoice.Status.PARTIAL

        make_payment("AP_PAYMENT", vendor, "400.00", [_knockoff(ap_invoice, "400.00")])
        ap_invoice.refresh_from_db()
        assert ap_invoice.outstanding_amount == Decimal("0.00")
        assert ap_invoice.status == LedgerInvoice.Status.PAID

    def test_knockoff_snapshots_invoice(self, make_payment, vendor, ap_invoice):
        payment = make_payment("AP_PAYMENT", vendor, "250.00", [_knockoff(ap_invoice, "250.00")])

        knockoff = payment.knockoffs.get()
        assert knockoff.invoice_no == ap_invoice.invoice_no
        assert knockoff.invoice_date == ap_invoice.invoice_date
        assert knockoff.document_amount == Decimal("1000.00")
        assert knockoff.outstanding_before == Decimal("1000.00")
        assert knockoff.outstanding_after == Decimal("750.00")

    def test_payment_spread_over_invoices(self, make_invoice, make_payment, vendor):
        first = make_invoice(vendor, "300.00")
        second = make_invoice(vendor, "500.00")

        payment = make_payment(
            "AP_PAYMENT", vendor, "700.00",
            [_knockoff(second, "400.00"), _knockoff(first, "300.00")],
        )

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == LedgerInvoice.Status.PAID
        assert second.outstanding_amount == Decimal("100.00")
        assert payment.applied_amount == Decimal("700.00")
        assert payment.unapplied_amount == Decimal("0.00")

    def test_unapplied_payment(self, make_payment, vendor, ap_invoice):
        payment = make_payment("AP_PAYMENT", vendor, "150.00", [])

        assert payment.knockoffs.count() == 0
        assert payment.unapplied_amount == Decimal("150.00")
        ap_invoice.refresh_from_db()
        assert ap_invoice.outstanding_amount == Decimal("1000.00")

    def test_receipt_settles_receivable(self, make_invoice, make_payment, customer):
        ar_invoice = make_invoice(customer, "80.00", kind="AR")

        make_payment("AR_RECEIPT", customer, "80.00", [_knockoff(ar_invoice, "80.00")], method="CASH")

        ar_invoice.refresh_from_db()
        assert ar_invoice.status == LedgerInvoice.Status.PAID

    def test_payment_numbers_come_from_series(self, make_payment, vendor, customer):
        first = make_payment("AP_PAYMENT", vendor, "10.00")
        second = make_payment("AP_PAYMENT", vendor, "10.00")
        receipt = make_payment("AR_RECEIPT", customer, "10.00")

        assert first.payment_no == "PV-00001"
        assert second.payment_no == "PV-00002"
        assert receipt.payment_no == "OR-00001"


# =============================================================================
# Rejections
# =============================================================================

@pytest.mark.django_db
class TestKnockoffValidation:

    def test_knockoff_above_outstanding(self, actor, vendor, ap_invoice):
        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("1500.00"), "CASH",
            knockoffs=[_knockoff(ap_invoice, "1200.00")],
        )

        assert not result.success
        assert result.error_code == "KNOCKOFF_EXCEEDS_OUTSTANDING"
        assert result.http_status == 422
        assert not Payment.objects.exists()
        ap_invoice.refresh_from_db()
        assert ap_invoice.outstanding_amount == Decimal("1000.00")

    def test_knockoffs_above_payment(self, actor, vendor, ap_invoice):
        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("100.00"), "CASH",
            knockoffs=[_knockoff(ap_invoice, "150.00")],
        )

        assert result.error_code == "KNOCKOFF_EXCEEDS_PAYMENT"
        assert result.http_status == 422
        assert not Payment.objects.exists()

    def test_stale_outstanding_is_rejected(self, actor, make_payment, vendor, ap_invoice):
        make_payment("AP_PAYMENT", vendor, "100.00", [_knockoff(ap_invoice, "100.00")])

        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("200.00"), "CASH",
            knockoffs=[_knockoff(ap_invoice, "200.00", outstanding_before="1000.00")],
        )

        assert result.error_code == "STALE_OUTSTANDING"
        ap_invoice.refresh_from_db()
        assert ap_invoice.outstanding_amount == Decimal("900.00")

    def test_one_bad_knockoff_rolls_back_the_payment(self, actor, make_invoice, vendor, ap_invoice):
        small = make_invoice(vendor, "50.00")

        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("500.00"), "CASH",
            knockoffs=[_knockoff(ap_invoice, "400.00"), _knockoff(small, "60.00")],
        )

        assert result.error_code == "KNOCKOFF_EXCEEDS_OUTSTANDING"
        ap_invoice.refresh_from_db()
        small.refresh_from_db()
        assert ap_invoice.paid_amount == Decimal("0.00")
        assert small.paid_amount == Decimal("0.00")
        assert not Knockoff.objects.exists()
        assert not Payment.objects.exists()

    def test_invoice_of_other_kind(self, actor, make_invoice, vendor, customer):
        ar_invoice = make_invoice(customer, "100.00", kind="AR")

        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("100.00"), "CASH",
            knockoffs=[_knockoff(ar_invoice, "100.00")],
        )

        assert result.error_code == "KNOCKOFF_KIND_MISMATCH"

    def test_invoice_of_other_counterparty(self, actor, make_invoice, vendor, other_vendor):
        foreign = make_invoice(other_vendor, "100.00")

        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("100.00"), "CASH",
            knockoffs=[_knockoff(foreign, "100.00")],
        )

        assert result.error_code == "KNOCKOFF_COUNTERPARTY_MISMATCH"

    def test_void_invoice_cannot_be_knocked_off(self, actor, vendor, ap_invoice):
        assert void_ledger_invoice(actor, ap_invoice.id).success

        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("100.00"), "CASH",
            knockoffs=[_knockoff(ap_invoice, "100.00")],
        )

        assert result.error_code == "INVOICE_VOID"

    def test_invoice_of_another_company_is_not_found(self, actor, other_actor, foreign_vendor, vendor):
        foreign = create_ledger_invoice(other_actor, "AP", foreign_vendor.id, Decimal("100.00")).data

        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("100.00"), "CASH",
            knockoffs=[_knockoff(foreign, "100.00")],
        )

        assert result.error_code == "NOT_FOUND"

    def test_duplicate_invoice_in_knockoffs(self, actor, vendor, ap_invoice):
        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("300.00"), "CASH",
            knockoffs=[_knockoff(ap_invoice, "100.00"), _knockoff(ap_invoice, "200.00")],
        )

        assert result.error_code == "DUPLICATE_KNOCKOFF"

    def test_missing_knockoff_list(self, actor, vendor):
        result = create_payment(actor, "AP_PAYMENT", vendor.id, Decimal("100.00"), "CASH", knockoffs=None)

        assert result.error_code == "VALIDATION_ERROR"

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    def test_payment_amount_must_be_positive(self, actor, vendor, amount):
        result = create_payment(actor, "AP_PAYMENT", vendor.id, Decimal(amount), "CASH", knockoffs=[])

        assert result.error_code == "VALIDATION_ERROR"

    @pytest.mark.parametrize("amount", ["NaN", "sNaN", "Infinity", "-Infinity", "1e999999"])
    def test_malformed_payment_amount(self, actor, vendor, amount):
        result = create_payment(actor, "AP_PAYMENT", vendor.id, amount, "CASH", knockoffs=[])

        assert result.error_code == "VALIDATION_ERROR"
        assert not Payment.objects.exists()

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "1e999999"])
    def test_malformed_knockoff_amount(self, actor, vendor, ap_invoice, amount):
        result = create_payment(
            actor, "AP_PAYMENT", vendor.id, Decimal("100.00"), "CASH",
            knockoffs=[{"invoice_id": ap_invoice.id, "knockoff_amount": amount}],
        )

        assert result.error_code == "VALIDATION_ERROR"
        ap_invoice.refresh_from_db()
        assert ap_invoice.outstanding_amount == Decimal("1000.00")

    def test_payment_method_is_required(self, actor, vendor):
        result = create_payment(actor, "AP_PAYMENT", vendor.id, Decimal("10.00"), "", knockoffs=[])

        assert result.error_code == "VALIDATION_ERROR"

    def test_receipt_from_a_vendor_is_rejected(self, actor, vendor):
        result = create_payment(actor, "AR_RECEIPT", vendor.id, Decimal("10.00"), "CASH", knockoffs=[])

        assert result.error_code == "COUNTERPARTY_KIND_MISMATCH"

    def test_viewer_cannot_pay(self, viewer_actor, vendor):
        with pytest.raises(PermissionDenied):
            create_payment(viewer_actor, "AP_PAYMENT", vendor.id, Decimal("10.00"), "CASH", knockoffs=[])


# =============================================================================
# Reversal
# =============================================================================

@pytest.mark.django_db
class TestPaymentReversal:

    def test_void_payment_restores_outstanding(self, actor, make_payment, vendor, ap_invoice):
        make_payment("AP_PAYMENT", vendor, "600.00", [_knockoff(ap_invoice, "600.00")])
        payment = make_payment("AP_PAYMENT", vendor, "250.00", [_knockoff(ap_invoice, "250.00")])

        result = void_payment(actor, payment.id, reason="Bounced")

        assert result.success, result.error
        payment.refresh_from_db()
        ap_invoice.refresh_from_db()
        assert payment.is_void
        assert payment.void_reason == "Bounced"
        assert payment.knockoffs.get().is_reversed
        assert ap_invoice.paid_amount == Decimal("600.00")
        assert ap_invoice.outstanding_amount == Decimal("400.00")
        assert ap_invoice.status == LedgerInvoice.Status.PARTIAL

    def test_void_payment_twice(self, actor, make_payment, vendor):
        payment = make_payment("AP_PAYMENT", vendor, "10.00")
        assert void_payment(actor, payment.id).success

        result = void_payment(actor, payment.id)

        assert result.error == "Payment already voided"
        assert result.error_code == "ALREADY_VOIDED"

    def test_delete_payment_removes_knockoffs(self, actor, make_payment, vendor, ap_invoice):
        payment = make_payment("AP_PAYMENT", vendor, "1000.00", [_knockoff(ap_invoice, "1000.00")])

        result = delete_payment(actor, payment.id)

        assert result.success, result.error
        assert not Payment.objects.filter(pk=payment.pk).exists()
        assert not Knockoff.objects.exists()
        ap_invoice.refresh_from_db()
        assert ap_invoice.outstanding_amount == Decimal("1000.00")
        assert ap_invoice.status == LedgerInvoice.Status.OPEN

    def test_clerk_cannot_delete_payment(self, clerk_actor, make_payment, vendor):
        payment = make_payment("AP_PAYMENT", vendor, "10.00")

        with pytest.raises(PermissionDenied):
            delete_payment(clerk_actor, payment.id)

    def test_payments_are_immutable(self, actor, make_payment, vendor):
        payment = make_payment("AP_PAYMENT", vendor, "10.00")

        result = update_payment(actor, payment.id, payment_amount="20.00")

        assert result.error_code == "PAYMENT_IMMUTABLE"
        assert result.http_status == 409
        payment.refresh_from_db()
        assert payment.payment_amount == Decimal("10.00")

    def test_editing_needs_void_permission(self, clerk_actor, make_payment, vendor):
        payment = make_payment("AP_PAYMENT", vendor, "10.00")

        with pytest.raises(PermissionDenied):
            update_payment(clerk_actor, payment.id, reference="changed")

    def test_void_ledger_invoice_reverses_its_knockoffs(self, actor, make_payment, vendor, ap_invoice):
        payment = make_payment("AP_PAYMENT", vendor, "300.00", [_knockoff(ap_invoice, "300.00")])

        result = void_ledger_invoice(actor, ap_invoice.id, reason="Duplicate bill")

        assert result.success, result.error
        ap_invoice.refresh_from_db()
        payment.refresh_from_db()
        assert ap_invoice.status == LedgerInvoice.Status.VOID
        assert ap_invoice.paid_amount == Decimal("0.00")
        assert not payment.is_void
        assert payment.unapplied_amount == Decimal("300.00")


# =============================================================================
# Ledger invoices
# =============================================================================

@pytest.mark.django_db
class TestManualLedgerInvoices:

    def test_defaults(self, make_invoice, vendor):
        invoice = make_invoice(vendor, "118.00", invoice_date=date(2024, 3, 1), tax_amount="18.00")

        assert invoice.invoice_no == "API-00001"
        assert invoice.subtotal == Decimal("100.00")
        assert invoice.due_date == date(2024, 3, 31)
        assert invoice.source_document_id is None

    def test_delete_without_history(self, actor, ap_invoice):
        result = delete_ledger_invoice(actor, ap_invoice.id)

        assert result.success
        assert result.data["deleted"] is True
        assert not LedgerInvoice.objects.filter(pk=ap_invoice.pk).exists()

    def test_delete_with_history_voids(self, actor, make_payment, vendor, ap_invoice):
        make_payment("AP_PAYMENT", vendor, "100.00", [_knockoff(ap_invoice, "100.00")])

        result = delete_ledger_invoice(actor, ap_invoice.id)

        assert result.success
        assert result.data["deleted"] is False
        ap_invoice.refresh_from_db()
        assert ap_invoice.is_void
        assert ap_invoice.paid_amount == Decimal("0.00")

    def test_void_twice(self, actor, ap_invoice):
        assert void_ledger_invoice(actor, ap_invoice.id).success

        result = void_ledger_invoice(actor, ap_invoice.id)

        assert result.error == "Ledger invoice already voided"
        assert result.error_code == "ALREADY_VOIDED"


@pytest.mark.django_db
class TestOutstandingAndSuggestions:

    def test_outstanding_invoices_oldest_first(self, actor, make_invoice, vendor):
        later = make_invoice(vendor, "100.00", invoice_date=date(2024, 2, 1))
        earlier = make_invoice(vendor, "100.00", invoice_date=date(2024, 1, 1))
        paid = make_invoice(vendor, "50.00", invoice_date=date(2023, 12, 1))
        create_payment(actor, "AP_PAYMENT", vendor.id, Decimal("50.00"), "CASH", knockoffs=[_knockoff(paid, "50.00")])

        result = get_outstanding_invoices(actor, "AP_PAYMENT", vendor.id)

        assert [inv.id for inv in result.data] == [earlier.id, later.id]

    def test_suggest_knockoffs(self, actor, make_invoice, vendor):
        first = make_invoice(vendor, "300.00", invoice_date=date(2024, 1, 1))
        second = make_invoice(vendor, "500.00", invoice_date=date(2024, 2, 1))

        result = suggest_knockoffs(actor, "AP", vendor.id, Decimal("450.00"))

        assert result.success
        suggestions = result.data["knockoffs"]
        assert [(s["invoice_id"], s["knockoff_amount"]) for s in suggestions] == [
            (first.id, Decimal("300.00")),
            (second.id, Decimal("150.00")),
        ]
        assert result.data["unapplied_amount"] == Decimal("0.00")

    def test_suggestion_leaves_remainder_unapplied(self, actor, make_invoice, vendor):
        make_invoice(vendor, "100.00")

        result = suggest_knockoffs(actor, "AP", vendor.id, Decimal("130.00"))

        assert result.data["unapplied_amount"] == Decimal("30.00")
