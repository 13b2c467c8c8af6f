# tests/test_documents.py
"""
Tests for creating and editing documents.

Tests cover:
- Numbering, totals and counterparty snapshots on create
- Line replacement on update (kept, appended and removed lines)
- Quantity changes on derived lines flowing back to the source
"""

import pytest
from decimal import Decimal
from unittest import mock

from django.db.models.query import QuerySet

from documents.commands import create_document, transfer_document, update_document, void_document
from documents.models import DocumentHeader, StockMovement
from parties.commands import update_counterparty


@pytest.mark.django_db
class TestCreateDocument:

    def test_create_purchase_order(self, purchase_order, vendor):
        assert purchase_order.document_no == "PO-00001"
        assert purchase_order.domain == "PURCHASE"
        assert purchase_order.status == DocumentHeader.Status.OPEN
        assert purchase_order.transfer_status == DocumentHeader.TransferStatus.NONE
        assert purchase_order.counterparty_code == "V001"
        assert purchase_order.counterparty_name == "Acme Supplies"
        assert purchase_order.currency == "USD"

        assert purchase_order.subtotal == Decimal("650.00")
        assert purchase_order.discount_amount == Decimal("40.00")
        assert purchase_order.net_total == Decimal("610.00")
        assert purchase_order.net_total_local == Decimal("610.00")

        lines = list(purchase_order.lines.order_by("line_no"))
        assert [line.line_no for line in lines] == [1, 2]
        assert all(line.outstanding_qty == line.quantity for line in lines)

    def test_exchange_rate_applies_to_local_total(self, make_document, make_line, customer):
        quotation = make_document("QUOTATION", customer, [make_line(2, "50.00")], currency="eur", exchange_rate="4.5")

        assert quotation.currency == "EUR"
        assert quotation.net_total_local == Decimal("450.00")

    def test_sales_document_needs_a_customer(self, actor, make_line, vendor):
        result = create_document(actor, "SALES_ORDER", vendor.id, lines=[make_line(1, "1.00")])

        assert result.error_code == "COUNTERPARTY_KIND_MISMATCH"

    def test_counterparty_of_another_company(self, actor, make_line, foreign_vendor):
        result = create_document(actor, "PURCHASE_ORDER", foreign_vendor.id, lines=[make_line(1, "1.00")])

        assert result.error_code == "NOT_FOUND"

    def test_lines_are_required(self, actor, vendor):
        result = create_document(actor, "PURCHASE_ORDER", vendor.id, lines=[])

        assert result.error_code == "NO_LINES"

    @pytest.mark.parametrize("quantity", ["0", "-2"])
    def test_quantity_must_be_positive(self, actor, make_line, vendor, quantity):
        result = create_document(actor, "PURCHASE_ORDER", vendor.id, lines=[make_line(quantity, "1.00")])

        assert result.error_code == "VALIDATION_ERROR"
        assert not DocumentHeader.objects.exists()

    @pytest.mark.parametrize("line_input", [
        {"quantity": "NaN"},
        {"unit_price": "Infinity"},
        {"tax_rate": "1e999999"},
        {"tax_rate": "150"},
    ])
    def test_malformed_line_amounts(self, actor, make_line, vendor, line_input):
        data = make_line(1, "1.00")
        data.update(line_input)

        result = create_document(actor, "PURCHASE_ORDER", vendor.id, lines=[data])

        assert result.error_code == "VALIDATION_ERROR"
        assert not DocumentHeader.objects.exists()

    @pytest.mark.parametrize("exchange_rate", ["NaN", "Infinity", "1e999999"])
    def test_malformed_exchange_rate(self, actor, make_line, vendor, exchange_rate):
        result = create_document(
            actor, "PURCHASE_ORDER", vendor.id, lines=[make_line(1, "1.00")], exchange_rate=exchange_rate
        )

        assert result.error_code == "VALIDATION_ERROR"

    def test_unknown_document_type(self, actor, make_line, vendor):
        result = create_document(actor, "CREDIT_NOTE", vendor.id, lines=[make_line(1, "1.00")])

        assert result.error_code == "INVALID_DOCUMENT_TYPE"

    def test_snapshot_survives_counterparty_rename(self, actor, purchase_order, vendor):
        assert update_counterparty(actor, vendor.id, name="Acme Holdings").success

        purchase_order.refresh_from_db()
        assert purchase_order.counterparty_name == "Acme Supplies"


@pytest.mark.django_db
class TestUpdateDocument:

    def test_replace_lines(self, actor, purchase_order, make_line):
        first, second = purchase_order.lines.order_by("line_no")

        result = update_document(
            actor, purchase_order.id,
            lines=[
                {"id": second.id, "quantity": "5"},
                make_line(2, "10.00", product_code="P-300"),
            ],
        )

        assert result.success, result.error
        lines = list(result.data.lines.order_by("line_no"))
        assert [(line.line_no, line.product_code) for line in lines] == [(2, "P-200"), (3, "P-300")]
        assert lines[0].id == second.id
        assert lines[0].subtotal == Decimal("450.00")
        assert result.data.net_total == Decimal("470.00")

    def test_header_fields(self, actor, purchase_order):
        result = update_document(actor, purchase_order.id, reference="PO-REF", due_date="2024-09-30")

        assert result.success, result.error
        assert result.data.reference == "PO-REF"
        assert str(result.data.due_date) == "2024-09-30"

    def test_unknown_field(self, actor, purchase_order):
        result = update_document(actor, purchase_order.id, status="POSTED")

        assert result.error_code == "VALIDATION_ERROR"

    def test_transferred_document_cannot_be_edited(self, actor, purchase_order):
        first = purchase_order.lines.get(line_no=1)
        transfer_document(
            actor, purchase_order.id, "GOODS_RECEIVED",
            line_transfers=[{"line_id": first.id, "transfer_qty": "1"}],
        )

        result = update_document(actor, purchase_order.id, reference="late edit")

        assert result.error_code == "DOCUMENT_TRANSFERRED"
        assert result.http_status == 409

    def test_line_of_another_document(self, actor, purchase_order, make_document, make_line, vendor):
        other = make_document("PURCHASE_ORDER", vendor, [make_line(1, "1.00")])

        result = update_document(actor, purchase_order.id, lines=[{"id": other.lines.get().id, "quantity": "2"}])

        assert result.error_code == "INVALID_LINE"


@pytest.mark.django_db
class TestDerivedLineEdits:

    @pytest.fixture
    def grn(self, actor, purchase_order):
        first = purchase_order.lines.get(line_no=1)
        second = purchase_order.lines.get(line_no=2)
        result = transfer_document(
            actor, purchase_order.id, "GOODS_RECEIVED",
            line_transfers=[
                {"line_id": first.id, "transfer_qty": "6"},
                {"line_id": second.id, "transfer_qty": "2"},
            ],
        )
        assert result.success, result.error
        return result.data

    def test_increase_takes_more_from_source(self, actor, purchase_order, grn):
        grn_first, grn_second = grn.lines.order_by("line_no")

        result = update_document(
            actor, grn.id,
            lines=[{"id": grn_first.id, "quantity": "8"}, {"id": grn_second.id}],
        )

        assert result.success, result.error
        po_first = purchase_order.lines.get(line_no=1)
        assert po_first.transferred_qty == Decimal("8")
        assert po_first.outstanding_qty == Decimal("2")
        assert StockMovement.objects.get(line=grn_first, direction="IN").quantity == Decimal("8")

    def test_increase_beyond_source_outstanding(self, actor, purchase_order, grn):
        grn_first, grn_second = grn.lines.order_by("line_no")

        result = update_document(
            actor, grn.id,
            lines=[{"id": grn_first.id, "quantity": "11"}, {"id": grn_second.id}],
        )

        assert result.error_code == "TRANSFER_EXCEEDS_OUTSTANDING"
        assert purchase_order.lines.get(line_no=1).outstanding_qty == Decimal("4")

    def test_removed_line_gives_quantity_back(self, actor, purchase_order, grn):
        grn_first = grn.lines.get(line_no=1)

        result = update_document(actor, grn.id, lines=[{"id": grn_first.id}])

        assert result.success, result.error
        po_second = purchase_order.lines.get(line_no=2)
        assert po_second.transferred_qty == Decimal("0")
        assert po_second.outstanding_qty == Decimal("4")
        purchase_order.refresh_from_db()
        assert purchase_order.transfer_status == DocumentHeader.TransferStatus.PARTIAL

    def test_void_source_cannot_give_more(self, actor, purchase_order, grn):
        void_document(actor, purchase_order.id, reason="cancelled")
        grn_first, grn_second = grn.lines.order_by("line_no")

        result = update_document(
            actor, grn.id,
            lines=[{"id": grn_first.id, "quantity": "10"}, {"id": grn_second.id}],
        )

        assert result.error_code == "SOURCE_VOIDED"
        assert result.http_status == 409
        po_first = purchase_order.lines.get(line_no=1)
        assert po_first.transferred_qty == Decimal("6")
        purchase_order.refresh_from_db()
        assert purchase_order.status == DocumentHeader.Status.VOID
        assert purchase_order.transfer_status == DocumentHeader.TransferStatus.PARTIAL

    def test_reducing_line_leaves_void_source_untouched(self, actor, purchase_order, grn):
        void_document(actor, purchase_order.id)
        grn_first, grn_second = grn.lines.order_by("line_no")

        result = update_document(
            actor, grn.id,
            lines=[{"id": grn_first.id, "quantity": "3"}],
        )

        assert result.success, result.error
        assert purchase_order.lines.get(line_no=1).transferred_qty == Decimal("6")
        assert purchase_order.lines.get(line_no=2).transferred_qty == Decimal("2")
        purchase_order.refresh_from_db()
        assert purchase_order.transfer_status == DocumentHeader.TransferStatus.PARTIAL

    @staticmethod
    def _record_locks():
        locked = []
        select_for_update = QuerySet.select_for_update

        def recording(queryset, *args, **kwargs):
            locked.append(queryset.model.__name__)
            return select_for_update(queryset, *args, **kwargs)

        return locked, mock.patch.object(QuerySet, "select_for_update", recording)

    @staticmethod
    def _last(locked, name):
        return len(locked) - 1 - locked[::-1].index(name)

    def test_edit_locks_source_header_before_lines(self, actor, purchase_order, grn):
        grn_first, grn_second = grn.lines.order_by("line_no")
        locked, patch = self._record_locks()

        with patch:
            result = update_document(
                actor, grn.id,
                lines=[{"id": grn_first.id, "quantity": "7"}, {"id": grn_second.id}],
            )

        assert result.success, result.error
        assert locked[:4] == ["DocumentHeader", "DocumentDetail", "DocumentHeader", "DocumentDetail"]

    def test_void_locks_source_header_before_lines(self, actor, purchase_order, grn):
        locked, patch = self._record_locks()

        with patch:
            result = void_document(actor, grn.id)

        assert result.success, result.error
        assert locked.count("DocumentHeader") >= 2
        assert self._last(locked, "DocumentHeader") < self._last(locked, "DocumentDetail")
