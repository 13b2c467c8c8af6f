"""
API tests for the document chain and the AR/AP ledger.

The views are thin: these tests check request parsing, status codes and
the error response shape; the business rules are covered per command.
"""

import pytest
from decimal import Decimal

from documents.models import DocumentHeader
from ledger.models import LedgerInvoice, Payment


def _line(quantity, unit_price, **extra):
    return {"product_code": "P-100", "quantity": str(quantity), "unit_price": str(unit_price), **extra}


# =============================================================================
# Documents
# =============================================================================

@pytest.mark.django_db
class TestDocumentAPI:

    def test_requires_authentication(self, api_client):
        response = api_client.get("/api/documents/")

        assert response.status_code == 401

    @pytest.mark.parametrize("alias", ["lines", "details", "items"])
    def test_create_accepts_line_aliases(self, authenticated_client, vendor, alias):
        response = authenticated_client.post(
            "/api/documents/",
            {"document_type": "PURCHASE_ORDER", "counterparty_id": vendor.id, alias: [_line(3, "10.00")]},
            format="json",
        )

        assert response.status_code == 201, response.data
        assert response.data["document_no"] == "PO-00001"
        assert Decimal(response.data["net_total"]) == Decimal("30.00")
        assert len(response.data["lines"]) == 1

    def test_create_rejects_two_line_aliases(self, authenticated_client, vendor):
        response = authenticated_client.post(
            "/api/documents/",
            {
                "document_type": "PURCHASE_ORDER",
                "counterparty_id": vendor.id,
                "lines": [_line(1, "1.00")],
                "items": [_line(1, "1.00")],
            },
            format="json",
        )

        assert response.status_code == 400
        assert "items" in response.data
        assert not DocumentHeader.objects.exists()

    def test_command_error_shape(self, authenticated_client, customer):
        response = authenticated_client.post(
            "/api/documents/",
            {"document_type": "PURCHASE_ORDER", "counterparty_id": customer.id, "lines": [_line(1, "1.00")]},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["code"] == "COUNTERPARTY_KIND_MISMATCH"
        assert "detail" in response.data

    def test_list_is_company_scoped(self, authenticated_client, purchase_order, make_document, make_line,
                                    foreign_vendor, other_actor):
        make_document("PURCHASE_ORDER", foreign_vendor, [make_line(1, "1.00")], actor=other_actor)

        response = authenticated_client.get("/api/documents/", {"document_type": "PURCHASE_ORDER"})

        assert response.status_code == 200
        assert [row["id"] for row in response.data] == [purchase_order.id]

    def test_retrieve_other_company_document(self, api_client, other_user, purchase_order):
        api_client.force_authenticate(user=other_user)

        response = api_client.get(f"/api/documents/{purchase_order.id}/")

        assert response.status_code == 404

    def test_transfer(self, authenticated_client, purchase_order):
        first = purchase_order.lines.get(line_no=1)

        response = authenticated_client.post(
            f"/api/documents/{purchase_order.id}/transfer/",
            {"target_type": "GOODS_RECEIVED", "line_transfers": [{"line_id": first.id, "transfer_qty": "6"}]},
            format="json",
        )

        assert response.status_code == 201, response.data
        assert response.data["document_type"] == "GOODS_RECEIVED"
        assert response.data["source_document_id"] == purchase_order.id
        assert response.data["lines"][0]["source_line_id"] == first.id

        lines = authenticated_client.get(f"/api/documents/{purchase_order.id}/transferable-lines/")
        assert lines.data["targets"] == ["GOODS_RECEIVED", "PURCHASE_INVOICE"]
        assert [Decimal(row["outstanding_qty"]) for row in lines.data["lines"]] == [Decimal("4"), Decimal("4")]

    def test_transfer_exceeding_outstanding(self, authenticated_client, purchase_order):
        first = purchase_order.lines.get(line_no=1)

        response = authenticated_client.post(
            f"/api/documents/{purchase_order.id}/transfer/",
            {"target_type": "GOODS_RECEIVED", "line_transfers": [{"line_id": first.id, "transfer_qty": "11"}]},
            format="json",
        )

        assert response.status_code == 422
        assert response.data["code"] == "TRANSFER_EXCEEDS_OUTSTANDING"

    def test_update_with_details_alias(self, authenticated_client, purchase_order):
        second = purchase_order.lines.get(line_no=2)

        response = authenticated_client.patch(
            f"/api/documents/{purchase_order.id}/",
            {"details": [{"id": second.id, "quantity": "1"}], "reference": "R-9"},
            format="json",
        )

        assert response.status_code == 200, response.data
        assert response.data["reference"] == "R-9"
        assert [row["line_no"] for row in response.data["lines"]] == [2]

    def test_post_and_void(self, authenticated_client, make_document, make_line, vendor):
        invoice = make_document("PURCHASE_INVOICE", vendor, [make_line(2, "50.00")])

        posted = authenticated_client.post(f"/api/documents/{invoice.id}/post/")
        assert posted.status_code == 200, posted.data
        assert posted.data["is_posted"] is True

        again = authenticated_client.post(f"/api/documents/{invoice.id}/post/")
        assert again.status_code == 409
        assert again.data["code"] == "ALREADY_POSTED"

        voided = authenticated_client.post(f"/api/documents/{invoice.id}/void/", {"reason": "typo"}, format="json")
        assert voided.status_code == 200
        assert voided.data["deleted"] is False
        assert "void_ledger_invoice" in voided.data["steps"]

    def test_delete_plain_document(self, authenticated_client, purchase_order):
        response = authenticated_client.delete(f"/api/documents/{purchase_order.id}/")

        assert response.status_code == 200
        assert response.data["deleted"] is True

    def test_viewer_cannot_create(self, api_client, viewer, vendor):
        api_client.force_authenticate(user=viewer)

        response = api_client.post(
            "/api/documents/",
            {"document_type": "PURCHASE_ORDER", "counterparty_id": vendor.id, "lines": [_line(1, "1.00")]},
            format="json",
        )

        assert response.status_code == 403


# =============================================================================
# Ledger
# =============================================================================

@pytest.mark.django_db
class TestLedgerAPI:

    @pytest.fixture
    def invoice(self, actor, vendor):
        from ledger.commands import create_ledger_invoice

        result = create_ledger_invoice(actor, "AP", vendor.id, Decimal("500.00"), invoice_date="2024-02-01")
        assert result.success, result.error
        return result.data

    def test_create_manual_invoice(self, authenticated_client, vendor):
        response = authenticated_client.post(
            "/api/ledger/invoices/",
            {"kind": "AP", "counterparty_id": vendor.id, "net_total": "250.00", "invoice_date": "2024-01-15"},
            format="json",
        )

        assert response.status_code == 201, response.data
        assert response.data["invoice_no"] == "API-00001"
        assert response.data["due_date"] == "2024-02-14"

    def test_outstanding(self, authenticated_client, invoice, vendor):
        response = authenticated_client.get("/api/ledger/invoices/outstanding/", {"kind": "AP", "counterparty": vendor.id})

        assert response.status_code == 200
        assert [row["id"] for row in response.data] == [invoice.id]

    def test_payment_with_knockoff(self, authenticated_client, invoice, vendor):
        response = authenticated_client.post(
            "/api/ledger/payments/",
            {
                "kind": "AP_PAYMENT",
                "counterparty_id": vendor.id,
                "payment_amount": "200.00",
                "method": "CHEQUE",
                "cheque_no": "000123",
                "knockoffs": [{"invoice_id": invoice.id, "knockoff_amount": "200.00"}],
            },
            format="json",
        )

        assert response.status_code == 201, response.data
        assert response.data["payment_no"] == "PV-00001"
        assert len(response.data["knockoffs"]) == 1
        invoice.refresh_from_db()
        assert invoice.outstanding_amount == Decimal("300.00")

    def test_knockoff_error(self, authenticated_client, invoice, vendor):
        response = authenticated_client.post(
            "/api/ledger/payments/",
            {
                "kind": "AP_PAYMENT",
                "counterparty_id": vendor.id,
                "payment_amount": "900.00",
                "method": "CASH",
                "knockoffs": [{"invoice_id": invoice.id, "knockoff_amount": "600.00"}],
            },
            format="json",
        )

        assert response.status_code == 422
        assert response.data["code"] == "KNOCKOFF_EXCEEDS_OUTSTANDING"
        assert not Payment.objects.exists()

    def test_payment_is_immutable(self, authenticated_client, make_payment, vendor):
        payment = make_payment("AP_PAYMENT", vendor, "10.00")

        response = authenticated_client.patch(f"/api/ledger/payments/{payment.id}/", {"reference": "x"}, format="json")

        assert response.status_code == 409
        assert response.data["code"] == "PAYMENT_IMMUTABLE"

    def test_delete_payment(self, authenticated_client, make_payment, invoice, vendor):
        payment = make_payment(
            "AP_PAYMENT", vendor, "100.00",
            knockoffs=[{"invoice_id": invoice.id, "knockoff_amount": "100.00"}],
        )

        response = authenticated_client.delete(f"/api/ledger/payments/{payment.id}/")

        assert response.status_code == 204
        invoice.refresh_from_db()
        assert invoice.outstanding_amount == Decimal("500.00")
        assert invoice.status == LedgerInvoice.Status.OPEN

    def test_suggest(self, authenticated_client, invoice, vendor):
        response = authenticated_client.post(
            "/api/ledger/payments/suggest/",
            {"kind": "AP_PAYMENT", "counterparty_id": vendor.id, "amount": "650.00"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["knockoffs"][0]["knockoff_amount"] == "500.00"
        assert response.data["unapplied_amount"] == "150.00"


# =============================================================================
# Counterparties & Events
# =============================================================================

@pytest.mark.django_db
class TestPartiesAndEventsAPI:

    def test_create_and_update_counterparty(self, authenticated_client):
        created = authenticated_client.post(
            "/api/parties/counterparties/",
            {"kind": "VENDOR", "code": "V100", "name": "Umbrella", "credit_term_days": 45},
            format="json",
        )
        assert created.status_code == 201, created.data
        assert created.data["currency"] == "USD"

        updated = authenticated_client.patch(
            f"/api/parties/counterparties/{created.data['id']}/",
            {"is_active": False},
            format="json",
        )
        assert updated.status_code == 200
        assert updated.data["is_active"] is False

    def test_duplicate_code(self, authenticated_client, vendor):
        response = authenticated_client.post(
            "/api/parties/counterparties/",
            {"kind": "VENDOR", "code": "V001", "name": "Again"},
            format="json",
        )

        assert response.status_code == 409
        assert response.data["code"] == "DUPLICATE_CODE"

    def test_aggregate_history(self, authenticated_client, purchase_order):
        response = authenticated_client.get(f"/api/events/aggregate/Document/{purchase_order.public_id}/")

        assert response.status_code == 200
        assert [row["event_type"] for row in response.data] == ["document.created"]


# =============================================================================
# Auth
# =============================================================================

@pytest.mark.django_db
class TestAuthAPI:

    def test_login_and_me(self, api_client, user):
        tokens = api_client.post(
            "/api/auth/login/",
            {"email": "owner@test.com", "password": "testpass123"},
            format="json",
        )
        assert tokens.status_code == 200, tokens.data

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens.data['access']}")
        me = api_client.get("/api/auth/me/")

        assert me.status_code == 200
        assert me.data["role"] == "OWNER"
        assert me.data["active_company"]["slug"] == "test-company"

    def test_switch_company_requires_membership(self, authenticated_client, second_company):
        response = authenticated_client.post(
            "/api/auth/switch-company/",
            {"company_public_id": str(second_company.public_id)},
            format="json",
        )

        assert response.status_code == 403
