# ledger/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: business logic, validation, events.
"""

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from core.responses import error_response
from ledger.commands import (
    create_ledger_invoice,
    void_ledger_invoice,
    delete_ledger_invoice,
    get_outstanding_invoices,
    create_payment,
    update_payment,
    void_payment,
    delete_payment,
    suggest_knockoffs,
)
from ledger.models import LedgerInvoice, Payment
from ledger.serializers import (
    LedgerInvoiceSerializer,
    LedgerInvoiceCreateSerializer,
    PaymentSerializer,
    PaymentCreateSerializer,
    VoidSerializer,
    OutstandingQuerySerializer,
    SuggestKnockoffsSerializer,
)


# =============================================================================
# Ledger Invoice Views
# =============================================================================

class LedgerInvoiceListCreateView(APIView):
    """
    GET /api/ledger/invoices/?kind=AP&status=OPEN&counterparty=3 -> list
    POST /api/ledger/invoices/ -> create a manual invoice
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        qs = LedgerInvoice.objects.filter(company=actor.company)
        params = request.query_params
        if params.get("kind"):
            qs = qs.filter(kind=params["kind"])
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        if params.get("counterparty"):
            qs = qs.filter(counterparty_id=params["counterparty"])

        return Response(LedgerInvoiceSerializer(qs.order_by("-invoice_date", "-id"), many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = LedgerInvoiceCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_ledger_invoice(actor, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(LedgerInvoiceSerializer(result.data).data, status=status.HTTP_201_CREATED)


class LedgerInvoiceDetailView(APIView):
    """
    GET /api/ledger/invoices/<pk>/ -> retrieve
    DELETE /api/ledger/invoices/<pk>/ -> delete (void when it has payment history)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        invoice = get_object_or_404(LedgerInvoice, company=actor.company, pk=pk)
        return Response(LedgerInvoiceSerializer(invoice).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_ledger_invoice(actor, pk)
        if not result.success:
            return error_response(result)

        if result.data["deleted"]:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(LedgerInvoiceSerializer(result.data["invoice"]).data)


class LedgerInvoiceVoidView(APIView):
    """POST /api/ledger/invoices/<pk>/void/ {"reason": "..."}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = VoidSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = void_ledger_invoice(actor, pk, reason=input_serializer.validated_data["reason"])
        if not result.success:
            return error_response(result)

        return Response(LedgerInvoiceSerializer(result.data).data)


class OutstandingInvoicesView(APIView):
    """GET /api/ledger/invoices/outstanding/?kind=AP&counterparty=3"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)

        query = OutstandingQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = get_outstanding_invoices(actor, query.validated_data["kind"], query.validated_data["counterparty"])
        if not result.success:
            return error_response(result)

        return Response(LedgerInvoiceSerializer(result.data, many=True).data)


# =============================================================================
# Payment Views
# =============================================================================

class PaymentListCreateView(APIView):
    """
    GET /api/ledger/payments/?kind=AR_RECEIPT&counterparty=3 -> list
    POST /api/ledger/payments/ -> record a payment with its knockoffs
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "payments.view")

        qs = Payment.objects.filter(company=actor.company).prefetch_related("knockoffs")
        params = request.query_params
        if params.get("kind"):
            qs = qs.filter(kind=params["kind"])
        if params.get("counterparty"):
            qs = qs.filter(counterparty_id=params["counterparty"])

        return Response(PaymentSerializer(qs.order_by("-payment_date", "-id"), many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = PaymentCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = dict(input_serializer.validated_data)
        data["knockoffs"] = [dict(entry) for entry in data["knockoffs"]]

        result = create_payment(actor, **data)
        if not result.success:
            return error_response(result)

        return Response(PaymentSerializer(result.data).data, status=status.HTTP_201_CREATED)


class PaymentDetailView(APIView):
    """
    GET /api/ledger/payments/<pk>/ -> retrieve
    PATCH /api/ledger/payments/<pk>/ -> always rejected (payments are immutable)
    DELETE /api/ledger/payments/<pk>/ -> reverse knockoffs and delete
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "payments.view")

        payment = get_object_or_404(
            Payment.objects.prefetch_related("knockoffs"),
            company=actor.company,
            pk=pk,
        )
        return Response(PaymentSerializer(payment).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)
        return error_response(update_payment(actor, pk))

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_payment(actor, pk)
        if not result.success:
            return error_response(result)

        return Response(status=status.HTTP_204_NO_CONTENT)


class PaymentVoidView(APIView):
    """POST /api/ledger/payments/<pk>/void/ {"reason": "..."}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = VoidSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = void_payment(actor, pk, reason=input_serializer.validated_data["reason"])
        if not result.success:
            return error_response(result)

        return Response(PaymentSerializer(result.data).data)


class SuggestKnockoffsView(APIView):
    """POST /api/ledger/payments/suggest/ {"kind", "counterparty_id", "amount"}"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = SuggestKnockoffsSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        result = suggest_knockoffs(actor, data["kind"], data["counterparty_id"], data["amount"])
        if not result.success:
            return error_response(result)

        return Response({
            "knockoffs": [
                {
                    "invoice_id": entry["invoice_id"],
                    "invoice_no": entry["invoice_no"],
                    "invoice_date": entry["invoice_date"],
                    "due_date": entry["due_date"],
                    "outstanding_before": str(entry["outstanding_before"]),
                    "knockoff_amount": str(entry["knockoff_amount"]),
                }
                for entry in result.data["knockoffs"]
            ],
            "unapplied_amount": str(result.data["unapplied_amount"]),
        })
