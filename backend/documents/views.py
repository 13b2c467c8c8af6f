# documents/views.py
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
from documents.commands import (
    create_document,
    update_document,
    transfer_document,
    get_transferable_lines,
    post_document,
    void_document,
)
from documents.models import DocumentHeader
from documents.serializers import (
    DocumentSerializer,
    DocumentListSerializer,
    DocumentLineSerializer,
    DocumentCreateSerializer,
    DocumentUpdateSerializer,
    DocumentTransferSerializer,
    DocumentVoidSerializer,
)


def _void_response(result):
    if not result.success:
        return error_response(result)
    return Response(result.data)


class DocumentListCreateView(APIView):
    """
    GET /api/documents/?document_type=PURCHASE_ORDER&status=OPEN&counterparty=3 -> list
    POST /api/documents/ -> create
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "documents.view")

        qs = DocumentHeader.objects.filter(company=actor.company)
        params = request.query_params
        if params.get("document_type"):
            qs = qs.filter(document_type=params["document_type"])
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        if params.get("counterparty"):
            qs = qs.filter(counterparty_id=params["counterparty"])

        return Response(DocumentListSerializer(qs.order_by("-document_date", "-id"), many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = DocumentCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = dict(input_serializer.validated_data)
        data["lines"] = [dict(line) for line in data["lines"]]

        result = create_document(actor, **data)
        if not result.success:
            return error_response(result)

        return Response(DocumentSerializer(result.data).data, status=status.HTTP_201_CREATED)


class DocumentDetailView(APIView):
    """
    GET /api/documents/<pk>/ -> retrieve
    PATCH /api/documents/<pk>/ -> update
    DELETE /api/documents/<pk>/ -> void (deletes documents without effects)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "documents.view")

        document = get_object_or_404(
            DocumentHeader.objects.prefetch_related("lines"),
            company=actor.company,
            pk=pk,
        )
        return Response(DocumentSerializer(document).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = DocumentUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)
        data = dict(input_serializer.validated_data)
        if "lines" in data:
            data["lines"] = [dict(line) for line in data["lines"]]

        result = update_document(actor, pk, **data)
        if not result.success:
            return error_response(result)

        return Response(DocumentSerializer(result.data).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)
        return _void_response(void_document(actor, pk))


class DocumentVoidView(APIView):
    """POST /api/documents/<pk>/void/ {"reason": "..."}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = DocumentVoidSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        return _void_response(void_document(actor, pk, reason=input_serializer.validated_data["reason"]))


class DocumentTransferView(APIView):
    """
    POST /api/documents/<pk>/transfer/
        {"target_type": "GOODS_RECEIVED", "line_transfers": [{"line_id": 1, "transfer_qty": "6"}]}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = DocumentTransferSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data
        line_transfers = data.get("line_transfers")
        if line_transfers is not None:
            line_transfers = [dict(entry) for entry in line_transfers]

        result = transfer_document(actor, pk, data["target_type"], line_transfers=line_transfers)
        if not result.success:
            return error_response(result)

        return Response(DocumentSerializer(result.data).data, status=status.HTTP_201_CREATED)


class DocumentTransferableLinesView(APIView):
    """GET /api/documents/<pk>/transferable-lines/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)

        result = get_transferable_lines(actor, pk)
        if not result.success:
            return error_response(result)

        return Response({
            "document_id": result.data["document"].id,
            "targets": result.data["targets"],
            "lines": DocumentLineSerializer(result.data["lines"], many=True).data,
        })


class DocumentPostView(APIView):
    """POST /api/documents/<pk>/post/ -> post an invoice to the AR/AP ledger"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        result = post_document(actor, pk)
        if not result.success:
            return error_response(result)

        document = result.data["document"]
        invoice = result.data["ledger_invoice"]
        return Response({
            "id": document.id,
            "status": document.status,
            "is_posted": document.is_posted,
            "posted_at": document.posted_at,
            "ledger_invoice_id": invoice.id,
            "ledger_invoice_no": invoice.invoice_no,
        })
