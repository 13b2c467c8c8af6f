# parties/views.py
"""
Thin views that delegate to the commands layer.
"""

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from core.responses import error_response
from parties.commands import create_counterparty, update_counterparty
from parties.models import Counterparty
from parties.serializers import (
    CounterpartySerializer,
    CounterpartyCreateSerializer,
    CounterpartyUpdateSerializer,
)


class CounterpartyListCreateView(APIView):
    """
    GET /api/parties/counterparties/?kind=VENDOR -> list
    POST /api/parties/counterparties/ -> create
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "counterparties.view")

        qs = Counterparty.objects.filter(company=actor.company)
        kind = request.query_params.get("kind")
        if kind:
            qs = qs.filter(kind=kind)
        return Response(CounterpartySerializer(qs.order_by("kind", "code"), many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = CounterpartyCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_counterparty(actor, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(CounterpartySerializer(result.data).data, status=status.HTTP_201_CREATED)


class CounterpartyDetailView(APIView):
    """
    GET /api/parties/counterparties/<pk>/ -> retrieve
    PATCH /api/parties/counterparties/<pk>/ -> update
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "counterparties.view")

        cp = get_object_or_404(Counterparty, company=actor.company, pk=pk)
        return Response(CounterpartySerializer(cp).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = CounterpartyUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_counterparty(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(CounterpartySerializer(result.data).data)
