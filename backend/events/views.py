# events/views.py
"""
Audit trail API.

All endpoints require authentication and are scoped to the actor's company.
"""

from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from accounts.authz import resolve_actor, require
from events.models import BusinessEvent
from events.serializers import BusinessEventSerializer


class EventListView(generics.ListAPIView):
    """
    GET /api/events/

    Filters: event_type, aggregate_type, aggregate_id.
    """

    serializer_class = BusinessEventSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        actor = resolve_actor(self.request)
        require(actor, "company.view")

        qs = BusinessEvent.objects.filter(
            company=actor.company
        ).select_related("caused_by_user").order_by("-company_sequence")

        for param in ("event_type", "aggregate_type", "aggregate_id"):
            value = self.request.query_params.get(param)
            if value:
                qs = qs.filter(**{param: value})

        return qs[:1000]


class AggregateEventHistoryView(generics.ListAPIView):
    """GET /api/events/aggregate/<aggregate_type>/<aggregate_id>/ -> history in order."""

    serializer_class = BusinessEventSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        actor = resolve_actor(self.request)
        require(actor, "company.view")

        return BusinessEvent.objects.filter(
            company=actor.company,
            aggregate_type=self.kwargs["aggregate_type"],
            aggregate_id=self.kwargs["aggregate_id"],
        ).select_related("caused_by_user").order_by("sequence")
