# events/urls.py
"""URL configuration for the audit trail API."""

from django.urls import path

from events.views import EventListView, AggregateEventHistoryView


app_name = "events"

urlpatterns = [
    path("", EventListView.as_view(), name="event-list"),
    path(
        "aggregate/<str:aggregate_type>/<str:aggregate_id>/",
        AggregateEventHistoryView.as_view(),
        name="aggregate-history",
    ),
]
