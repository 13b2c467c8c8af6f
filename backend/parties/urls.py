# parties/urls.py

from django.urls import path

from parties.views import CounterpartyListCreateView, CounterpartyDetailView

app_name = "parties"

urlpatterns = [
    path("counterparties/", CounterpartyListCreateView.as_view(), name="counterparty-list-create"),
    path("counterparties/<int:pk>/", CounterpartyDetailView.as_view(), name="counterparty-detail"),
]
