# ledger/urls.py

from django.urls import path

from ledger.views import (
    LedgerInvoiceListCreateView,
    LedgerInvoiceDetailView,
    LedgerInvoiceVoidView,
    OutstandingInvoicesView,
    PaymentListCreateView,
    PaymentDetailView,
    PaymentVoidView,
    SuggestKnockoffsView,
)

app_name = "ledger"

urlpatterns = [
    path("invoices/", LedgerInvoiceListCreateView.as_view(), name="invoice-list-create"),
    path("invoices/outstanding/", OutstandingInvoicesView.as_view(), name="invoice-outstanding"),
    path("invoices/<int:pk>/", LedgerInvoiceDetailView.as_view(), name="invoice-detail"),
    path("invoices/<int:pk>/void/", LedgerInvoiceVoidView.as_view(), name="invoice-void"),
    path("payments/", PaymentListCreateView.as_view(), name="payment-list-create"),
    path("payments/suggest/", SuggestKnockoffsView.as_view(), name="payment-suggest"),
    path("payments/<int:pk>/", PaymentDetailView.as_view(), name="payment-detail"),
    path("payments/<int:pk>/void/", PaymentVoidView.as_view(), name="payment-void"),
]
