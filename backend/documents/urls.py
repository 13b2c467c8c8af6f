# documents/urls.py

from django.urls import path

from documents.views import (
    DocumentListCreateView,
    DocumentDetailView,
    DocumentVoidView,
    DocumentTransferView,
    DocumentTransferableLinesView,
    DocumentPostView,
)

app_name = "documents"

urlpatterns = [
    path("", DocumentListCreateView.as_view(), name="document-list-create"),
    path("<int:pk>/", DocumentDetailView.as_view(), name="document-detail"),
    path("<int:pk>/void/", DocumentVoidView.as_view(), name="document-void"),
    path("<int:pk>/transfer/", DocumentTransferView.as_view(), name="document-transfer"),
    path("<int:pk>/transferable-lines/", DocumentTransferableLinesView.as_view(), name="document-transferable-lines"),
    path("<int:pk>/post/", DocumentPostView.as_view(), name="document-post"),
]
