from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    # Operations endpoints (no auth required)
    path("_health/", include("ops.urls")),

    # Admin and API
    path("admin/", admin.site.urls),
    path("api/", include("accounts.urls")),
    path("api/parties/", include("parties.urls")),
    path("api/documents/", include("documents.urls")),
    path("api/ledger/", include("ledger.urls")),
    path("api/events/", include("events.urls")),
    path("api-auth/", include("rest_framework.urls")),
]
