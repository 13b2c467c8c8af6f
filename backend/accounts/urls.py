# accounts/urls.py
"""
URL configuration for the auth API.

Endpoints:
- /auth/login/ - obtain a JWT pair (email + password)
- /auth/refresh/ - refresh an access token
- /auth/logout/ - blacklist a refresh token
- /auth/me/ - current user, active company and role
- /auth/switch-company/ - change the active company
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views import LogoutView, MeView, SwitchCompanyView

app_name = "accounts"

urlpatterns = [
    path("auth/login/", TokenObtainPairView.as_view(), name="login"),
    path("auth/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("auth/me/", MeView.as_view(), name="me"),
    path("auth/switch-company/", SwitchCompanyView.as_view(), name="switch-company"),
]
