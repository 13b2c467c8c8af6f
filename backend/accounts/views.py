# accounts/views.py

from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .models import CompanyMembership
from .serializers import MeSerializer, SwitchCompanySerializer


class LogoutView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        refresh_token = request.data.get("refresh")
        if not refresh_token:
            return Response({"detail": "Refresh token required"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            token = RefreshToken(refresh_token)
            token.blacklist()
        except TokenError:
            return Response({"detail": "Invalid token"}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, *args, **kwargs):
        return Response(MeSerializer(request.user).data)


class SwitchCompanyView(APIView):
    """POST /api/auth/switch-company/ -> make another membership's company active."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = SwitchCompanySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        membership = CompanyMembership.objects.select_related("company").filter(
            user=request.user,
            company__public_id=serializer.validated_data["company_public_id"],
            is_active=True,
        ).first()
        if not membership:
            return Response(
                {"detail": "You are not an active member of that company."},
                status=status.HTTP_403_FORBIDDEN,
            )

        request.user.active_company = membership.company
        request.user.save(update_fields=["active_company"])
        return Response(MeSerializer(request.user).data)
