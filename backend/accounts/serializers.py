# accounts/serializers.py

from rest_framework import serializers

from .models import Company, CompanyMembership, User


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ("public_id", "name", "slug", "default_currency", "is_active")


class MeSerializer(serializers.ModelSerializer):
    active_company = CompanySerializer(read_only=True)
    role = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ("public_id", "email", "name", "active_company", "role")

    def get_role(self, obj):
        membership = obj.get_active_membership()
        return membership.role if membership else None


class SwitchCompanySerializer(serializers.Serializer):
    company_public_id = serializers.UUIDField()
