# parties/serializers.py

from rest_framework import serializers

from parties.models import Counterparty


class CounterpartySerializer(serializers.ModelSerializer):
    class Meta:
        model = Counterparty
        fields = [
            "id",
            "public_id",
            "kind",
            "code",
            "name",
            "currency",
            "credit_term_days",
            "email",
            "phone",
            "address",
            "is_active",
        ]


class CounterpartyCreateSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=Counterparty.Kind.choices)
    code = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    currency = serializers.CharField(max_length=3, required=False)
    credit_term_days = serializers.IntegerField(min_value=0, required=False, default=0)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    address = serializers.CharField(required=False, allow_blank=True, default="")


class CounterpartyUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    currency = serializers.CharField(max_length=3, required=False)
    credit_term_days = serializers.IntegerField(min_value=0, required=False)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)
