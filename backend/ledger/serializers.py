# ledger/serializers.py
"""
Serializers for the AR/AP ledger API.

Input serializers validate request bodies; the commands do the rest.
"""

from rest_framework import serializers

from ledger.models import Knockoff, LedgerInvoice, Payment


# =============================================================================
# Output
# =============================================================================

class LedgerInvoiceSerializer(serializers.ModelSerializer):
    counterparty_id = serializers.IntegerField(read_only=True)
    source_document_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = LedgerInvoice
        fields = [
            "id", "public_id", "kind", "invoice_no", "invoice_date", "due_date",
            "counterparty_id", "counterparty_code", "counterparty_name",
            "external_reference", "reference", "description",
            "subtotal", "discount_amount", "tax_amount", "net_total",
            "paid_amount", "outstanding_amount",
            "currency", "exchange_rate",
            "status", "is_void", "voided_at", "void_reason",
            "source_type", "source_document_id",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


class KnockoffSerializer(serializers.ModelSerializer):
    invoice_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Knockoff
        fields = [
            "id", "public_id", "invoice_id", "invoice_no", "invoice_date",
            "document_amount", "outstanding_before", "knockoff_amount", "outstanding_after",
            "is_reversed", "reversed_at",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    counterparty_id = serializers.IntegerField(read_only=True)
    knockoffs = KnockoffSerializer(many=True, read_only=True)
    applied_amount = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)
    unapplied_amount = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id", "public_id", "kind", "payment_no", "payment_date",
            "counterparty_id", "counterparty_code", "counterparty_name",
            "method", "cheque_no", "reference", "description",
            "payment_amount", "applied_amount", "unapplied_amount",
            "currency", "exchange_rate",
            "is_void", "voided_at", "void_reason",
            "created_at", "knockoffs",
        ]
        read_only_fields = fields


# =============================================================================
# Input
# =============================================================================

class LedgerInvoiceCreateSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=LedgerInvoice.Kind.choices)
    counterparty_id = serializers.IntegerField()
    net_total = serializers.DecimalField(max_digits=18, decimal_places=2)
    invoice_no = serializers.CharField(max_length=50, required=False, allow_blank=True)
    invoice_date = serializers.DateField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    subtotal = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    discount_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    tax_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    external_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    currency = serializers.CharField(max_length=3, required=False, allow_blank=True)
    exchange_rate = serializers.DecimalField(max_digits=18, decimal_places=6, required=False)


class KnockoffInputSerializer(serializers.Serializer):
    invoice_id = serializers.IntegerField()
    knockoff_amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    outstanding_before = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)


class PaymentCreateSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=Payment.Kind.choices)
    counterparty_id = serializers.IntegerField()
    payment_amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    method = serializers.ChoiceField(choices=Payment.Method.choices)
    knockoffs = KnockoffInputSerializer(many=True, allow_empty=True)
    payment_no = serializers.CharField(max_length=50, required=False, allow_blank=True)
    payment_date = serializers.DateField(required=False, allow_null=True)
    cheque_no = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    currency = serializers.CharField(max_length=3, required=False, allow_blank=True)
    exchange_rate = serializers.DecimalField(max_digits=18, decimal_places=6, required=False)


class VoidSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class OutstandingQuerySerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=LedgerInvoice.Kind.choices + Payment.Kind.choices)
    counterparty = serializers.IntegerField()


class SuggestKnockoffsSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=Payment.Kind.choices)
    counterparty_id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=18, decimal_places=2)
