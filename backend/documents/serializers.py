# documents/serializers.py
"""
Serializers for the document chain API.

Input serializers validate and normalise request bodies; the commands
only ever see the canonical shape. Document lines may be sent as
"lines", "details" or "items" and always reach the commands as "lines".
"""

from rest_framework import serializers

from documents.models import DocumentDetail, DocumentHeader, DocumentType


LINE_ALIASES = ("lines", "details", "items")


def normalise_line_aliases(data):
    """
    Return a plain dict of the request body with the line list under
    "lines". Sending more than one of the aliases is an error.
    """
    if hasattr(data, "getlist"):
        data = data.dict()
    data = dict(data)

    present = [key for key in LINE_ALIASES if key in data]
    if len(present) > 1:
        raise serializers.ValidationError(
            {present[1]: f"Send document lines in one field only, not both {present[0]} and {present[1]}."}
        )
    if present and present[0] != "lines":
        data["lines"] = data.pop(present[0])
    return data


# =============================================================================
# Output
# =============================================================================

class DocumentLineSerializer(serializers.ModelSerializer):
    source_line_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = DocumentDetail
        fields = [
            "id", "public_id", "line_no",
            "product_code", "account_code", "description",
            "quantity", "unit_price", "discount", "discount_amount",
            "tax_code", "tax_rate", "tax_amount", "subtotal",
            "transferred_qty", "outstanding_qty", "source_line_id",
        ]
        read_only_fields = fields


class DocumentSerializer(serializers.ModelSerializer):
    lines = DocumentLineSerializer(many=True, read_only=True)
    counterparty_id = serializers.IntegerField(read_only=True)
    source_document_id = serializers.IntegerField(read_only=True, allow_null=True)
    ledger_invoice_id = serializers.SerializerMethodField()

    class Meta:
        model = DocumentHeader
        fields = [
            "id", "public_id", "domain", "document_type", "document_no",
            "document_date", "due_date",
            "counterparty_id", "counterparty_code", "counterparty_name",
            "reference", "description", "external_reference",
            "subtotal", "discount_amount", "tax_amount", "net_total", "net_total_local",
            "currency", "exchange_rate",
            "status", "transfer_status",
            "source_type", "source_document_id",
            "is_posted", "posted_at", "ledger_invoice_id",
            "is_void", "voided_at", "void_reason",
            "created_at", "updated_at",
            "lines",
        ]
        read_only_fields = fields

    def get_ledger_invoice_id(self, obj):
        from ledger.models import LedgerInvoice

        try:
            return obj.ledger_invoice.id
        except LedgerInvoice.DoesNotExist:
            return None


class DocumentListSerializer(serializers.ModelSerializer):
    class Meta:
        model = DocumentHeader
        fields = [
            "id", "public_id", "document_type", "document_no", "document_date",
            "counterparty_code", "counterparty_name", "net_total", "currency",
            "status", "transfer_status", "is_posted", "is_void",
        ]
        read_only_fields = fields


# =============================================================================
# Input
# =============================================================================

class DocumentLineInputSerializer(serializers.Serializer):
    id = serializers.IntegerField(required=False)
    product_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    account_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.DecimalField(max_digits=18, decimal_places=4, required=False)
    unit_price = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    discount = serializers.CharField(max_length=50, required=False, allow_blank=True)
    discount_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    tax_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    tax_rate = serializers.DecimalField(max_digits=9, decimal_places=4, required=False)
    tax_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)


class LineAliasMixin:
    def to_internal_value(self, data):
        return super().to_internal_value(normalise_line_aliases(data))


class DocumentCreateSerializer(LineAliasMixin, serializers.Serializer):
    document_type = serializers.ChoiceField(choices=DocumentType.choices)
    counterparty_id = serializers.IntegerField()
    lines = DocumentLineInputSerializer(many=True, allow_empty=False)
    document_date = serializers.DateField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    document_no = serializers.CharField(max_length=50, required=False, allow_blank=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    external_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    currency = serializers.CharField(max_length=3, required=False, allow_blank=True)
    exchange_rate = serializers.DecimalField(max_digits=18, decimal_places=6, required=False)

    def validate_lines(self, value):
        for idx, line in enumerate(value, start=1):
            if line.get("quantity") is None:
                raise serializers.ValidationError(f"Line {idx}: quantity is required.")
        return value


class DocumentUpdateSerializer(LineAliasMixin, serializers.Serializer):
    lines = DocumentLineInputSerializer(many=True, required=False, allow_empty=False)
    document_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    external_reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    currency = serializers.CharField(max_length=3, required=False)
    exchange_rate = serializers.DecimalField(max_digits=18, decimal_places=6, required=False)


class LineTransferSerializer(serializers.Serializer):
    line_id = serializers.IntegerField()
    transfer_qty = serializers.DecimalField(max_digits=18, decimal_places=4)


class DocumentTransferSerializer(serializers.Serializer):
    target_type = serializers.ChoiceField(choices=DocumentType.choices)
    line_transfers = LineTransferSerializer(many=True, required=False, allow_null=True)


class DocumentVoidSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
