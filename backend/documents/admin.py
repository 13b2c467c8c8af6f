# documents/admin.py

from django.contrib import admin

from core.write_barrier import admin_emergency_writes_allowed
from documents.models import DocumentHeader, DocumentDetail, NumberSeries, StockMovement


class DocumentDetailInline(admin.TabularInline):
    model = DocumentDetail
    fk_name = "document"
    extra = 0
    fields = (
        "line_no", "product_code", "quantity", "unit_price", "discount",
        "tax_amount", "subtotal", "transferred_qty", "outstanding_qty",
    )
    readonly_fields = fields
    can_delete = False


@admin.register(DocumentHeader)
class DocumentHeaderAdmin(admin.ModelAdmin):
    list_display = (
        "document_no", "document_type", "company", "counterparty_code",
        "document_date", "net_total", "status", "transfer_status", "is_posted",
    )
    list_filter = ("document_type", "status", "transfer_status", "is_posted", "is_void")
    search_fields = ("document_no", "counterparty_code", "counterparty_name", "reference")
    inlines = [DocumentDetailInline]

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(NumberSeries)
class NumberSeriesAdmin(admin.ModelAdmin):
    list_display = ("company", "key", "prefix", "suffix", "number_length", "next_value")
    list_filter = ("key",)

    def save_model(self, request, obj, form, change):
        with admin_emergency_writes_allowed():
            super().save_model(request, obj, form, change)


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("document", "product_code", "direction", "quantity", "created_at")
    list_filter = ("direction",)

    def has_change_permission(self, request, obj=None):
        return False
