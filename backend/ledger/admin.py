# ledger/admin.py

from django.contrib import admin

from ledger.models import Knockoff, LedgerInvoice, Payment


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LedgerInvoice)
class LedgerInvoiceAdmin(ReadOnlyAdmin):
    list_display = (
        "invoice_no", "kind", "company", "counterparty_code", "invoice_date",
        "net_total", "paid_amount", "outstanding_amount", "status",
    )
    list_filter = ("kind", "status", "is_void")
    search_fields = ("invoice_no", "counterparty_code", "counterparty_name")


class KnockoffInline(admin.TabularInline):
    model = Knockoff
    extra = 0
    fields = ("invoice_no", "outstanding_before", "knockoff_amount", "outstanding_after", "is_reversed")
    readonly_fields = fields
    can_delete = False


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdmin):
    list_display = ("payment_no", "kind", "company", "counterparty_code", "payment_date", "payment_amount", "is_void")
    list_filter = ("kind", "method", "is_void")
    search_fields = ("payment_no", "counterparty_code", "reference")
    inlines = [KnockoffInline]
