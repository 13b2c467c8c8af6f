# events/admin.py

from django.contrib import admin

from events.models import BusinessEvent


@admin.register(BusinessEvent)
class BusinessEventAdmin(admin.ModelAdmin):
    list_display = ("event_type", "aggregate_type", "aggregate_id", "company", "company_sequence", "occurred_at")
    list_filter = ("event_type", "aggregate_type")
    search_fields = ("aggregate_id", "idempotency_key")
    readonly_fields = [f.name for f in BusinessEvent._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
