# parties/admin.py

from django.contrib import admin

from parties.models import Counterparty


@admin.register(Counterparty)
class CounterpartyAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "kind", "company", "currency", "credit_term_days", "is_active")
    list_filter = ("kind", "is_active")
    search_fields = ("code", "name")
