"""
Tests for write barrier enforcement.
"""

import pytest
from decimal import Decimal
from datetime import date

from rest_framework import serializers

from core.write_barrier import admin_emergency_writes_allowed, command_writes_allowed
from documents.models import DocumentHeader
from parties.models import Counterparty


class CounterpartySerializer(serializers.ModelSerializer):
    class Meta:
        model = Counterparty
        fields = ("company", "kind", "code", "name", "currency")


@pytest.mark.django_db
def test_direct_model_save_raises(settings, vendor):
    settings.TESTING = False

    vendor.name = "Renamed Directly"
    with pytest.raises(RuntimeError, match="command_writes_allowed"):
        vendor.save()


@pytest.mark.django_db
def test_direct_model_delete_raises(settings, vendor):
    settings.TESTING = False

    with pytest.raises(RuntimeError, match="Direct deletes"):
        vendor.delete()


@pytest.mark.django_db
def test_direct_model_create_in_serializer_raises(settings, company):
    settings.TESTING = False

    serializer = CounterpartySerializer(
        data={"company": company.id, "kind": "VENDOR", "code": "V900", "name": "Serializer Co", "currency": "USD"},
    )
    serializer.is_valid(raise_exception=True)

    with pytest.raises(RuntimeError, match="command_writes_allowed"):
        serializer.save()


@pytest.mark.django_db
def test_command_context_allows_writes(settings, vendor):
    settings.TESTING = False

    fields = dict(
        company=vendor.company,
        domain="PURCHASE",
        document_type="PURCHASE_ORDER",
        document_no="PO-BARRIER",
        document_date=date(2024, 1, 1),
        counterparty=vendor,
        counterparty_code=vendor.code,
        counterparty_name=vendor.name,
        currency="USD",
        exchange_rate=Decimal("1"),
    )

    with pytest.raises(RuntimeError, match="command_writes_allowed"):
        DocumentHeader.objects.create(**fields)

    with command_writes_allowed():
        document = DocumentHeader.objects.create(**fields)

    assert document.company_id == vendor.company_id


@pytest.mark.django_db
def test_commands_work_without_testing_flag(settings, actor, vendor, make_line):
    from documents.commands import create_document

    settings.TESTING = False

    result = create_document(actor, "PURCHASE_ORDER", vendor.id, lines=[make_line(2, "5.00")])

    assert result.success, result.error
    assert result.data.net_total == Decimal("10.00")


def test_admin_emergency_needs_setting(settings):
    settings.ALLOW_ADMIN_EMERGENCY_WRITES = False

    with pytest.raises(RuntimeError, match="admin_emergency"):
        with admin_emergency_writes_allowed():
            pass
