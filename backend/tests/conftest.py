# tests/conftest.py
"""
Pytest fixtures for the document chain and ledger tests.

- ActorContext requires: user, company, membership, perms
- Commands take the actor as first arg and return a CommandResult
- Counterparties and users are created directly (settings.TESTING
  lifts the write barrier); documents and payments go through commands
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from django.conf import settings
from django.contrib.auth import get_user_model

from accounts.models import Company, CompanyMembership
from accounts.authz import build_actor
from accounts.permissions import grant_role_defaults
from documents.commands import create_document
from ledger.commands import create_payment
from parties.models import Counterparty


User = get_user_model()


@pytest.fixture(autouse=True, scope="session")
def _testing_settings(django_db_setup, django_db_blocker):
    """Lift the write barrier for fixtures; event payloads stay validated."""
    settings.TESTING = True
    settings.DISABLE_EVENT_VALIDATION = False


# =============================================================================
# Company & User Fixtures
# =============================================================================

@pytest.fixture
def company(db):
    """Create a test company."""
    return Company.objects.create(
        public_id=uuid4(),
        name="Test Company",
        slug="test-company",
        default_currency="USD",
        is_active=True,
    )


@pytest.fixture
def second_company(db):
    """Create a second test company for multi-tenant tests."""
    return Company.objects.create(
        public_id=uuid4(),
        name="Second Company",
        slug="second-company",
        default_currency="EUR",
        is_active=True,
    )


def _make_member(company, email, role):
    user = User.objects.create_user(
        email=email,
        password="testpass123",
        name=email.split("@")[0].title(),
    )
    user.active_company = company
    user.save()
    membership = CompanyMembership.objects.create(
        company=company,
        user=user,
        role=role,
        is_active=True,
    )
    grant_role_defaults(membership)
    return user


@pytest.fixture
def user(db, company):
    """Owner of the test company."""
    return _make_member(company, "owner@test.com", CompanyMembership.Role.OWNER)


@pytest.fixture
def clerk(db, company):
    """USER role: may create and transfer, may not post or void."""
    return _make_member(company, "clerk@test.com", CompanyMembership.Role.USER)


@pytest.fixture
def viewer(db, company):
    return _make_member(company, "viewer@test.com", CompanyMembership.Role.VIEWER)


@pytest.fixture
def other_user(db, second_company):
    """Owner of the second company."""
    return _make_member(second_company, "other@test.com", CompanyMembership.Role.OWNER)


# =============================================================================
# Actor Context Fixtures
# =============================================================================

@pytest.fixture
def actor(user, company):
    return build_actor(user, company)


@pytest.fixture
def clerk_actor(clerk, company):
    return build_actor(clerk, company)


@pytest.fixture
def viewer_actor(viewer, company):
    return build_actor(viewer, company)


@pytest.fixture
def other_actor(other_user, second_company):
    return build_actor(other_user, second_company)


# =============================================================================
# Counterparty Fixtures
# =============================================================================

@pytest.fixture
def vendor(db, company):
    return Counterparty.objects.create(
        company=company,
        kind=Counterparty.Kind.VENDOR,
        code="V001",
        name="Acme Supplies",
        currency="USD",
        credit_term_days=30,
    )


@pytest.fixture
def customer(db, company):
    return Counterparty.objects.create(
        company=company,
        kind=Counterparty.Kind.CUSTOMER,
        code="C001",
        name="Globex Retail",
        currency="USD",
        credit_term_days=14,
    )


@pytest.fixture
def other_vendor(db, company):
    return Counterparty.objects.create(
        company=company,
        kind=Counterparty.Kind.VENDOR,
        code="V002",
        name="Initech Parts",
        currency="USD",
    )


@pytest.fixture
def foreign_vendor(db, second_company):
    """A vendor of the second company."""
    return Counterparty.objects.create(
        company=second_company,
        kind=Counterparty.Kind.VENDOR,
        code="V001",
        name="Foreign Supplies",
        currency="EUR",
    )


# =============================================================================
# Document & Payment Factories
# =============================================================================

def line(quantity, unit_price, **extra):
    """Canonical line input."""
    data = {
        "product_code": extra.pop("product_code", "P-100"),
        "description": extra.pop("description", "Widget"),
        "quantity": str(quantity),
        "unit_price": str(unit_price),
    }
    data.update(extra)
    return data


@pytest.fixture
def make_document(actor):
    """Create a document through the command layer and return it."""

    def _make(document_type, counterparty, lines, **kwargs):
        result = create_document(
            kwargs.pop("actor", actor),
            document_type,
            counterparty.id,
            lines=lines,
            **kwargs,
        )
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture
def make_payment(actor):
    """Create a payment through the command layer and return it."""

    def _make(kind, counterparty, amount, knockoffs=None, **kwargs):
        result = create_payment(
            kwargs.pop("actor", actor),
            kind,
            counterparty.id,
            Decimal(amount),
            kwargs.pop("method", "BANK_TRANSFER"),
            knockoffs=knockoffs if knockoffs is not None else [],
            **kwargs,
        )
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture
def purchase_order(make_document, vendor):
    """PO with two lines: 10 x 25.00 and 4 x 100.00 less 10%, net 610.00."""
    return make_document(
        "PURCHASE_ORDER",
        vendor,
        [
            line(10, "25.00", product_code="P-100"),
            line(4, "100.00", product_code="P-200", discount="10%"),
        ],
    )


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    """Create a DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, user):
    """Create an authenticated API client."""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def make_line():
    return line
