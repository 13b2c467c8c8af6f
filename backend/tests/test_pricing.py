# tests/test_pricing.py
"""
Tests for line and document pricing.
"""

import pytest
from decimal import Decimal
from types import SimpleNamespace

from core.errors import ValidationError
from documents.pricing import document_totals, parse_discount, price_line, prorate


class TestParseDiscount:

    @pytest.mark.parametrize("text, expected", [
        ("", "0.00"),
        ("   ", "0.00"),
        ("25", "25.00"),
        ("10%", "20.00"),
        ("5%+2%", "13.80"),
        ("100%", "200.00"),
    ])
    def test_discount_text(self, text, expected):
        assert parse_discount(text, Decimal("200.00")) == Decimal(expected)

    @pytest.mark.parametrize("text", ["150%", "-5%", "abc"])
    def test_invalid_discount(self, text):
        with pytest.raises(ValidationError):
            parse_discount(text, Decimal("100.00"))


class TestPriceLine:

    def test_percentage_discount_and_tax_rate(self):
        amounts = price_line("3", "40.00", discount="10%", tax_rate="6")

        assert amounts.gross == Decimal("120.00")
        assert amounts.discount_amount == Decimal("12.00")
        assert amounts.subtotal == Decimal("108.00")
        assert amounts.tax_amount == Decimal("6.48")

    def test_explicit_amounts_win(self):
        amounts = price_line("2", "50.00", discount="10%", discount_amount="1.00", tax_rate="6", tax_amount="0")

        assert amounts.discount_amount == Decimal("1.00")
        assert amounts.subtotal == Decimal("99.00")
        assert amounts.tax_amount == Decimal("0.00")

    def test_discount_above_gross(self):
        with pytest.raises(ValidationError, match="exceed"):
            price_line("1", "10.00", discount="11")

    def test_negative_tax(self):
        with pytest.raises(ValidationError):
            price_line("1", "10.00", tax_amount="-1")


class TestTotals:

    def test_document_totals(self):
        lines = [
            SimpleNamespace(quantity=Decimal("10"), unit_price=Decimal("25.00"),
                            discount_amount=Decimal("0.00"), tax_amount=Decimal("15.00")),
            SimpleNamespace(quantity=Decimal("4"), unit_price=Decimal("100.00"),
                            discount_amount=Decimal("40.00"), tax_amount=Decimal("0.00")),
        ]

        totals = document_totals(lines, Decimal("3.5"))

        assert totals.subtotal == Decimal("650.00")
        assert totals.discount_amount == Decimal("40.00")
        assert totals.tax_amount == Decimal("15.00")
        assert totals.net_total == Decimal("625.00")
        assert totals.net_total_local == Decimal("2187.50")

    def test_empty_document(self):
        totals = document_totals([])

        assert totals.net_total == Decimal("0.00")

    def test_prorate(self):
        assert prorate(Decimal("10.00"), Decimal("1"), Decimal("3")) == Decimal("3.33")
        assert prorate(Decimal("10.00"), Decimal("1"), Decimal("0")) == Decimal("0.00")
