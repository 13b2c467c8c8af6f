# documents/pricing.py
"""
Line and document pricing.

Per line:
    gross    = quantity * unit_price
    discount = explicit amount, or parsed from the discount text
    subtotal = gross - discount
    tax      = explicit amount, or tax_rate% of subtotal

Per document:
    net_total       = sum(gross) - sum(discount) + sum(tax)
    net_total_local = net_total * exchange_rate

Discount text is either a fixed amount ("100") or one or more percentages
chained with "+" ("10%", "5%+2%"). Chained percentages apply one after
the other: "5%+2%" on 100 is 5 then 1.90, a discount of 6.90.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from core.errors import ValidationError
from core.money import ZERO, money, to_decimal


HUNDRED = Decimal("100")


def parse_discount(text: str, gross: Decimal) -> Decimal:
    """Discount amount for a gross line amount, from discount text."""
    if not text:
        return ZERO
    text = str(text).strip()
    if not text:
        return ZERO

    if "%" not in text:
        return money(to_decimal(text, "discount"))

    remaining = gross
    for part in text.split("+"):
        part = part.strip().rstrip("%").strip()
        if not part:
            continue
        pct = to_decimal(part, "discount")
        if pct < 0 or pct > HUNDRED:
            raise ValidationError(f"Invalid discount percentage: {part}%.")
        remaining -= remaining * pct / HUNDRED
    return money(gross - remaining)


def is_percentage_discount(text: str) -> bool:
    return bool(text) and "%" in str(text)


@dataclass
class LineAmounts:
    gross: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    tax_amount: Decimal


def price_line(
    quantity,
    unit_price,
    discount: str = "",
    discount_amount=None,
    tax_rate=None,
    tax_amount=None,
) -> LineAmounts:
    """
    Compute the amounts of one line.

    An explicit discount_amount or tax_amount wins over the discount text
    or tax rate.
    """
    quantity = to_decimal(quantity, "quantity")
    unit_price = to_decimal(unit_price, "unit_price")
    gross = money(quantity * unit_price)

    if discount_amount not in (None, ""):
        disc = money(to_decimal(discount_amount, "discount_amount"))
    else:
        disc = parse_discount(discount, gross)
    if disc < 0:
        raise ValidationError("Discount cannot be negative.")
    if disc > gross:
        raise ValidationError("Discount cannot exceed the line amount.")

    subtotal = gross - disc

    if tax_amount not in (None, ""):
        tax = money(to_decimal(tax_amount, "tax_amount"))
    else:
        rate = to_decimal(tax_rate, "tax_rate")
        tax = money(subtotal * rate / HUNDRED)
    if tax < 0:
        raise ValidationError("Tax cannot be negative.")

    return LineAmounts(gross=gross, discount_amount=disc, subtotal=subtotal, tax_amount=tax)


def prorate(amount: Decimal, part: Decimal, whole: Decimal) -> Decimal:
    """amount * part / whole, rounded to money."""
    if not whole:
        return ZERO
    return money(amount * part / whole)


@dataclass
class DocumentTotals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    net_total: Decimal
    net_total_local: Decimal


def document_totals(lines: Iterable, exchange_rate: Optional[Decimal] = None) -> DocumentTotals:
    """
    Total a document from its lines (objects with quantity, unit_price,
    discount_amount and tax_amount).
    """
    gross = ZERO
    discount = ZERO
    tax = ZERO
    for line in lines:
        gross += money(line.quantity * line.unit_price)
        discount += line.discount_amount
        tax += line.tax_amount

    net = money(gross - discount + tax)
    rate = to_decimal(exchange_rate or 1, "exchange_rate")
    return DocumentTotals(
        subtotal=money(gross),
        discount_amount=money(discount),
        tax_amount=money(tax),
        net_total=net,
        net_total_local=money(net * rate),
    )
