# documents/lines.py
"""
Building and repricing document lines from canonical line input.

Canonical line input (what serializers hand to commands):
    {
        "id": 12,                 # only when updating an existing line
        "product_code": "P-100",
        "account_code": "5000",
        "description": "...",
        "quantity": "10",
        "unit_price": "25.00",
        "discount": "5%+2%",
        "discount_amount": None,  # explicit amount wins over discount text
        "tax_code": "SR",
        "tax_rate": "6",
        "tax_amount": None,       # explicit amount wins over tax rate
    }
"""

from core.errors import ValidationError
from core.money import money, qty, to_decimal
from documents import pricing
from documents.models import DocumentDetail


PRICING_FIELDS = ("quantity", "unit_price", "discount", "discount_amount", "tax_rate", "tax_amount")
TEXT_FIELDS = ("product_code", "account_code", "description", "tax_code")


def clean_quantity(value):
    quantity = qty(value)
    if quantity <= 0:
        raise ValidationError("Line quantity must be greater than zero.")
    return quantity


def clean_tax_rate(value):
    tax_rate = to_decimal(value, "tax_rate")
    if tax_rate < 0 or tax_rate > pricing.HUNDRED:
        raise ValidationError("Tax rate must be between 0 and 100.")
    return tax_rate


def apply_line_input(line: DocumentDetail, data: dict) -> DocumentDetail:
    """
    Copy canonical input onto a line and price it. Fields missing from
    data keep the line's current value.
    """
    for field in TEXT_FIELDS:
        if field in data and data[field] is not None:
            setattr(line, field, data[field])

    if "quantity" in data:
        line.quantity = clean_quantity(data["quantity"])
    if "unit_price" in data:
        line.unit_price = money(data["unit_price"])
        if line.unit_price < 0:
            raise ValidationError("Unit price cannot be negative.")
    if "discount" in data:
        line.discount = (data["discount"] or "").strip()
    if "tax_rate" in data:
        line.tax_rate = clean_tax_rate(data["tax_rate"])

    if line.quantity is None:
        raise ValidationError("Line quantity is required.")

    amounts = pricing.price_line(
        line.quantity,
        line.unit_price,
        discount=line.discount,
        discount_amount=data.get("discount_amount"),
        tax_rate=line.tax_rate,
        tax_amount=data.get("tax_amount"),
    )
    line.discount_amount = amounts.discount_amount
    line.tax_amount = amounts.tax_amount
    line.subtotal = amounts.subtotal
    return line


def build_line(document, line_no: int, data: dict, source_line=None) -> DocumentDetail:
    """Unsaved DocumentDetail for a document from canonical input."""
    line = DocumentDetail(
        company_id=document.company_id,
        document=document,
        line_no=line_no,
        source_line=source_line,
    )
    return apply_line_input(line, data)


def validate_lines_input(lines) -> None:
    if not lines:
        raise ValidationError("At least one line is required.", code="NO_LINES")
    if not isinstance(lines, (list, tuple)):
        raise ValidationError("Lines must be a list.")
    for idx, data in enumerate(lines, start=1):
        if not isinstance(data, dict):
            raise ValidationError(f"Line {idx} must be an object.")
        if data.get("id") is None and data.get("quantity") in (None, ""):
            raise ValidationError(f"Line {idx}: quantity is required.")
